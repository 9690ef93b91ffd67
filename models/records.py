"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True, slots=True)
class ReadingMetadata:
    """Descriptive fields attached to a reading; any of them may be absent."""

    product_name: Optional[str] = None
    manufacturer: Optional[str] = None
    carrier: Optional[str] = None
    location: Optional[str] = None
    container_id: Optional[str] = None
    batch_label: Optional[str] = None


@dataclass(frozen=True, slots=True)
class IntegrityFields:
    """Hash strings carried through verbatim for display."""

    self_hash: str = ""
    previous_hash: str = ""
    payload_hash: str = ""


@dataclass(frozen=True, slots=True)
class Reading:
    """A single timestamped sensor record as returned by the record store."""

    id: str
    sequence_index: int
    batch_id: str
    captured_at: str
    temperature_c: Optional[float] = None
    alert_flag: Optional[bool] = None
    metadata: ReadingMetadata = field(default_factory=ReadingMetadata)
    integrity: IntegrityFields = field(default_factory=IntegrityFields)
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ClassifiedReading:
    """A reading with its temperature resolved and alert verdict settled.

    ``synthesized`` marks a temperature produced client-side because the
    store did not supply one; it is a display fallback, not a measurement.
    """

    reading: Reading
    temperature_c: float
    alert: bool
    synthesized: bool = False

    @property
    def sequence_index(self) -> int:
        return self.reading.sequence_index
