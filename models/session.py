"""Client-side monitoring session state and derived status values."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    """Aggregate severity of one fetched record set."""

    nominal = "nominal"
    elevated = "elevated"
    critical = "critical"


class DisplayState(str, Enum):
    """What the status indicator currently shows."""

    nominal = "nominal"
    elevated = "elevated"
    critical = "critical"
    empty = "empty"
    disconnected = "disconnected"


@dataclass(frozen=True, slots=True)
class AggregateStatus:
    """Derived summary, recomputed on every reconciliation."""

    total: int = 0
    alert_count: int = 0
    severity: Severity = Severity.nominal


@dataclass(frozen=True, slots=True)
class Session:
    """State for the batch currently being monitored.

    Owned by the poll scheduler; every change produces a new value.
    """

    batch_id: str = ""
    last_record_count: int = 0
    is_live: bool = False
    last_summary: AggregateStatus = field(default_factory=AggregateStatus)
    disconnected: bool = False

    def with_failure(self) -> "Session":
        return replace(self, disconnected=True)

    @property
    def display_state(self) -> Optional[DisplayState]:
        if not self.batch_id:
            return None
        if self.disconnected:
            return DisplayState.disconnected
        if self.last_summary.total == 0:
            return DisplayState.empty
        return DisplayState(self.last_summary.severity.value)
