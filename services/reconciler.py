"""Reconciliation of freshly fetched readings against the live session."""

from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence, Tuple

from models.records import ClassifiedReading, Reading
from models.session import AggregateStatus, Session, Severity
from services.classifier import classify, is_alert, synthesize_temperature

# Alert share at or above which a batch is critical.
CRITICAL_ALERT_RATIO = 0.25


@dataclass(frozen=True)
class ViewUpdate:
    """A repaint request: the ordered, classified readings plus their summary."""

    batch_id: str
    readings: Tuple[ClassifiedReading, ...]
    status: AggregateStatus

    @property
    def is_empty(self) -> bool:
        return not self.readings


class Reconciler:
    """Decides whether a fetch warrants a repaint and summarizes the batch.

    Holds no session state of its own; the random source is only used to
    synthesize temperatures the store omitted.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng if rng is not None else random.Random()

    def classify_all(self, fetched: Iterable[Reading]) -> Tuple[ClassifiedReading, ...]:
        ordered = sorted(fetched, key=lambda reading: reading.sequence_index)
        return tuple(self._classify_one(reading) for reading in ordered)

    def summarize(self, readings: Sequence[ClassifiedReading]) -> AggregateStatus:
        total = len(readings)
        alert_count = sum(1 for reading in readings if reading.alert)
        return AggregateStatus(
            total=total,
            alert_count=alert_count,
            severity=severity_for(total, alert_count),
        )

    def reconcile(
        self,
        previous: Session,
        fetched: Sequence[Reading],
        force: bool = False,
    ) -> Tuple[Session, Optional[ViewUpdate]]:
        """Fold a fetch result into ``previous``.

        Returns the updated session and either a :class:`ViewUpdate` or
        ``None`` when the record count is unchanged and no repaint was forced.
        """
        readings = self.classify_all(fetched)
        status = self.summarize(readings)
        changed = len(readings) != previous.last_record_count
        session = replace(
            previous,
            last_record_count=len(readings),
            last_summary=status,
            disconnected=False,
        )
        if not (changed or force):
            return session, None
        return session, ViewUpdate(
            batch_id=previous.batch_id, readings=readings, status=status
        )

    def _classify_one(self, reading: Reading) -> ClassifiedReading:
        temperature = reading.temperature_c
        synthesized = temperature is None
        if temperature is None:
            temperature = synthesize_temperature(bool(reading.alert_flag), self._rng)

        alert = reading.alert_flag
        if alert is None:
            alert = is_alert(classify(temperature))

        return ClassifiedReading(
            reading=reading,
            temperature_c=temperature,
            alert=alert,
            synthesized=synthesized,
        )


def severity_for(total: int, alert_count: int) -> Severity:
    if total == 0 or alert_count == 0:
        return Severity.nominal
    if alert_count / total < CRITICAL_ALERT_RATIO:
        return Severity.elevated
    return Severity.critical
