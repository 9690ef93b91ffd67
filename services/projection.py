"""Pure projection of classified readings into table, chart and status shapes.

Nothing here talks to the network or keeps state. Renderers receive the
values produced by :func:`project` and the ``describe_*`` helpers and are
free to draw them however they like.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from models.records import ClassifiedReading, ReadingMetadata
from models.session import AggregateStatus, DisplayState, Severity
from services.classifier import MAX_SAFE, MIN_SAFE
from services.store_client import FetchError, FetchFailure

METADATA_DEFAULTS: Dict[str, str] = {
    "product_name": "Covishield",
    "manufacturer": "Serum Institute",
    "carrier": "BlueDart",
    "location": "Mumbai",
    "container_id": "N/A",
    "batch_label": "N/A",
}

ALERT_COLOR = "#e74c3c"
NORMAL_COLOR = "#27ae60"
BOUNDARY_COLOR = "#2563eb"

UNKNOWN_TIMESTAMP = "unknown"


@dataclass(frozen=True)
class RowView:
    sequence_index: int
    block_label: str
    captured_at: str
    temperature: str
    synthesized: bool
    product_name: str
    manufacturer: str
    carrier: str
    location: str
    container_id: str
    batch_label: str
    alert: bool

    @property
    def status_label(self) -> str:
        return "ALERT" if self.alert else "Normal"


@dataclass(frozen=True)
class ChartPoint:
    label: str
    value: float
    is_alert: bool
    color: str
    synthesized: bool = False


@dataclass(frozen=True)
class ChartSeries:
    title: str
    points: Tuple[ChartPoint, ...]
    thresholds: Tuple[float, float] = (MIN_SAFE, MAX_SAFE)

    @property
    def labels(self) -> List[str]:
        return [point.label for point in self.points]

    @property
    def values(self) -> List[float]:
        return [point.value for point in self.points]


@dataclass(frozen=True)
class DashboardView:
    rows: Tuple[RowView, ...]
    series: ChartSeries
    status: AggregateStatus


@dataclass(frozen=True)
class StatusLine:
    state: DisplayState
    message: str


@dataclass(frozen=True)
class DetailField:
    label: str
    value: str


class Renderer(Protocol):
    """Consumer of projected views.

    ``render_rows`` always receives the full replacement row set.
    ``render_chart`` creates the chart on first use and updates it in
    place afterwards; ``clear`` drops rows and chart together.
    """

    def render_rows(self, rows: Sequence[RowView]) -> None:
        ...

    def render_chart(self, series: ChartSeries) -> None:
        ...

    def render_status(self, status: StatusLine) -> None:
        ...

    def clear(self, message: str) -> None:
        ...


def resolve_metadata(metadata: ReadingMetadata) -> Dict[str, str]:
    resolved: Dict[str, str] = {}
    for name, default in METADATA_DEFAULTS.items():
        value = getattr(metadata, name)
        resolved[name] = value if value else default
    return resolved


def parse_timestamp(raw: str) -> Optional[datetime]:
    candidate = raw.strip()
    if not candidate:
        return None

    try:
        return datetime.fromtimestamp(float(candidate), tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        pass

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(raw: str) -> str:
    parsed = parse_timestamp(raw)
    if parsed is None:
        return raw.strip() or UNKNOWN_TIMESTAMP
    return parsed.strftime("%Y-%m-%d %H:%M:%S UTC")


def format_temperature(value: float) -> str:
    return f"{value:.1f}°C"


def block_label(sequence_index: int) -> str:
    return f"Block #{sequence_index}"


def point_color(reading: ClassifiedReading) -> str:
    if reading.alert:
        return ALERT_COLOR
    if reading.temperature_c in (MIN_SAFE, MAX_SAFE):
        return BOUNDARY_COLOR
    return NORMAL_COLOR


def to_row(reading: ClassifiedReading) -> RowView:
    metadata = resolve_metadata(reading.reading.metadata)
    return RowView(
        sequence_index=reading.sequence_index,
        block_label=f"#{reading.sequence_index}",
        captured_at=format_timestamp(reading.reading.captured_at),
        temperature=format_temperature(reading.temperature_c),
        synthesized=reading.synthesized,
        alert=reading.alert,
        **metadata,
    )


def project(readings: Sequence[ClassifiedReading], status: AggregateStatus) -> DashboardView:
    ordered = sorted(readings, key=lambda reading: reading.sequence_index)
    points = tuple(
        ChartPoint(
            label=block_label(reading.sequence_index),
            value=reading.temperature_c,
            is_alert=reading.alert,
            color=point_color(reading),
            synthesized=reading.synthesized,
        )
        for reading in ordered
    )
    series = ChartSeries(
        title=f"Cold Chain Temperature Monitoring ({len(points)} blocks)",
        points=points,
    )
    return DashboardView(
        rows=tuple(to_row(reading) for reading in ordered),
        series=series,
        status=status,
    )


def describe_status(batch_id: str, status: AggregateStatus) -> StatusLine:
    if status.total == 0:
        return StatusLine(DisplayState.empty, f"No records found for batch {batch_id}")
    if status.severity is Severity.nominal:
        return StatusLine(
            DisplayState.nominal, f"✓ All {status.total} readings within safe range"
        )
    if status.severity is Severity.elevated:
        return StatusLine(
            DisplayState.elevated, f"⚠ {status.alert_count} temperature alerts detected"
        )
    return StatusLine(
        DisplayState.critical,
        f"⚠ Critical: {status.alert_count}/{status.total} readings out of range",
    )


def describe_failure(error: FetchError) -> StatusLine:
    if error.reason is FetchFailure.server_rejected:
        message = f"✗ Record store rejected request (HTTP {error.status_code})"
    elif error.reason is FetchFailure.malformed_response:
        message = "✗ Record store sent an unreadable response"
    else:
        message = "✗ Cannot connect to record store"
    return StatusLine(DisplayState.disconnected, message)


def describe_connectivity(reachable: bool) -> str:
    if reachable:
        return "✓ Record store connected and ready"
    return "✗ Record store offline"


def detail_view(reading: ClassifiedReading) -> List[DetailField]:
    """Field-by-field expansion of one reading, integrity hashes verbatim."""
    record = reading.reading
    metadata = resolve_metadata(record.metadata)
    temperature = format_temperature(reading.temperature_c)
    if reading.synthesized:
        temperature = f"{temperature} (estimated, not measured)"

    fields = [
        DetailField("Block", block_label(record.sequence_index)),
        DetailField("Record ID", record.id),
        DetailField("Temperature", temperature),
        DetailField("Product", metadata["product_name"]),
        DetailField("Manufacturer", metadata["manufacturer"]),
        DetailField("Carrier", metadata["carrier"]),
        DetailField("Batch", metadata["batch_label"]),
        DetailField("Container", metadata["container_id"]),
        DetailField("Location", metadata["location"]),
        DetailField("Timestamp", format_timestamp(record.captured_at)),
        DetailField(
            "Alert Status", "TEMPERATURE ALERT" if reading.alert else "Normal Range"
        ),
        DetailField("Payload Hash", record.integrity.payload_hash),
        DetailField("Previous Block Hash", record.integrity.previous_hash),
        DetailField("Current Block Hash", record.integrity.self_hash),
    ]
    if record.payload:
        fields.append(
            DetailField("Payload", json.dumps(record.payload, indent=2, sort_keys=True))
        )
    return fields
