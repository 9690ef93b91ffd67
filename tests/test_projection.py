"""Unit tests for the table, chart and status projections."""

from __future__ import annotations

import json
from typing import Optional

from models.records import ClassifiedReading, IntegrityFields, Reading, ReadingMetadata
from models.session import AggregateStatus, DisplayState, Severity
from services.projection import (
    ALERT_COLOR,
    BOUNDARY_COLOR,
    METADATA_DEFAULTS,
    NORMAL_COLOR,
    describe_failure,
    describe_status,
    detail_view,
    format_timestamp,
    project,
)
from services.store_client import FetchError, FetchFailure


def _classified(
    seq: int,
    temperature: float = 5.0,
    alert: bool = False,
    synthesized: bool = False,
    metadata: Optional[ReadingMetadata] = None,
    captured_at: str = "2024-03-01T08:30:00Z",
) -> ClassifiedReading:
    reading = Reading(
        id=f"id-{seq}",
        sequence_index=seq,
        batch_id="VAC-1",
        captured_at=captured_at,
        temperature_c=None if synthesized else temperature,
        alert_flag=alert,
        metadata=metadata or ReadingMetadata(),
        integrity=IntegrityFields(
            self_hash=f"hash-{seq}",
            previous_hash=f"hash-{seq - 1}",
            payload_hash=f"payload-{seq}",
        ),
        payload={"temperature": temperature, "batch_no": "VAC-1"},
    )
    return ClassifiedReading(
        reading=reading, temperature_c=temperature, alert=alert, synthesized=synthesized
    )


def test_rows_are_ordered_by_sequence_index() -> None:
    view = project([_classified(2), _classified(1)], AggregateStatus(total=2))

    assert [row.sequence_index for row in view.rows] == [1, 2]
    assert view.series.labels == ["Block #1", "Block #2"]


def test_row_formatting_and_metadata_defaults() -> None:
    metadata = ReadingMetadata(product_name="Covaxin", location="Pune")
    view = project([_classified(7, 4.26, metadata=metadata)], AggregateStatus(total=1))

    (row,) = view.rows
    assert row.block_label == "#7"
    assert row.captured_at == "2024-03-01 08:30:00 UTC"
    assert row.temperature == "4.3°C"
    assert row.product_name == "Covaxin"
    assert row.location == "Pune"
    assert row.manufacturer == METADATA_DEFAULTS["manufacturer"]
    assert row.carrier == METADATA_DEFAULTS["carrier"]
    assert row.container_id == METADATA_DEFAULTS["container_id"]
    assert row.status_label == "Normal"


def test_synthesized_values_are_marked() -> None:
    view = project(
        [_classified(1, 6.0), _classified(2, 10.5, alert=True, synthesized=True)],
        AggregateStatus(total=2, alert_count=1, severity=Severity.critical),
    )

    assert [row.synthesized for row in view.rows] == [False, True]
    assert [point.synthesized for point in view.series.points] == [False, True]


def test_chart_points_carry_alerts_colors_and_thresholds() -> None:
    view = project(
        [_classified(1, 5.0), _classified(2, 11.0, alert=True), _classified(3, 8.0)],
        AggregateStatus(total=3, alert_count=1, severity=Severity.critical),
    )

    series = view.series
    assert series.values == [5.0, 11.0, 8.0]
    assert [point.is_alert for point in series.points] == [False, True, False]
    assert [point.color for point in series.points] == [NORMAL_COLOR, ALERT_COLOR, BOUNDARY_COLOR]
    assert series.thresholds == (2.0, 8.0)
    assert "3 blocks" in series.title


def test_timestamp_formats() -> None:
    assert format_timestamp("2024-01-01T10:00:00+02:00") == "2024-01-01 08:00:00 UTC"
    assert format_timestamp("2024-01-01 10:00:00.123456") == "2024-01-01 10:00:00 UTC"
    assert format_timestamp("0") == "1970-01-01 00:00:00 UTC"
    assert format_timestamp("not a date") == "not a date"
    assert format_timestamp("") == "unknown"


def test_describe_status_messages() -> None:
    nominal = describe_status("VAC-1", AggregateStatus(total=10))
    elevated = describe_status(
        "VAC-1", AggregateStatus(total=10, alert_count=2, severity=Severity.elevated)
    )
    critical = describe_status(
        "VAC-1", AggregateStatus(total=10, alert_count=3, severity=Severity.critical)
    )
    empty = describe_status("VAC-1", AggregateStatus())

    assert nominal.state is DisplayState.nominal
    assert "All 10 readings" in nominal.message
    assert elevated.state is DisplayState.elevated
    assert "2 temperature alerts" in elevated.message
    assert critical.state is DisplayState.critical
    assert "3/10" in critical.message
    assert empty.state is DisplayState.empty
    assert empty.message == "No records found for batch VAC-1"


def test_describe_failure_distinguishes_reasons() -> None:
    unreachable = describe_failure(FetchError(FetchFailure.unreachable))
    rejected = describe_failure(FetchError(FetchFailure.server_rejected, status_code=503))

    assert unreachable.state is DisplayState.disconnected
    assert "Cannot connect" in unreachable.message
    assert rejected.state is DisplayState.disconnected
    assert "HTTP 503" in rejected.message


def test_detail_view_includes_hashes_verbatim() -> None:
    fields = {field.label: field.value for field in detail_view(_classified(4, 9.1, alert=True))}

    assert fields["Block"] == "Block #4"
    assert fields["Temperature"] == "9.1°C"
    assert fields["Alert Status"] == "TEMPERATURE ALERT"
    assert fields["Current Block Hash"] == "hash-4"
    assert fields["Previous Block Hash"] == "hash-3"
    assert fields["Payload Hash"] == "payload-4"
    assert json.loads(fields["Payload"]) == {"temperature": 9.1, "batch_no": "VAC-1"}


def test_detail_view_flags_estimated_temperature() -> None:
    fields = {field.label: field.value for field in detail_view(_classified(1, 3.3, synthesized=True))}

    assert fields["Temperature"] == "3.3°C (estimated, not measured)"
