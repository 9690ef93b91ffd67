from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

import typer

from models.session import DisplayState, Session
from services.classifier import MAX_SAFE, SYNTHESIS_HEADROOM
from services.projection import (
    ALERT_COLOR,
    BOUNDARY_COLOR,
    ChartSeries,
    DetailField,
    RowView,
    StatusLine,
)

CHART_WIDTH = 48
CHART_CEILING = MAX_SAFE + SYNTHESIS_HEADROOM

_STATE_COLORS = {
    DisplayState.nominal: typer.colors.GREEN,
    DisplayState.elevated: typer.colors.YELLOW,
    DisplayState.critical: typer.colors.RED,
    DisplayState.empty: typer.colors.YELLOW,
    DisplayState.disconnected: typer.colors.RED,
}

_POINT_COLORS = {
    ALERT_COLOR: typer.colors.RED,
    BOUNDARY_COLOR: typer.colors.BLUE,
}

_TABLE_COLUMNS = (
    ("Block", 8),
    ("Time", 24),
    ("Temp", 9),
    ("Product", 14),
    ("Manufacturer", 17),
    ("Carrier", 10),
    ("Location", 12),
    ("Status", 6),
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        text = str(value)
        if "\n" in text:
            typer.echo(f"{key}:")
            for line in text.splitlines():
                typer.echo(f"  {line}")
            continue
        typer.echo(f"{key}: {text}")


def _format_row(cells: Sequence[str]) -> str:
    return "  ".join(
        cell.ljust(width) for cell, (_, width) in zip(cells, _TABLE_COLUMNS)
    ).rstrip()


def _temperature_cell(row: RowView) -> str:
    # "~" marks a value estimated client-side rather than measured.
    return f"~{row.temperature}" if row.synthesized else row.temperature


def _column(value: float, ceiling: float) -> int:
    clamped = min(max(value, 0.0), ceiling)
    return round(clamped / ceiling * CHART_WIDTH)


class TerminalRenderer:
    """Draws the dashboard with plain ``typer`` output."""

    def __init__(self) -> None:
        self.chart_drawn = False

    def render_rows(self, rows: Sequence[RowView]) -> None:
        typer.echo()
        echo_heading(f"Readings ({len(rows)})")
        typer.echo(_format_row([name for name, _ in _TABLE_COLUMNS]))
        for row in rows:
            cells = [
                row.block_label,
                row.captured_at,
                _temperature_cell(row),
                row.product_name,
                row.manufacturer,
                row.carrier,
                row.location,
                row.status_label,
            ]
            typer.secho(_format_row(cells), fg=typer.colors.RED if row.alert else None)

    def render_chart(self, series: ChartSeries) -> None:
        heading = series.title if not self.chart_drawn else f"{series.title} (updated)"
        self.chart_drawn = True
        typer.echo()
        echo_heading(heading)

        ceiling = max([CHART_CEILING, *series.values])
        low, high = (_column(bound, ceiling) for bound in series.thresholds)
        label_width = max((len(label) for label in series.labels), default=0)
        for point in series.points:
            length = _column(point.value, ceiling)
            track = ["#" if index < length else " " for index in range(CHART_WIDTH + 1)]
            for marker in (low, high):
                if track[marker] == " ":
                    track[marker] = "|"
            value = f"{point.value:.1f}°C"
            if point.synthesized:
                value = f"~{value}"
            typer.secho(
                f"{point.label.ljust(label_width)}  {''.join(track)}  {value}",
                fg=_POINT_COLORS.get(point.color),
            )
        low_bound, high_bound = series.thresholds
        typer.echo(f"Safe band: {low_bound:.1f}°C - {high_bound:.1f}°C (marked |)")

    def render_status(self, status: StatusLine) -> None:
        typer.echo()
        typer.secho(status.message, fg=_STATE_COLORS.get(status.state), bold=True)

    def clear(self, message: str) -> None:
        self.chart_drawn = False
        typer.echo()
        typer.echo(message)

    def render_connectivity(self, reachable: bool, message: str) -> None:
        typer.secho(message, fg=typer.colors.GREEN if reachable else typer.colors.RED)

    def render_stopped(self, session: Optional[Session]) -> None:
        if session is None:
            typer.echo("Live monitoring was not running.")
            return
        typer.echo(
            f"✓ Live monitoring stopped. {session.last_record_count} blocks loaded "
            f"for batch {session.batch_id}."
        )
        if session.display_state is DisplayState.disconnected:
            typer.secho(
                "  The last poll failed; the readings shown may be stale.",
                fg=typer.colors.YELLOW,
            )


def render_detail(fields: Sequence[DetailField]) -> None:
    echo_heading(fields[0].value if fields else "Reading")
    echo_key_values((field.label, field.value) for field in fields[1:])
