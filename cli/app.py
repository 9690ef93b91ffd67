from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import NoReturn, Optional

import typer

from cli.config import CLIConfig, load_config
from cli.render import TerminalRenderer, render_detail
from logging_config import configure_logging
from services.projection import describe_connectivity, describe_failure, detail_view
from services.reconciler import Reconciler
from services.scheduler import CycleOutcome, PollScheduler
from services.store_client import (
    FetchError,
    InvalidBatchId,
    RecordStoreClient,
    normalize_batch_id,
)


@dataclass
class CLIState:
    config: CLIConfig


app = typer.Typer(
    help="Live cold-chain temperature monitoring against a block record store.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _batch_id(value: str) -> str:
    try:
        return normalize_batch_id(value)
    except InvalidBatchId as exc:
        raise typer.BadParameter(str(exc), param_hint="BATCH_ID") from exc


def _require_positive(value: Optional[float]) -> Optional[float]:
    if value is not None and value <= 0:
        raise typer.BadParameter("must be greater than 0.")
    return value


def _build_client(config: CLIConfig) -> RecordStoreClient:
    return RecordStoreClient(config.base_url, timeout=config.request_timeout)


def _report_failure(error: FetchError) -> NoReturn:
    typer.secho(describe_failure(error).message, fg=typer.colors.RED, err=True)
    if error.detail:
        typer.secho(f"  {error.detail}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Record store base URL (defaults to STORE_BASE_URL env or http://127.0.0.1:8080).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between polls while watching a batch.",
        callback=_require_positive,
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Transport timeout in seconds for each request.",
        callback=_require_positive,
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Log level for diagnostics written to stderr.",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level)
    config = load_config(
        base_url=base_url,
        poll_interval=poll_interval,
        request_timeout=timeout,
    )
    ctx.obj = CLIState(config=config)


@app.command("ping")
def ping_command(ctx: typer.Context) -> None:
    """Check whether the record store is reachable."""
    state = _get_state(ctx)

    async def probe() -> bool:
        client = _build_client(state.config)
        try:
            return await client.ping()
        finally:
            await client.aclose()

    reachable = asyncio.run(probe())
    TerminalRenderer().render_connectivity(reachable, describe_connectivity(reachable))


@app.command("fetch")
def fetch_command(
    ctx: typer.Context,
    batch_id: str = typer.Argument(..., help="Batch identifier to query."),
) -> None:
    """Query a batch once and display its readings."""
    state = _get_state(ctx)
    batch_id = _batch_id(batch_id)

    async def run_once():
        client = _build_client(state.config)
        try:
            scheduler = PollScheduler(
                client, TerminalRenderer(), interval=state.config.poll_interval
            )
            return await scheduler.refresh(batch_id)
        finally:
            await client.aclose()

    report = asyncio.run(run_once())
    if report.outcome is CycleOutcome.failed:
        # The renderer already showed the status line.
        if report.error is not None and report.error.detail:
            typer.secho(f"  {report.error.detail}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    batch_id: str = typer.Argument(..., help="Batch identifier to monitor."),
    duration: Optional[float] = typer.Option(
        None,
        "--duration",
        help="Stop after this many seconds instead of waiting for Ctrl-C.",
    ),
) -> None:
    """Monitor a batch live, repainting whenever new readings arrive."""
    state = _get_state(ctx)
    batch_id = _batch_id(batch_id)
    renderer = TerminalRenderer()
    typer.echo(
        f"Watching batch {batch_id} on {state.config.base_url} "
        f"(every {state.config.poll_interval:g}s, Ctrl-C to stop) ..."
    )

    async def monitor() -> None:
        client = _build_client(state.config)
        scheduler = PollScheduler(client, renderer, interval=state.config.poll_interval)
        try:
            reachable = await client.ping()
            renderer.render_connectivity(reachable, describe_connectivity(reachable))
            await scheduler.toggle(batch_id)
            if duration is not None:
                await asyncio.sleep(duration)
            else:
                await asyncio.Event().wait()
        finally:
            renderer.render_stopped(scheduler.stop())
            await client.aclose()

    try:
        asyncio.run(monitor())
    except KeyboardInterrupt:
        typer.echo("Interrupted.")


@app.command("show")
def show_command(
    ctx: typer.Context,
    batch_id: str = typer.Argument(..., help="Batch identifier containing the reading."),
    sequence_index: int = typer.Argument(..., help="Block number of the reading."),
) -> None:
    """Show every field of one reading, including its integrity hashes."""
    state = _get_state(ctx)
    batch_id = _batch_id(batch_id)

    async def load():
        client = _build_client(state.config)
        try:
            return await client.fetch_batch(batch_id)
        finally:
            await client.aclose()

    try:
        fetched = asyncio.run(load())
    except FetchError as exc:
        _report_failure(exc)

    for reading in Reconciler().classify_all(fetched):
        if reading.sequence_index == sequence_index:
            render_detail(detail_view(reading))
            return
    raise typer.BadParameter(
        f"Batch {batch_id} has no block #{sequence_index}.",
        param_hint="SEQUENCE_INDEX",
    )
