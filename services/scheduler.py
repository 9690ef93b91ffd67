"""Live polling of one batch at a fixed interval."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol

from models.records import Reading
from models.session import Session
from services.projection import (
    DashboardView,
    Renderer,
    describe_failure,
    describe_status,
    project,
)
from services.reconciler import Reconciler, ViewUpdate
from services.store_client import FetchError, InvalidBatchId, normalize_batch_id

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0


class BatchSource(Protocol):
    async def fetch_batch(self, batch_id: str) -> List[Reading]:
        ...


class SchedulerState(str, Enum):
    idle = "idle"
    running = "running"


class CycleOutcome(str, Enum):
    updated = "updated"
    empty = "empty"
    unchanged = "unchanged"
    failed = "failed"
    skipped = "skipped"
    discarded = "discarded"


@dataclass(frozen=True)
class CycleReport:
    outcome: CycleOutcome
    batch_id: str
    view: Optional[DashboardView] = None
    error: Optional[FetchError] = None


class RepeatingTask:
    """Cancellable handle that awaits ``callback`` every ``interval`` seconds.

    The next wait only starts once the previous callback returned, so two
    invocations never overlap.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[object]],
        name: Optional[str] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("Interval must be positive.")
        self.interval = interval
        self._callback = callback
        self._name = name
        self._task: Optional[asyncio.Task[None]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._cancelled = False

    def start(self) -> "RepeatingTask":
        if self._task is not None:
            raise RuntimeError("Repeating task already started.")
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._run(), name=self._name)
        return self

    @property
    def active(self) -> bool:
        return self._task is not None and not self._cancelled and not self._task.done()

    def cancel(self) -> None:
        """Stop future invocations and interrupt the current one. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is None or self._task.done() or self._loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._task.cancel()
        else:
            self._loop.call_soon_threadsafe(self._task.cancel)

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self.interval)
            if self._cancelled:
                return
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001 - keep the timer alive
                logger.exception("Repeating task callback failed")


class PollScheduler:
    """Drives fetch, reconcile and render cycles for the monitored batch.

    The scheduler exclusively owns the :class:`Session`. A session is live
    exactly while a :class:`RepeatingTask` is armed for it.
    """

    def __init__(
        self,
        client: BatchSource,
        renderer: Renderer,
        reconciler: Optional[Reconciler] = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        session: Optional[Session] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("Poll interval must be positive.")
        self._client = client
        self._renderer = renderer
        self._reconciler = reconciler if reconciler is not None else Reconciler()
        self._interval = interval
        self._session = session if session is not None else Session()
        self._timer: Optional[RepeatingTask] = None
        self._epoch = 0
        self._cycle_lock = asyncio.Lock()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def state(self) -> SchedulerState:
        if self._timer is not None and self._timer.active:
            return SchedulerState.running
        return SchedulerState.idle

    @property
    def interval(self) -> float:
        return self._interval

    async def start(self, batch_id: str) -> CycleReport:
        """Begin live monitoring: one forced cycle now, then one per interval."""
        batch_id = normalize_batch_id(batch_id)
        self.stop()
        timer = RepeatingTask(self._interval, self._scheduled_cycle, name=f"poll:{batch_id}")
        self._epoch += 1
        self._timer = timer.start()
        self._session = Session(batch_id=batch_id, is_live=True)
        logger.info(
            "Live monitoring started",
            extra={"batch_id": batch_id, "epoch": self._epoch},
        )
        return await self._run_cycle(force=True, wait=True)

    def stop(self) -> Optional[Session]:
        """Disarm the timer and reset the session.

        Returns the session that was closed, or ``None`` when already idle.
        """
        if self._timer is None:
            return None
        self._timer.cancel()
        self._timer = None
        closed = replace(self._session, is_live=False)
        self._epoch += 1
        self._session = Session()
        logger.info(
            "Live monitoring stopped",
            extra={
                "batch_id": closed.batch_id,
                "record_count": closed.last_record_count,
                "epoch": self._epoch,
            },
        )
        return closed

    async def toggle(self, batch_id: str) -> Optional[CycleReport]:
        """Start monitoring ``batch_id`` when idle, stop when already watching it."""
        batch_id = normalize_batch_id(batch_id)
        if self.state is SchedulerState.running and self._session.batch_id == batch_id:
            self.stop()
            return None
        return await self.start(batch_id)

    async def refresh(self, batch_id: Optional[str] = None) -> CycleReport:
        """Run a user-initiated, forced cycle.

        Without ``batch_id`` the current session is refreshed. With a batch
        other than the one being watched, live monitoring stops and a
        one-shot, non-live query is made instead.
        """
        if batch_id is not None:
            batch_id = normalize_batch_id(batch_id)
            if batch_id != self._session.batch_id:
                self.stop()
                self._epoch += 1
                self._session = Session(batch_id=batch_id)
        elif not self._session.batch_id:
            raise InvalidBatchId("No batch is selected.")
        return await self._run_cycle(force=True, wait=True)

    async def _scheduled_cycle(self) -> None:
        await self._run_cycle(force=False, wait=False)

    async def _run_cycle(self, force: bool, wait: bool) -> CycleReport:
        epoch = self._epoch
        batch_id = self._session.batch_id
        if not wait and self._cycle_lock.locked():
            logger.debug(
                "Skipping poll while a previous cycle is in flight",
                extra={"batch_id": batch_id, "epoch": epoch},
            )
            return CycleReport(CycleOutcome.skipped, batch_id)

        async with self._cycle_lock:
            if epoch != self._epoch:
                return self._discard(batch_id, epoch)
            session = self._session
            try:
                fetched = await self._client.fetch_batch(session.batch_id)
            except FetchError as exc:
                if epoch != self._epoch:
                    return self._discard(batch_id, epoch)
                return self._fail(session, exc)

            if epoch != self._epoch:
                return self._discard(batch_id, epoch)

            # A recovered connection always repaints to clear the failure state.
            self._session, update = self._reconciler.reconcile(
                session, fetched, force=force or session.disconnected
            )
            if update is None:
                return CycleReport(CycleOutcome.unchanged, batch_id)
            view = self._paint(update)

        outcome = CycleOutcome.empty if update.is_empty else CycleOutcome.updated
        return CycleReport(outcome, batch_id, view=view)

    def _fail(self, session: Session, error: FetchError) -> CycleReport:
        self._session = session.with_failure()
        logger.warning(
            "Poll failed: %s",
            error,
            extra={
                "batch_id": session.batch_id,
                "reason": error.reason.value,
                "status_code": error.status_code,
            },
        )
        self._renderer.render_status(describe_failure(error))
        return CycleReport(CycleOutcome.failed, session.batch_id, error=error)

    def _discard(self, batch_id: str, epoch: int) -> CycleReport:
        logger.debug(
            "Discarding poll result for a closed session",
            extra={"batch_id": batch_id, "epoch": epoch},
        )
        return CycleReport(CycleOutcome.discarded, batch_id)

    def _paint(self, update: ViewUpdate) -> DashboardView:
        view = project(update.readings, update.status)
        status_line = describe_status(update.batch_id, update.status)
        if update.is_empty:
            self._renderer.clear(status_line.message)
        else:
            self._renderer.render_rows(view.rows)
            self._renderer.render_chart(view.series)
        self._renderer.render_status(status_line)
        logger.info(
            "View updated",
            extra={
                "batch_id": update.batch_id,
                "record_count": update.status.total,
                "alert_count": update.status.alert_count,
                "severity": update.status.severity.value,
            },
        )
        return view
