"""Recurring multi-tenant sweep on an APScheduler interval job.

Exactly one job is registered while the scheduler runs; ``start`` and
``stop`` are both idempotent. A sweep that raises is logged and swallowed so
the next interval still fires. A sweep requested while another is running
joins the running one, so sweeps never overlap. Stopping prevents further
sweeps but leaves a sweep already in flight running;
:meth:`SyncScheduler.drain` waits for it.
"""

from __future__ import annotations

import asyncio
import typing as typ

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .observability import SyncEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import SweepResult

    type SweepFn = cabc.Callable[[], cabc.Awaitable[SweepResult]]
    type SchedulerFactory = cabc.Callable[[], AsyncIOScheduler]

_JOB_ID = "shopsync-sweep"


class SyncScheduler:
    """Run ``sweep`` every ``interval_minutes`` on the running event loop."""

    def __init__(
        self,
        sweep: SweepFn,
        *,
        scheduler_factory: SchedulerFactory = AsyncIOScheduler,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Configure the sweep callable and how schedulers are built."""
        self._sweep = sweep
        self._scheduler_factory = scheduler_factory
        self._events = event_logger or SyncEventLogger()
        self._scheduler: AsyncIOScheduler | None = None
        self._in_flight: set[asyncio.Task[SweepResult | None]] = set()

    @property
    def running(self) -> bool:
        """Return ``True`` while the recurring job is registered."""
        return self._scheduler is not None

    @property
    def sweep_in_progress(self) -> bool:
        """Return ``True`` while a sweep is executing."""
        return bool(self._in_flight)

    def start(self, interval_minutes: int, *, run_immediately: bool = False) -> bool:
        """Register the recurring sweep; returns ``False`` if already running.

        Must be called from a running event loop.
        """
        if interval_minutes < 1:
            msg = f"interval_minutes must be positive, got: {interval_minutes}"
            raise ValueError(msg)
        if self._scheduler is not None:
            return False

        scheduler = self._scheduler_factory()
        scheduler.add_job(
            self._run_job,
            trigger=IntervalTrigger(minutes=interval_minutes),
            id=_JOB_ID,
            name="Sync all tenants",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        self._events.log_scheduler_started(interval_minutes)
        if run_immediately:
            self._spawn_sweep()
        return True

    def stop(self) -> bool:
        """Remove the recurring job; returns ``False`` if it was not running.

        A sweep already in flight is not interrupted.
        """
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return False
        scheduler.shutdown(wait=False)
        self._events.log_scheduler_stopped()
        return True

    async def drain(self) -> None:
        """Wait for any in-flight sweep to finish."""
        while self._in_flight:
            await asyncio.wait(set(self._in_flight))

    async def run_once(self) -> SweepResult | None:
        """Run one sweep now, logging instead of raising on failure.

        If a sweep is already running, wait for it and return its result
        instead of starting another.
        """
        return await asyncio.shield(self._spawn_sweep())

    async def _run_job(self) -> None:
        # Scheduler shutdown must not cancel a running sweep.
        await asyncio.shield(self._spawn_sweep())

    def _spawn_sweep(self) -> asyncio.Task[SweepResult | None]:
        # At most one sweep runs at a time, whoever requested it.
        running = next((t for t in self._in_flight if not t.done()), None)
        if running is not None:
            self._events.log_sweep_skipped()
            return running
        task = asyncio.get_running_loop().create_task(self._guarded_sweep())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _guarded_sweep(self) -> SweepResult | None:
        try:
            return await self._sweep()
        except Exception as exc:  # noqa: BLE001 - scheduled runs never propagate
            self._events.log_sweep_failed(exc)
            return None
