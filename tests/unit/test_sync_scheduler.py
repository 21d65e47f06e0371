"""Unit tests for the recurring sweep scheduler."""

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from shopsync.sync import SweepResult, SyncEventLogger, SyncScheduler
from tests.helpers.fakes import FakeLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class _FakeScheduler:
    """Records the APScheduler calls made by SyncScheduler."""

    def __init__(self) -> None:
        self.jobs: list[dict[str, typ.Any]] = []
        self.started = False
        self.shutdown_calls: list[bool] = []

    def add_job(self, func: cabc.Callable[[], typ.Any], **kwargs: typ.Any) -> None:
        self.jobs.append({"func": func, **kwargs})

    def start(self) -> None:
        self.started = True

    def shutdown(self, *, wait: bool = True) -> None:
        self.shutdown_calls.append(wait)


class _Sweep:
    """Sweep double that counts runs and can block or fail."""

    def __init__(self, *, error: Exception | None = None) -> None:
        self.calls = 0
        self.error = error
        self.gate: asyncio.Event | None = None
        self.active = 0
        self.peak = 0

    async def __call__(self) -> SweepResult:
        self.calls += 1
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
            return SweepResult(outcomes=(), duration=dt.timedelta(0))
        finally:
            self.active -= 1


def _scheduler(
    sweep: _Sweep,
    fake: _FakeScheduler | None = None,
    log: FakeLogger | None = None,
) -> SyncScheduler:
    target = fake or _FakeScheduler()
    return SyncScheduler(
        sweep,
        scheduler_factory=lambda: target,  # type: ignore[arg-type,return-value]
        event_logger=SyncEventLogger(log or FakeLogger()),
    )


class TestLifecycle:
    """start and stop."""

    @pytest.mark.asyncio
    async def test_start_registers_one_interval_job(self) -> None:
        """A single coalescing, non-overlapping interval job is added."""
        fake = _FakeScheduler()
        scheduler = _scheduler(_Sweep(), fake)

        assert scheduler.start(15) is True

        (job,) = fake.jobs
        assert fake.started
        assert isinstance(job["trigger"], IntervalTrigger)
        assert job["trigger"].interval == dt.timedelta(minutes=15)
        assert job["max_instances"] == 1
        assert job["coalesce"] is True
        assert scheduler.running

    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self) -> None:
        """Repeated calls are no-ops that report False."""
        fake = _FakeScheduler()
        log = FakeLogger()
        scheduler = _scheduler(_Sweep(), fake, log)

        assert scheduler.start(10) is True
        assert scheduler.start(10) is False
        assert len(fake.jobs) == 1

        assert scheduler.stop() is True
        assert scheduler.stop() is False
        assert fake.shutdown_calls == [False]
        assert not scheduler.running
        assert log.messages("INFO") == [
            "[sync.scheduler.started] interval_minutes=10",
            "[sync.scheduler.stopped]",
        ]

    @pytest.mark.asyncio
    async def test_restart_after_stop_builds_fresh_scheduler(self) -> None:
        """Stopping then starting again registers the job once more."""
        built: list[_FakeScheduler] = []

        def factory() -> _FakeScheduler:
            built.append(_FakeScheduler())
            return built[-1]

        scheduler = SyncScheduler(
            _Sweep(),
            scheduler_factory=factory,  # type: ignore[arg-type]
            event_logger=SyncEventLogger(FakeLogger()),
        )
        scheduler.start(5)
        scheduler.stop()
        scheduler.start(5)

        assert len(built) == 2
        assert all(len(s.jobs) == 1 for s in built)

    @pytest.mark.parametrize("interval", [0, -3])
    def test_interval_must_be_positive(self, interval: int) -> None:
        """Sub-minute intervals are rejected."""
        with pytest.raises(ValueError, match="interval_minutes"):
            _scheduler(_Sweep()).start(interval)

    @pytest.mark.asyncio
    async def test_run_immediately(self) -> None:
        """The first sweep can run without waiting an interval."""
        sweep = _Sweep()
        scheduler = _scheduler(sweep, _FakeScheduler())

        scheduler.start(10, run_immediately=True)
        await scheduler.drain()

        assert sweep.calls == 1
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_with_real_apscheduler(self) -> None:
        """The default factory starts and stops an AsyncIOScheduler."""
        scheduler = SyncScheduler(
            _Sweep(), event_logger=SyncEventLogger(FakeLogger())
        )

        assert scheduler.start(60)
        assert scheduler.stop()


class TestSweeps:
    """Sweep execution through the scheduled job."""

    @pytest.mark.asyncio
    async def test_job_runs_sweep(self) -> None:
        """Invoking the registered job runs one sweep."""
        fake = _FakeScheduler()
        sweep = _Sweep()
        scheduler = _scheduler(sweep, fake)
        scheduler.start(10)

        await fake.jobs[0]["func"]()

        assert sweep.calls == 1
        assert not scheduler.sweep_in_progress

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_swallowed(self) -> None:
        """A raising sweep is logged; the scheduler keeps running."""
        fake = _FakeScheduler()
        log = FakeLogger()
        sweep = _Sweep(error=RuntimeError("tenant list failed"))
        scheduler = _scheduler(sweep, fake, log)
        scheduler.start(10)

        await fake.jobs[0]["func"]()
        result = await scheduler.run_once()

        assert result is None
        assert scheduler.running
        errors = log.messages("ERROR")
        assert len(errors) == 2
        assert errors[0].startswith("[sync.sweep.failed] error_type=RuntimeError")
        assert "error_message=tenant list failed" in errors[0]

    @pytest.mark.asyncio
    async def test_run_once_returns_sweep_result(self) -> None:
        """run_once works without starting the schedule."""
        scheduler = _scheduler(_Sweep())

        result = await scheduler.run_once()

        assert result is not None
        assert result.tenants_attempted == 0

    @pytest.mark.asyncio
    async def test_stop_does_not_cancel_in_flight_sweep(self) -> None:
        """A sweep already running finishes after stop; drain waits for it."""
        sweep = _Sweep()
        sweep.gate = asyncio.Event()
        scheduler = _scheduler(sweep, _FakeScheduler())
        scheduler.start(10, run_immediately=True)
        await asyncio.sleep(0)

        scheduler.stop()
        assert scheduler.sweep_in_progress

        sweep.gate.set()
        await asyncio.wait_for(scheduler.drain(), timeout=1)

        assert not scheduler.sweep_in_progress
        assert sweep.calls == 1

    @pytest.mark.asyncio
    async def test_job_joins_immediate_sweep_still_running(self) -> None:
        """An interval firing during the initial sweep does not start another."""
        fake = _FakeScheduler()
        log = FakeLogger()
        sweep = _Sweep()
        sweep.gate = asyncio.Event()
        scheduler = _scheduler(sweep, fake, log)
        scheduler.start(1, run_immediately=True)
        await asyncio.sleep(0)

        job = asyncio.ensure_future(fake.jobs[0]["func"]())
        await asyncio.sleep(0)
        sweep.gate.set()
        await asyncio.wait_for(job, timeout=1)
        await scheduler.drain()

        assert sweep.calls == 1
        assert sweep.peak == 1
        assert "[sync.sweep.skipped] reason=in_progress" in log.messages("INFO")

    @pytest.mark.asyncio
    async def test_restart_during_sweep_does_not_overlap(self) -> None:
        """stop then start with an immediate run joins the sweep in flight."""
        sweep = _Sweep()
        sweep.gate = asyncio.Event()
        scheduler = _scheduler(sweep, _FakeScheduler())
        scheduler.start(10, run_immediately=True)
        await asyncio.sleep(0)

        scheduler.stop()
        scheduler.start(10, run_immediately=True)
        await asyncio.sleep(0)
        sweep.gate.set()
        await asyncio.wait_for(scheduler.drain(), timeout=1)

        assert sweep.calls == 1
        assert sweep.peak == 1

    @pytest.mark.asyncio
    async def test_run_once_waits_for_running_sweep(self) -> None:
        """A manual run during a scheduled sweep returns that sweep's result."""
        sweep = _Sweep()
        sweep.gate = asyncio.Event()
        scheduler = _scheduler(sweep, _FakeScheduler())
        scheduler.start(10, run_immediately=True)
        await asyncio.sleep(0)

        manual = asyncio.ensure_future(scheduler.run_once())
        await asyncio.sleep(0)
        sweep.gate.set()
        result = await asyncio.wait_for(manual, timeout=1)

        assert result is not None
        assert sweep.calls == 1
        assert sweep.peak == 1
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_sweeps_after_completion_run_again(self) -> None:
        """The guard only joins running sweeps; later requests start new ones."""
        sweep = _Sweep()
        scheduler = _scheduler(sweep)

        await scheduler.run_once()
        await scheduler.run_once()

        assert sweep.calls == 2

    @pytest.mark.asyncio
    async def test_cancelled_job_leaves_sweep_running(self) -> None:
        """Cancelling the job coroutine does not cancel the sweep it started."""
        fake = _FakeScheduler()
        sweep = _Sweep()
        sweep.gate = asyncio.Event()
        scheduler = _scheduler(sweep, fake)
        scheduler.start(10)

        job = asyncio.ensure_future(fake.jobs[0]["func"]())
        await asyncio.sleep(0)
        job.cancel()
        with pytest.raises(asyncio.CancelledError):
            await job

        assert scheduler.sweep_in_progress
        sweep.gate.set()
        await scheduler.drain()
        assert sweep.calls == 1
