"""Structured femtologging events for tenant syncs and sweeps."""

from __future__ import annotations

import enum
import typing as typ

from shopsync.logging import get_logger, log_error, log_info, log_warning
from shopsync.upstream.observability import categorize_error

if typ.TYPE_CHECKING:
    import datetime as dt

    from shopsync.logging import SupportsLog

    from .models import SweepResult, TenantSyncResult

logger = get_logger(__name__)


class SyncEventType(enum.StrEnum):
    """Structured log event types for the sync orchestrator and scheduler."""

    TENANT_STARTED = "sync.tenant.started"
    TENANT_COMPLETED = "sync.tenant.completed"
    TENANT_FAILED = "sync.tenant.failed"
    SWEEP_STARTED = "sync.sweep.started"
    SWEEP_COMPLETED = "sync.sweep.completed"
    SWEEP_FAILED = "sync.sweep.failed"
    SWEEP_SKIPPED = "sync.sweep.skipped"
    SCHEDULER_STARTED = "sync.scheduler.started"
    SCHEDULER_STOPPED = "sync.scheduler.stopped"


class SyncEventLogger:
    """Emit structured sync events via femtologging."""

    def __init__(self, log: SupportsLog | None = None) -> None:
        """Use ``log`` instead of the module logger when given."""
        self._logger = log or logger

    def log_tenant_started(self, shop_domain: str) -> None:
        """Log the start of one tenant sync."""
        log_info(
            self._logger, "[%s] shop=%s", SyncEventType.TENANT_STARTED, shop_domain
        )

    def log_tenant_completed(self, result: TenantSyncResult) -> None:
        """Log a tenant sync that returned, with per-kind accounting."""
        summary = " ".join(
            f"{r.kind}={r.records_processed}/{r.records_skipped}/{len(r.errors)}"
            for r in result.results
        )
        emit = log_info if result.success else log_warning
        emit(
            self._logger,
            "[%s] shop=%s duration_seconds=%.3f success=%s %s",
            SyncEventType.TENANT_COMPLETED,
            result.shop_domain,
            result.duration.total_seconds(),
            result.success,
            summary,
        )

    def log_tenant_failed(
        self, shop_domain: str, error: BaseException, duration: dt.timedelta
    ) -> None:
        """Log a tenant sync that raised."""
        log_error(
            self._logger,
            "[%s] shop=%s duration_seconds=%.3f error_type=%s error_category=%s "
            "error_message=%s",
            SyncEventType.TENANT_FAILED,
            shop_domain,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_sweep_started(self, tenant_count: int) -> None:
        """Log the start of a sweep."""
        log_info(
            self._logger,
            "[%s] tenants=%d",
            SyncEventType.SWEEP_STARTED,
            tenant_count,
        )

    def log_sweep_completed(self, result: SweepResult) -> None:
        """Log a finished sweep."""
        log_info(
            self._logger,
            "[%s] tenants_attempted=%d tenants_failed=%d duration_seconds=%.3f",
            SyncEventType.SWEEP_COMPLETED,
            result.tenants_attempted,
            result.tenants_failed,
            result.duration.total_seconds(),
        )

    def log_sweep_failed(self, error: BaseException) -> None:
        """Log a scheduled sweep that raised before finishing."""
        log_error(
            self._logger,
            "[%s] error_type=%s error_category=%s error_message=%s",
            SyncEventType.SWEEP_FAILED,
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_sweep_skipped(self) -> None:
        """Log a sweep request that joined the sweep already running."""
        log_info(self._logger, "[%s] reason=in_progress", SyncEventType.SWEEP_SKIPPED)

    def log_scheduler_started(self, interval_minutes: int) -> None:
        """Log scheduler start."""
        log_info(
            self._logger,
            "[%s] interval_minutes=%d",
            SyncEventType.SCHEDULER_STARTED,
            interval_minutes,
        )

    def log_scheduler_stopped(self) -> None:
        """Log scheduler stop."""
        log_info(self._logger, "[%s]", SyncEventType.SCHEDULER_STOPPED)
