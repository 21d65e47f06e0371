"""Structured log events for ingestion pipeline runs."""

from __future__ import annotations

import enum
import logging
import typing as typ

from shopsync.upstream.observability import categorize_error

if typ.TYPE_CHECKING:
    import datetime as dt

    from shopsync.storage.models import ResourceKind

    from .models import IngestionResult

logger = logging.getLogger(__name__)


class IngestionEventType(enum.StrEnum):
    """Structured log event types for ingestion observability."""

    RUN_STARTED = "ingestion.run.started"
    RUN_COMPLETED = "ingestion.run.completed"
    RUN_FAILED = "ingestion.run.failed"
    RECORD_FAILED = "ingestion.record.failed"


class IngestionEventLogger:
    """Emit structured ingestion events via Python logging.

    Runs that finish with per-record errors complete at WARNING; fetch
    failures log at ERROR with a category for alert routing.
    """

    def log_run_started(self, shop_domain: str, kind: ResourceKind) -> None:
        """Log the start of one pipeline run."""
        logger.info(
            "[%s] shop=%s kind=%s",
            IngestionEventType.RUN_STARTED,
            shop_domain,
            kind,
        )

    def log_run_completed(self, shop_domain: str, result: IngestionResult) -> None:
        """Log pipeline completion with its accounting."""
        level = logging.INFO if result.success else logging.WARNING
        logger.log(
            level,
            "[%s] shop=%s kind=%s duration_seconds=%.3f records_processed=%d "
            "records_skipped=%d errors=%d success=%s",
            IngestionEventType.RUN_COMPLETED,
            shop_domain,
            result.kind,
            result.duration.total_seconds(),
            result.records_processed,
            result.records_skipped,
            len(result.errors),
            result.success,
        )

    def log_run_failed(
        self,
        shop_domain: str,
        kind: ResourceKind,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a fetch failure that stopped the run."""
        logger.error(
            "[%s] shop=%s kind=%s duration_seconds=%.3f error_type=%s "
            "error_category=%s error_message=%s",
            IngestionEventType.RUN_FAILED,
            shop_domain,
            kind,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
        )

    def log_record_failed(self, shop_domain: str, description: str) -> None:
        """Log a single record that could not be written."""
        logger.warning(
            "[%s] shop=%s error=%s",
            IngestionEventType.RECORD_FAILED,
            shop_domain,
            description,
        )
