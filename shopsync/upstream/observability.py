"""Structured logging and error categorisation for upstream API traffic.

Events are emitted as ``[event.type] key=value`` lines through the standard
library logger so log aggregators can parse retry storms and breaker trips.
Access tokens never appear in these messages.
"""

from __future__ import annotations

import enum
import logging

from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from .errors import (
    ApiClientConfigError,
    ApiClientError,
    AuthError,
    CircuitOpenError,
    NetworkError,
    RateLimitExceededError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


class ClientEventType(enum.StrEnum):
    """Structured log event types for upstream requests."""

    REQUEST_RETRY = "client.request.retry"
    REQUEST_FAILED = "client.request.failed"
    CIRCUIT_OPENED = "client.circuit.opened"
    CIRCUIT_REJECTED = "client.circuit.rejected"
    CIRCUIT_PROBE = "client.circuit.probe"
    CIRCUIT_CLOSED = "client.circuit.closed"


class ErrorCategory(enum.StrEnum):
    """Categories for alert routing."""

    TRANSIENT = "transient"
    RATE_LIMITED = "rate_limited"
    AUTH = "auth"
    CLIENT_ERROR = "client_error"
    CIRCUIT_OPEN = "circuit_open"
    NETWORK = "network"
    CONFIGURATION = "configuration"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATA_INTEGRITY = "data_integrity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (RateLimitExceededError, ErrorCategory.RATE_LIMITED),
    (AuthError, ErrorCategory.AUTH),
    (CircuitOpenError, ErrorCategory.CIRCUIT_OPEN),
    (NetworkError, ErrorCategory.NETWORK),
    (UpstreamError, ErrorCategory.TRANSIENT),
    (ApiClientError, ErrorCategory.CLIENT_ERROR),
    (ApiClientConfigError, ErrorCategory.CONFIGURATION),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (IntegrityError, ErrorCategory.DATA_INTEGRITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Return the alerting category for ``exc``.

    Order matters: specific client errors are matched before the
    :class:`ApiClientError` catch-all.
    """
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category
    return ErrorCategory.UNKNOWN


class ClientEventLogger:
    """Emit structured client events at INFO/WARNING/ERROR."""

    def log_retry(  # noqa: PLR0913
        self,
        base_url: str,
        method: str,
        path: str,
        *,
        attempt: int,
        delay_s: float,
        reason: str,
    ) -> None:
        """Log a scheduled retry."""
        logger.warning(
            "[%s] base_url=%s method=%s path=%s attempt=%d delay_seconds=%.3f "
            "reason=%s",
            ClientEventType.REQUEST_RETRY,
            base_url,
            method,
            path,
            attempt,
            delay_s,
            reason,
        )

    def log_request_failed(
        self, base_url: str, method: str, path: str, error: ApiClientError
    ) -> None:
        """Log a call that ended in a classified failure."""
        logger.error(
            "[%s] base_url=%s method=%s path=%s error_kind=%s status_code=%s "
            "error_message=%s",
            ClientEventType.REQUEST_FAILED,
            base_url,
            method,
            path,
            error.kind,
            error.status_code,
            str(error),
        )

    def log_circuit_opened(self, base_url: str, consecutive_failures: int) -> None:
        """Log the transition into the open state."""
        logger.error(
            "[%s] base_url=%s consecutive_failures=%d",
            ClientEventType.CIRCUIT_OPENED,
            base_url,
            consecutive_failures,
        )

    def log_circuit_rejected(self, base_url: str, retry_in_s: float) -> None:
        """Log a call rejected by the open circuit."""
        logger.warning(
            "[%s] base_url=%s retry_in_seconds=%.1f",
            ClientEventType.CIRCUIT_REJECTED,
            base_url,
            retry_in_s,
        )

    def log_circuit_probe(self, base_url: str) -> None:
        """Log that a half-open probe is being let through."""
        logger.info("[%s] base_url=%s", ClientEventType.CIRCUIT_PROBE, base_url)

    def log_circuit_closed(self, base_url: str) -> None:
        """Log recovery after a successful probe."""
        logger.info("[%s] base_url=%s", ClientEventType.CIRCUIT_CLOSED, base_url)


__all__ = [
    "ClientEventLogger",
    "ClientEventType",
    "ErrorCategory",
    "categorize_error",
]
