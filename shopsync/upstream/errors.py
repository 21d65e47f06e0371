"""Classified failures raised by the upstream API client."""

from __future__ import annotations

import enum


class ErrorKind(enum.StrEnum):
    """Machine-readable failure kinds shared by client, pipelines and sync."""

    VALIDATION = "validation"
    AUTH = "auth"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    UPSTREAM = "upstream"
    NETWORK = "network"
    CIRCUIT_OPEN = "circuit_open"
    RECORD_WRITE = "record_write"
    TENANT_NOT_FOUND = "tenant_not_found"


class ApiClientError(RuntimeError):
    """Base class for failures surfaced by :class:`ShopifyApiClient`."""

    kind: ErrorKind = ErrorKind.UPSTREAM

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Record the optional HTTP status alongside the message."""
        self.status_code = status_code
        super().__init__(message)


class ValidationError(ApiClientError):
    """The upstream API rejected the request as invalid; never retried."""

    kind = ErrorKind.VALIDATION

    @classmethod
    def rejected(cls, method: str, path: str, status_code: int) -> ValidationError:
        """Return an error for a 4xx response other than auth failures."""
        return cls(
            f"upstream rejected {method} {path} with HTTP {status_code}",
            status_code=status_code,
        )


class AuthError(ApiClientError):
    """The tenant credential is invalid or expired; never retried."""

    kind = ErrorKind.AUTH

    @classmethod
    def rejected(cls, status_code: int) -> AuthError:
        """Return an error for 401/403 responses."""
        return cls(
            f"upstream refused the access token (HTTP {status_code})",
            status_code=status_code,
        )


class RateLimitExceededError(ApiClientError):
    """Retries were exhausted while the upstream kept answering 429."""

    kind = ErrorKind.RATE_LIMIT_EXCEEDED

    @classmethod
    def exhausted(cls, retries: int) -> RateLimitExceededError:
        """Return an error after ``retries`` rate-limited retries."""
        return cls(
            f"rate limit still in effect after {retries} retries", status_code=429
        )


class UpstreamError(ApiClientError):
    """Retries were exhausted under 5xx or 408 responses."""

    kind = ErrorKind.UPSTREAM

    @classmethod
    def exhausted(cls, status_code: int, retries: int) -> UpstreamError:
        """Return an error after ``retries`` transient failures."""
        return cls(
            f"upstream HTTP {status_code} persisted after {retries} retries",
            status_code=status_code,
        )

    @classmethod
    def malformed_body(cls, path: str) -> UpstreamError:
        """Return an error for a 2xx response whose body is not JSON."""
        return cls(f"upstream returned a non-JSON body for {path}")


class NetworkError(ApiClientError):
    """No response was received (connection failure or timeout)."""

    kind = ErrorKind.NETWORK

    @classmethod
    def from_transport(cls, exc: BaseException, retries: int) -> NetworkError:
        """Wrap an ``httpx`` transport exception."""
        return cls(
            f"transport failure after {retries} retries: {type(exc).__name__}: {exc}"
        )


class CircuitOpenError(ApiClientError):
    """The circuit is open; the call was rejected without touching the network."""

    kind = ErrorKind.CIRCUIT_OPEN

    @classmethod
    def for_base_url(cls, base_url: str, retry_in_s: float) -> CircuitOpenError:
        """Return an error naming the target and remaining cooldown."""
        return cls(
            f"circuit open for {base_url}; next probe allowed in {retry_in_s:.1f}s"
        )


class ApiClientConfigError(RuntimeError):
    """Raised when client configuration is invalid."""

    @classmethod
    def empty_token(cls) -> ApiClientConfigError:
        """Return an error when the tenant access token is empty."""
        return cls("tenant access token must be non-empty")

    @classmethod
    def empty_shop_domain(cls) -> ApiClientConfigError:
        """Return an error when the shop domain is empty."""
        return cls("shop domain must be non-empty")
