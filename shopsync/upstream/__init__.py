"""Upstream Admin API client, circuit breaker and cursor pagination."""

from __future__ import annotations

from .circuit import CircuitBreaker, CircuitPhase, CircuitState
from .client import ApiResponse, PageClient, ShopifyApiClient
from .config import CircuitBreakerPolicy, ClientConfig, RetryPolicy, backoff_delay
from .errors import (
    ApiClientConfigError,
    ApiClientError,
    AuthError,
    CircuitOpenError,
    ErrorKind,
    NetworkError,
    RateLimitExceededError,
    UpstreamError,
    ValidationError,
)
from .observability import ClientEventLogger, ErrorCategory, categorize_error
from .pagination import PAGE_SIZE_MAX, ResourceFetcher, next_page_cursor

__all__ = [
    "PAGE_SIZE_MAX",
    "ApiClientConfigError",
    "ApiClientError",
    "ApiResponse",
    "AuthError",
    "CircuitBreaker",
    "CircuitBreakerPolicy",
    "CircuitOpenError",
    "CircuitPhase",
    "CircuitState",
    "ClientConfig",
    "ClientEventLogger",
    "ErrorCategory",
    "ErrorKind",
    "NetworkError",
    "PageClient",
    "RateLimitExceededError",
    "ResourceFetcher",
    "RetryPolicy",
    "ShopifyApiClient",
    "UpstreamError",
    "ValidationError",
    "backoff_delay",
    "categorize_error",
    "next_page_cursor",
]
