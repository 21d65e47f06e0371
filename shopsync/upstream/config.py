"""Configuration for the upstream Admin API client.

Defaults mirror the upstream platform's published limits: 250 records per
page, a five-retry budget and a one-minute circuit cooldown.

>>> config = ClientConfig()
>>> config.retry.max_retries
5

"""

from __future__ import annotations

import dataclasses as dc
import os

from shopsync.common.env import parse_positive_int, parse_positive_number

_DEFAULT_API_VERSION = "2024-01"


@dc.dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry budget and exponential backoff bounds (seconds)."""

    max_retries: int = 5
    base_delay_s: float = 1.0
    max_delay_s: float = 32.0


@dc.dataclass(frozen=True, slots=True)
class CircuitBreakerPolicy:
    """Consecutive-failure threshold and open-state cooldown (seconds)."""

    threshold: int = 5
    timeout_s: float = 60.0


@dc.dataclass(frozen=True, slots=True)
class ClientConfig:
    """Settings shared by every tenant's API client.

    Attributes
    ----------
    api_version
        Versioned path segment of the Admin REST API, e.g. ``2024-01``.
    timeout_s
        Per-request HTTP timeout handed to ``httpx``.
    retry
        Retry budget and backoff bounds.
    circuit
        Circuit breaker threshold and cooldown.
    user_agent
        ``User-Agent`` header sent with every request.

    """

    api_version: str = _DEFAULT_API_VERSION
    timeout_s: float = 30.0
    retry: RetryPolicy = dc.field(default_factory=RetryPolicy)
    circuit: CircuitBreakerPolicy = dc.field(default_factory=CircuitBreakerPolicy)
    user_agent: str = "shopsync/0.1"

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Build configuration from ``SHOPSYNC_*`` environment variables.

        Reads ``SHOPSYNC_API_VERSION``, ``SHOPSYNC_HTTP_TIMEOUT_S``,
        ``SHOPSYNC_MAX_RETRIES``, ``SHOPSYNC_CIRCUIT_THRESHOLD`` and
        ``SHOPSYNC_CIRCUIT_TIMEOUT_S``.

        Raises
        ------
        ValueError
            If a numeric variable is malformed or not positive.

        """
        api_version = (
            os.environ.get("SHOPSYNC_API_VERSION", "").strip() or _DEFAULT_API_VERSION
        )
        return cls(
            api_version=api_version,
            timeout_s=parse_positive_number("SHOPSYNC_HTTP_TIMEOUT_S", 30.0),
            retry=RetryPolicy(
                max_retries=parse_positive_int("SHOPSYNC_MAX_RETRIES", 5),
            ),
            circuit=CircuitBreakerPolicy(
                threshold=parse_positive_int("SHOPSYNC_CIRCUIT_THRESHOLD", 5),
                timeout_s=parse_positive_number("SHOPSYNC_CIRCUIT_TIMEOUT_S", 60.0),
            ),
        )


def backoff_delay(attempt: int, policy: RetryPolicy) -> float:
    """Return ``min(base * 2**attempt, max)`` seconds for a zero-based attempt."""
    if attempt < 0:
        msg = f"attempt must be non-negative, got: {attempt}"
        raise ValueError(msg)
    # Cap the exponent so huge attempt counts cannot overflow float math.
    exponent = min(attempt, 62)
    return min(policy.base_delay_s * (2**exponent), policy.max_delay_s)
