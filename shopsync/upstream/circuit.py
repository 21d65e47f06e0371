"""Consecutive-failure circuit breaker for one tenant's API client.

State machine::

    CLOSED --(failures >= threshold)--> OPEN
    OPEN --(timeout elapsed, next call)--> HALF_OPEN
    HALF_OPEN --success--> CLOSED
    HALF_OPEN --failure--> OPEN (timestamp refreshed)

The breaker is owned by exactly one client instance and touched only from the
event loop running that client, so it carries no locking.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import time
import typing as typ

from .config import CircuitBreakerPolicy

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class CircuitPhase(enum.StrEnum):
    """Observable breaker phase."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dc.dataclass(slots=True)
class CircuitState:
    """Mutable breaker bookkeeping."""

    consecutive_failures: int = 0
    open: bool = False
    opened_at: float | None = None
    probing: bool = False


class CircuitBreaker:
    """Fail-fast gate in front of an unreliable dependency."""

    def __init__(
        self,
        policy: CircuitBreakerPolicy | None = None,
        *,
        clock: cabc.Callable[[], float] = time.monotonic,
    ) -> None:
        """Create a closed breaker using ``clock`` as its time source."""
        self._policy = policy or CircuitBreakerPolicy()
        self._clock = clock
        self._state = CircuitState()

    @property
    def state(self) -> CircuitState:
        """Return a snapshot of the current bookkeeping."""
        return dc.replace(self._state)

    @property
    def phase(self) -> CircuitPhase:
        """Return the current phase."""
        if self._state.probing:
            return CircuitPhase.HALF_OPEN
        if self._state.open:
            return CircuitPhase.OPEN
        return CircuitPhase.CLOSED

    def remaining_cooldown(self) -> float:
        """Seconds until an open circuit admits a probe (0 when not open)."""
        if not self._state.open or self._state.opened_at is None:
            return 0.0
        elapsed = self._clock() - self._state.opened_at
        return max(self._policy.timeout_s - elapsed, 0.0)

    def allow_request(self) -> bool:
        """Return whether a call may proceed, entering half-open if due."""
        if not self._state.open:
            return True
        if self.remaining_cooldown() > 0:
            return False
        self._state.open = False
        self._state.probing = True
        return True

    def record_success(self) -> None:
        """Close the circuit and reset the failure counter."""
        self._state = CircuitState()

    def record_failure(self) -> bool:
        """Count a failed call; return ``True`` when this failure opened the circuit."""
        self._state.consecutive_failures += 1
        if self._state.probing or (
            self._state.consecutive_failures >= self._policy.threshold
        ):
            self._state.open = True
            self._state.opened_at = self._clock()
            self._state.probing = False
            return True
        return False
