"""Unit tests for the circuit breaker state machine."""

from __future__ import annotations

import pytest

from shopsync.upstream import CircuitBreaker, CircuitBreakerPolicy, CircuitPhase
from tests.helpers.fakes import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    """Return a controllable clock."""
    return FakeClock()


@pytest.fixture
def breaker(clock: FakeClock) -> CircuitBreaker:
    """Return a breaker with a threshold of three and a 60s cooldown."""
    policy = CircuitBreakerPolicy(threshold=3, timeout_s=60.0)
    return CircuitBreaker(policy, clock=clock)


def _fail(breaker: CircuitBreaker, times: int) -> list[bool]:
    return [breaker.record_failure() for _ in range(times)]


def test_starts_closed(breaker: CircuitBreaker) -> None:
    """A new breaker admits requests."""
    assert breaker.phase is CircuitPhase.CLOSED
    assert breaker.allow_request()
    assert breaker.remaining_cooldown() == 0.0


def test_opens_at_threshold(breaker: CircuitBreaker) -> None:
    """Only the failure that reaches the threshold reports the transition."""
    assert _fail(breaker, 3) == [False, False, True]
    assert breaker.phase is CircuitPhase.OPEN
    assert not breaker.allow_request()


def test_cooldown_counts_down(breaker: CircuitBreaker, clock: FakeClock) -> None:
    """Remaining cooldown shrinks with the clock."""
    _fail(breaker, 3)
    clock.advance(45)

    assert breaker.remaining_cooldown() == pytest.approx(15.0)
    assert not breaker.allow_request()


def test_half_open_after_timeout(breaker: CircuitBreaker, clock: FakeClock) -> None:
    """Once the cooldown elapses the next request becomes a probe."""
    _fail(breaker, 3)
    clock.advance(60)

    assert breaker.allow_request()
    assert breaker.phase is CircuitPhase.HALF_OPEN


def test_probe_success_closes(breaker: CircuitBreaker, clock: FakeClock) -> None:
    """A successful probe resets the breaker."""
    _fail(breaker, 3)
    clock.advance(61)
    breaker.allow_request()

    breaker.record_success()

    assert breaker.phase is CircuitPhase.CLOSED
    assert breaker.state.consecutive_failures == 0


def test_probe_failure_reopens_immediately(
    breaker: CircuitBreaker, clock: FakeClock
) -> None:
    """A failed probe reopens with a fresh timestamp."""
    _fail(breaker, 3)
    clock.advance(61)
    breaker.allow_request()

    assert breaker.record_failure() is True
    assert breaker.phase is CircuitPhase.OPEN
    assert breaker.state.opened_at == clock()
    assert breaker.remaining_cooldown() == pytest.approx(60.0)


def test_success_before_threshold_resets_count(breaker: CircuitBreaker) -> None:
    """Failures must be consecutive to trip the breaker."""
    _fail(breaker, 2)
    breaker.record_success()
    _fail(breaker, 2)

    assert breaker.phase is CircuitPhase.CLOSED
    assert breaker.state.consecutive_failures == 2


def test_state_is_a_snapshot(breaker: CircuitBreaker) -> None:
    """Mutating the returned state does not affect the breaker."""
    snapshot = breaker.state
    snapshot.consecutive_failures = 99

    assert breaker.state.consecutive_failures == 0
