"""Tests for the circuit breaker and fallback composition."""
import asyncio
from unittest.mock import MagicMock

import pytest

from book_catalog.breaker import (
    CircuitBreaker,
    CircuitState,
    acall_with_fallback,
    call_with_fallback,
)
from book_catalog.config import Config
from book_catalog.errors import BookInfoError, CircuitOpenError


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(
        "test",
        window_seconds=10,
        request_volume_threshold=4,
        error_threshold_percentage=50,
        sleep_window_seconds=5,
        clock=clock,
    )


def _trip(breaker):
    for _ in range(breaker.request_volume_threshold):
        breaker.record_failure()


def test_circuit_is_closed_initially(breaker):
    assert breaker.state == CircuitState.CLOSED
    assert breaker.allow_request()


def test_circuit_needs_request_volume(breaker):
    """Test that failures below the volume threshold do not trip."""
    for _ in range(3):
        breaker.record_failure()

    assert breaker.state == CircuitState.CLOSED


def test_circuit_opens_at_error_percentage(breaker):
    breaker.record_success()
    breaker.record_success()
    breaker.record_failure()
    assert breaker.state == CircuitState.CLOSED

    breaker.record_failure()

    assert breaker.state == CircuitState.OPEN
    assert not breaker.allow_request()


def test_circuit_stays_closed_below_error_percentage(breaker):
    for _ in range(3):
        breaker.record_success()
    breaker.record_failure()

    assert breaker.state == CircuitState.CLOSED


def test_old_outcomes_leave_the_window(breaker, clock):
    for _ in range(3):
        breaker.record_failure()

    clock.now = 11
    breaker.record_failure()

    assert breaker.state == CircuitState.CLOSED
    assert breaker.snapshot()["requests"] == 1


def test_half_open_after_sleep_window(breaker, clock):
    _trip(breaker)

    clock.now = 4.9
    assert not breaker.allow_request()

    clock.now = 5
    assert breaker.allow_request()
    assert breaker.state == CircuitState.HALF_OPEN
    # Only one trial at a time
    assert not breaker.allow_request()


def test_trial_success_closes(breaker, clock):
    _trip(breaker)
    clock.now = 5
    breaker.allow_request()

    breaker.record_success()

    assert breaker.state == CircuitState.CLOSED
    assert breaker.snapshot()["requests"] == 0


def test_trial_failure_reopens(breaker, clock):
    _trip(breaker)
    clock.now = 5
    breaker.allow_request()

    breaker.record_failure()

    assert breaker.state == CircuitState.OPEN
    clock.now = 9
    assert not breaker.allow_request()
    clock.now = 10
    assert breaker.allow_request()


def test_reset(breaker):
    _trip(breaker)

    breaker.reset()

    assert breaker.state == CircuitState.CLOSED
    assert breaker.allow_request()


def test_snapshot(breaker):
    breaker.record_success()
    breaker.record_failure()

    assert breaker.snapshot() == {
        "name": "test",
        "state": "closed",
        "requests": 2,
        "failures": 1,
    }


def test_from_config():
    breaker = CircuitBreaker.from_config(Config())

    assert breaker.request_volume_threshold == Config.BREAKER_REQUEST_VOLUME
    assert breaker.sleep_window_seconds == Config.BREAKER_SLEEP_WINDOW_SECONDS


def test_call_with_fallback_success(breaker):
    result = call_with_fallback(lambda x: x * 2, lambda x: -1, breaker, 21)

    assert result == 42
    assert breaker.snapshot()["failures"] == 0


def test_call_with_fallback_on_error(breaker):
    def primary(x):
        raise RuntimeError("boom")

    fallback = MagicMock(return_value="degraded")

    result = call_with_fallback(primary, fallback, breaker, 7, flag=True)

    assert result == "degraded"
    fallback.assert_called_once_with(7, flag=True)
    assert breaker.snapshot()["failures"] == 1


def test_call_with_fallback_short_circuits_when_open(breaker):
    _trip(breaker)
    primary = MagicMock()

    result = call_with_fallback(primary, lambda: "degraded", breaker)

    assert result == "degraded"
    primary.assert_not_called()


def test_circuit_open_error_is_a_book_info_error():
    assert issubclass(CircuitOpenError, BookInfoError)


@pytest.mark.asyncio
async def test_acall_with_fallback(breaker):
    async def primary(x):
        return x + 1

    async def failing(x):
        raise RuntimeError("boom")

    assert await acall_with_fallback(primary, lambda x: 0, breaker, 1) == 2
    assert await acall_with_fallback(failing, lambda x: 0, breaker, 1) == 0
    assert breaker.snapshot() == {"name": "test", "state": "closed", "requests": 2, "failures": 1}


def test_interrupted_trial_releases_half_open(breaker, clock):
    """Test that a trial ended by KeyboardInterrupt reopens instead of locking."""
    _trip(breaker)
    clock.now = 5

    def interrupted():
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        call_with_fallback(interrupted, lambda: "degraded", breaker)

    assert breaker.state == CircuitState.OPEN
    clock.now = 10
    assert call_with_fallback(lambda: "ok", lambda: "degraded", breaker) == "ok"
    assert breaker.state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_cancelled_trial_releases_half_open(breaker, clock):
    """Test that a cancelled async trial lets a later trial through."""
    _trip(breaker)
    clock.now = 5

    async def slow():
        await asyncio.sleep(10)
        return "late"

    async def fast():
        return "ok"

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(acall_with_fallback(slow, lambda: "degraded", breaker), 0.01)

    assert breaker.state == CircuitState.OPEN
    clock.now = 1000
    assert await acall_with_fallback(fast, lambda: "degraded", breaker) == "ok"
    assert breaker.state == CircuitState.CLOSED


def test_half_open_rejects_calls_during_trial(breaker, clock):
    _trip(breaker)
    clock.now = 5
    seen = []

    def trial():
        seen.append(call_with_fallback(lambda: "nested", lambda: "degraded", breaker))
        return "ok"

    assert call_with_fallback(trial, lambda: "degraded", breaker) == "ok"
    assert seen == ["degraded"]
