import asyncio

import pytest

from deployment.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    get_breaker,
    get_embedding_api_breaker,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


async def fail():
    raise ConnectionError("api down")


async def succeed():
    return "ok"


def run_failures(breaker: CircuitBreaker, count: int) -> None:
    for _ in range(count):
        with pytest.raises(ConnectionError):
            asyncio.run(breaker.call_async(fail))


def test_opens_after_threshold_and_rejects() -> None:
    breaker = CircuitBreaker(name="t", failure_threshold=3, clock=FakeClock())
    run_failures(breaker, 3)

    assert breaker.state is CircuitState.OPEN
    with pytest.raises(CircuitOpenError):
        asyncio.run(breaker.call_async(succeed))


def test_half_open_recovers_after_successes() -> None:
    clock = FakeClock()
    breaker = CircuitBreaker(
        name="t", failure_threshold=2, reset_timeout=30.0, half_open_max_calls=2, clock=clock
    )
    run_failures(breaker, 2)

    clock.now += 30.0
    assert asyncio.run(breaker.call_async(succeed)) == "ok"
    assert breaker.state is CircuitState.HALF_OPEN

    asyncio.run(breaker.call_async(succeed))
    assert breaker.state is CircuitState.CLOSED


def test_failure_while_half_open_reopens() -> None:
    clock = FakeClock()
    breaker = CircuitBreaker(name="t", failure_threshold=1, reset_timeout=5.0, clock=clock)
    run_failures(breaker, 1)

    clock.now += 5.0
    run_failures(breaker, 1)

    assert breaker.state is CircuitState.OPEN


def test_accepts_plain_callables_returning_values() -> None:
    breaker = CircuitBreaker(name="t")
    assert asyncio.run(breaker.call_async(lambda x: x * 2, 21)) == 42


def test_reset_and_stats() -> None:
    breaker = CircuitBreaker(name="t", failure_threshold=1, clock=FakeClock())
    run_failures(breaker, 1)
    assert breaker.get_stats()["state"] == "open"

    breaker.reset()

    stats = breaker.get_stats()
    assert stats["state"] == "closed"
    assert stats["failures"] == 0
    assert stats["last_failure_time"] is None


def test_registry_returns_shared_breakers() -> None:
    assert get_breaker("shared-test") is get_breaker("shared-test")
    api_breaker = get_embedding_api_breaker()
    assert api_breaker is get_embedding_api_breaker()
    assert api_breaker.failure_threshold == 3
