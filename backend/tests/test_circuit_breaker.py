# backend/tests/test_circuit_breaker.py
import pytest

from callsim.utils.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerError,
    CircuitState,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


async def _fail():
    raise RuntimeError("upstream down")


async def _ok():
    return "ok"


def _breaker(clock):
    config = CircuitBreakerConfig(name="test", failure_threshold=2, success_threshold=1, reset_timeout=30)
    return CircuitBreaker(config, clock=clock)


@pytest.mark.asyncio
async def test_opens_after_threshold_and_rejects():
    breaker = _breaker(FakeClock())
    for _ in range(2):
        with pytest.raises(RuntimeError):
            await breaker.call(_fail)

    assert breaker.state == CircuitState.OPEN
    with pytest.raises(CircuitBreakerError):
        await breaker.call(_ok)
    assert breaker.get_stats()["total_rejections"] == 1


@pytest.mark.asyncio
async def test_success_resets_failure_count():
    breaker = _breaker(FakeClock())
    with pytest.raises(RuntimeError):
        await breaker.call(_fail)
    assert await breaker.call(_ok) == "ok"
    with pytest.raises(RuntimeError):
        await breaker.call(_fail)
    assert breaker.state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_trial_call_after_timeout_closes_circuit():
    clock = FakeClock()
    breaker = _breaker(clock)
    for _ in range(2):
        with pytest.raises(RuntimeError):
            await breaker.call(_fail)

    clock.now += 31
    assert await breaker.call(_ok) == "ok"
    assert breaker.state == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_failed_trial_call_reopens():
    clock = FakeClock()
    breaker = _breaker(clock)
    for _ in range(2):
        with pytest.raises(RuntimeError):
            await breaker.call(_fail)

    clock.now += 31
    with pytest.raises(RuntimeError):
        await breaker.call(_fail)
    assert breaker.state == CircuitState.OPEN
    with pytest.raises(CircuitBreakerError):
        await breaker.call(_ok)
