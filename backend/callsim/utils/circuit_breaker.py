# backend/callsim/utils/circuit_breaker.py
"""
Circuit breaker for the generative collaborators.

When the model endpoint fails repeatedly the circuit opens and further
calls fail fast with CircuitBreakerError, which callers treat as an
ordinary generation failure (canned prospect line, deterministic-only
scoring). After `reset_timeout` seconds one probe call is let through.

States:
- CLOSED: calls go through
- OPEN: calls are rejected immediately
- HALF_OPEN: a limited number of probe calls decide whether to close again
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from callsim.utils.logger import logger


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    name: str = "default"
    failure_threshold: int = 5           # consecutive failures before opening
    success_threshold: int = 2           # probe successes before closing
    reset_timeout: float = 60.0          # seconds spent OPEN before probing
    half_open_max_calls: int = 1


@dataclass
class CircuitBreakerStats:
    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    probe_successes: int = 0
    probes_in_flight: int = 0
    opened_at: Optional[float] = None
    total_calls: int = 0
    total_failures: int = 0
    total_rejections: int = 0
    last_state_change: float = field(default_factory=time.monotonic)


class CircuitBreakerError(Exception):
    """Raised instead of calling through while the circuit is open."""
    pass


class CircuitBreaker:
    def __init__(self, config: Optional[CircuitBreakerConfig] = None, clock: Callable[[], float] = time.monotonic):
        self.config = config or CircuitBreakerConfig()
        self.stats = CircuitBreakerStats(last_state_change=clock())
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self.stats.state

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        await self._before_call()
        self.stats.total_calls += 1
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            await self._record_failure(e)
            raise
        await self._record_success()
        return result

    async def _before_call(self) -> None:
        async with self._lock:
            if self.stats.state == CircuitState.OPEN:
                if self._clock() - (self.stats.opened_at or 0.0) < self.config.reset_timeout:
                    self.stats.total_rejections += 1
                    raise CircuitBreakerError(f"circuit '{self.config.name}' is open")
                self._move_to(CircuitState.HALF_OPEN)

            if self.stats.state == CircuitState.HALF_OPEN:
                if self.stats.probes_in_flight >= self.config.half_open_max_calls:
                    self.stats.total_rejections += 1
                    raise CircuitBreakerError(f"circuit '{self.config.name}' is probing")
                self.stats.probes_in_flight += 1

    async def _record_success(self) -> None:
        async with self._lock:
            if self.stats.state == CircuitState.HALF_OPEN:
                self.stats.probes_in_flight = max(0, self.stats.probes_in_flight - 1)
                self.stats.probe_successes += 1
                if self.stats.probe_successes >= self.config.success_threshold:
                    self._move_to(CircuitState.CLOSED)
            else:
                self.stats.consecutive_failures = 0

    async def _record_failure(self, exc: Exception) -> None:
        async with self._lock:
            self.stats.total_failures += 1
            self.stats.consecutive_failures += 1
            logger.warning(f"[CIRCUIT] {self.config.name} failure in {self.stats.state.value}: {exc}")

            if self.stats.state == CircuitState.HALF_OPEN:
                self.stats.probes_in_flight = max(0, self.stats.probes_in_flight - 1)
                self._move_to(CircuitState.OPEN)
            elif self.stats.consecutive_failures >= self.config.failure_threshold:
                self._move_to(CircuitState.OPEN)

    def _move_to(self, state: CircuitState) -> None:
        logger.info(f"[CIRCUIT] {self.config.name}: {self.stats.state.value} -> {state.value}")
        self.stats.state = state
        self.stats.last_state_change = self._clock()
        if state == CircuitState.OPEN:
            self.stats.opened_at = self._clock()
        elif state == CircuitState.HALF_OPEN:
            self.stats.probe_successes = 0
            self.stats.probes_in_flight = 0
        else:
            self.stats.consecutive_failures = 0
            self.stats.probe_successes = 0
            self.stats.opened_at = None

    def get_stats(self) -> Dict[str, Any]:
        return {
            "name": self.config.name,
            "state": self.stats.state.value,
            "consecutive_failures": self.stats.consecutive_failures,
            "total_calls": self.stats.total_calls,
            "total_failures": self.stats.total_failures,
            "total_rejections": self.stats.total_rejections,
        }

    def reset(self) -> None:
        self.stats = CircuitBreakerStats(last_state_change=self._clock())


_breakers: Dict[str, CircuitBreaker] = {}


def get_circuit_breaker(name: str, **config) -> CircuitBreaker:
    """Shared breaker per collaborator name."""
    if name not in _breakers:
        _breakers[name] = CircuitBreaker(CircuitBreakerConfig(name=name, **config))
    return _breakers[name]


def all_breaker_stats() -> Dict[str, Dict[str, Any]]:
    return {name: breaker.get_stats() for name, breaker in _breakers.items()}
