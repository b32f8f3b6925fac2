"""
Circuit breaker for remote embedding calls.
Fails fast while the embeddings API is degraded, so the hybrid manager
falls back to TF-IDF instead of waiting on every request.
"""

import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitOpenError(Exception):
    """Raised when circuit breaker is open."""

    pass


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for external embedding APIs.

    States:
    - CLOSED: requests pass through
    - OPEN: too many consecutive failures, requests rejected immediately
    - HALF_OPEN: reset timeout elapsed, a few trial requests allowed

    Usage:
        breaker = CircuitBreaker(name="openai", failure_threshold=5)
        response = await breaker.call_async(client.embeddings.create, **kwargs)
    """

    name: str = "default"
    failure_threshold: int = 5
    reset_timeout: float = 60.0
    half_open_max_calls: int = 3
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    state: CircuitState = field(default=CircuitState.CLOSED)
    failures: int = field(default=0)
    successes: int = field(default=0)
    last_failure_time: Optional[float] = field(default=None)
    half_open_calls: int = field(default=0)

    def _should_allow_request(self) -> bool:
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            if (
                self.last_failure_time is not None
                and (self.clock() - self.last_failure_time) >= self.reset_timeout
            ):
                self._transition_to_half_open()
                return True
            return False

        return self.half_open_calls < self.half_open_max_calls

    def _transition_to_open(self):
        logger.warning(f"Circuit '{self.name}' OPEN after {self.failures} failures")
        self.state = CircuitState.OPEN
        self.last_failure_time = self.clock()

    def _transition_to_half_open(self):
        logger.info(f"Circuit '{self.name}' transitioning to HALF_OPEN")
        self.state = CircuitState.HALF_OPEN
        self.half_open_calls = 0
        self.successes = 0

    def _transition_to_closed(self):
        logger.info(f"Circuit '{self.name}' CLOSED: service recovered")
        self.state = CircuitState.CLOSED
        self.failures = 0
        self.successes = 0
        self.half_open_calls = 0

    def _record_success(self):
        self.failures = 0
        if self.state == CircuitState.HALF_OPEN:
            self.successes += 1
            if self.successes >= self.half_open_max_calls:
                self._transition_to_closed()

    def _record_failure(self):
        self.failures += 1
        self.last_failure_time = self.clock()
        if self.state == CircuitState.HALF_OPEN or self.failures >= self.failure_threshold:
            self._transition_to_open()

    async def call_async(self, fn: Callable, *args, **kwargs) -> Any:
        """
        Await a call under circuit breaker protection.

        Args:
            fn: Coroutine function or plain callable
            *args, **kwargs: Arguments to pass to fn

        Raises:
            CircuitOpenError: If the circuit is open
            Exception: Original exception from fn
        """
        if not self._should_allow_request():
            raise CircuitOpenError(f"Circuit '{self.name}' is {self.state.value}")

        if self.state == CircuitState.HALF_OPEN:
            self.half_open_calls += 1

        try:
            if inspect.iscoroutinefunction(fn):
                result = await fn(*args, **kwargs)
            else:
                result = fn(*args, **kwargs)
                if inspect.isawaitable(result):
                    result = await result
        except Exception:
            self._record_failure()
            raise

        self._record_success()
        return result

    def reset(self):
        self._transition_to_closed()
        self.last_failure_time = None

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failures": self.failures,
            "successes": self.successes,
            "last_failure_time": self.last_failure_time,
            "half_open_calls": self.half_open_calls,
        }


# One breaker per remote service
_breakers: Dict[str, CircuitBreaker] = {}


def get_breaker(name: str, **kwargs) -> CircuitBreaker:
    """Get or create the named circuit breaker."""
    if name not in _breakers:
        _breakers[name] = CircuitBreaker(name=name, **kwargs)
    return _breakers[name]


def get_embedding_api_breaker() -> CircuitBreaker:
    """Circuit breaker for the OpenAI embeddings API."""
    return get_breaker("openai-embeddings", failure_threshold=3, reset_timeout=30.0, half_open_max_calls=2)
