"""Retry and circuit breaking for calls into collaborator gateways."""

import functools
import time
from enum import Enum
from threading import Lock
from typing import Callable, ParamSpec, TypeVar

from dispute_engine.utils.logging import get_logger


P = ParamSpec("P")
T = TypeVar("T")

logger = get_logger("resilience")


class RetryError(Exception):
    """Every attempt of a retried call failed."""


class CircuitBreakerOpen(Exception):
    """The breaker is refusing calls until its recovery timeout has passed."""


def with_retry(
    max_attempts: int = 3,
    backoff_base: float = 2.0,
    exceptions: tuple = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Retry the decorated call, waiting ``backoff_base ** n`` seconds between attempts.

    Args:
        max_attempts: Total attempts, the first call included
        backoff_base: Base of the exponential wait
        exceptions: Exceptions that trigger another attempt
        sleep: Wait function, replaceable in tests
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_attempts:
                        logger.error(f"{func.__name__} failed after {max_attempts} attempt(s): {e}")
                        raise RetryError(f"{func.__name__} failed after {max_attempts} attempt(s)") from e
                    delay = backoff_base ** (attempt - 1)
                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{max_attempts} failed: {e}; "
                        f"retrying in {delay:.1f}s"
                    )
                    sleep(delay)
                    attempt += 1

        return wrapper
    return decorator


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class CircuitBreaker:
    """Stops calling a failing gateway for ``recovery_timeout`` seconds after
    ``failure_threshold`` consecutive failures, then lets probe calls through."""

    def __init__(
        self,
        name: str = "default",
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        half_open_requests: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_requests = half_open_requests
        self._clock = clock
        self._lock = Lock()
        self._state = BreakerState.CLOSED
        self._failures = 0
        self._probe_successes = 0
        self._opened_at: float | None = None

    @property
    def state(self) -> BreakerState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def _maybe_half_open(self):
        if self._state is BreakerState.OPEN and self._clock() - self._opened_at >= self.recovery_timeout:
            self._state = BreakerState.HALF_OPEN
            self._probe_successes = 0
            logger.info(f"Circuit breaker {self.name} half-open, probing")

    def _trip(self):
        self._state = BreakerState.OPEN
        self._opened_at = self._clock()

    def _on_success(self):
        with self._lock:
            if self._state is BreakerState.HALF_OPEN:
                self._probe_successes += 1
                if self._probe_successes < self.half_open_requests:
                    return
                logger.info(f"Circuit breaker {self.name} closed again")
                self._state = BreakerState.CLOSED
            self._failures = 0

    def _on_failure(self):
        with self._lock:
            self._failures += 1
            if self._state is BreakerState.HALF_OPEN:
                self._trip()
                logger.warning(f"Circuit breaker {self.name} probe failed, open again")
            elif self._failures >= self.failure_threshold:
                self._trip()
                logger.warning(f"Circuit breaker {self.name} open after {self._failures} failures")

    def call(self, func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
        """Invoke ``func`` unless the breaker is open."""
        if self.state is BreakerState.OPEN:
            raise CircuitBreakerOpen(f"Circuit breaker {self.name} is open")

        try:
            result = func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def reset(self):
        with self._lock:
            self._state = BreakerState.CLOSED
            self._failures = 0
            self._opened_at = None
        logger.info(f"Circuit breaker {self.name} reset")
