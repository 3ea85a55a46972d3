"""
Circuit breaker for calls into the external employee store.

Approvers must still be able to act when Snowflake is slow or down, so
repeated store failures trip the breaker and callers fall back to the
bundled employee records instead of waiting on a dead warehouse.
"""

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitBreakerOpenError(RuntimeError):
    """Raised when the breaker refuses a call."""

    def __init__(self, name: str, retry_after: float):
        super().__init__(
            f"CircuitBreaker '{name}' is OPEN. Retry in {max(retry_after, 0):.1f}s."
        )
        self.name = name
        self.retry_after = retry_after


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Thread-safe circuit breaker.

    Transitions:
    - CLOSED -> OPEN: after ``failure_threshold`` consecutive failures
    - OPEN -> HALF_OPEN: once ``timeout`` seconds have passed since the last failure
    - HALF_OPEN -> CLOSED: the probe call succeeds
    - HALF_OPEN -> OPEN: the probe call fails

    Only one probe is let through while HALF_OPEN; concurrent callers are
    refused until the probe settles.
    """

    def __init__(self, failure_threshold: int = 5, timeout: int = 60, name: str = "CircuitBreaker"):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.name = name

        self.failure_count = 0
        self.state = CircuitState.CLOSED
        self.last_failure_time: float | None = None
        self.total_calls = 0
        self.total_rejections = 0

        self._lock = threading.Lock()
        self._probe_in_flight = False

        logger.info(
            f"CircuitBreaker '{name}' initialized: "
            f"threshold={failure_threshold}, timeout={timeout}s"
        )

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute ``func`` under breaker protection.

        Raises:
            CircuitBreakerOpenError: the breaker is open (or probing)
            Exception: whatever ``func`` raised, after it was recorded
        """
        self._before_call()

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._record_failure()
            logger.error(
                f"CircuitBreaker '{self.name}' failure "
                f"({self.failure_count}/{self.failure_threshold}): {e}"
            )
            raise

        self._record_success()
        return result

    def _before_call(self) -> None:
        with self._lock:
            self.total_calls += 1

            if self.state == CircuitState.OPEN:
                remaining = self._seconds_until_retry()
                if remaining > 0:
                    self.total_rejections += 1
                    raise CircuitBreakerOpenError(self.name, remaining)
                logger.info(f"CircuitBreaker '{self.name}': OPEN -> HALF_OPEN")
                self.state = CircuitState.HALF_OPEN

            if self.state == CircuitState.HALF_OPEN:
                if self._probe_in_flight:
                    self.total_rejections += 1
                    raise CircuitBreakerOpenError(self.name, 0)
                self._probe_in_flight = True

    def _record_success(self) -> None:
        with self._lock:
            if self.state == CircuitState.HALF_OPEN:
                logger.info(f"CircuitBreaker '{self.name}': HALF_OPEN -> CLOSED")
            self.failure_count = 0
            self.state = CircuitState.CLOSED
            self.last_failure_time = None
            self._probe_in_flight = False

    def _record_failure(self) -> None:
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = time.monotonic()
            self._probe_in_flight = False

            if self.state == CircuitState.HALF_OPEN:
                logger.warning(f"CircuitBreaker '{self.name}': probe failed. HALF_OPEN -> OPEN")
                self.state = CircuitState.OPEN
            elif self.failure_count >= self.failure_threshold:
                logger.warning(f"CircuitBreaker '{self.name}': threshold exceeded. CLOSED -> OPEN")
                self.state = CircuitState.OPEN

    def _seconds_until_retry(self) -> float:
        if self.last_failure_time is None:
            return 0.0
        return self.timeout - (time.monotonic() - self.last_failure_time)

    def reset(self) -> None:
        """Force the breaker back to CLOSED."""
        with self._lock:
            self.failure_count = 0
            self.state = CircuitState.CLOSED
            self.last_failure_time = None
            self._probe_in_flight = False

    def get_state(self) -> dict:
        """Get current circuit breaker state for monitoring."""
        with self._lock:
            return {
                "name": self.name,
                "state": self.state.value,
                "failure_count": self.failure_count,
                "failure_threshold": self.failure_threshold,
                "total_calls": self.total_calls,
                "total_rejections": self.total_rejections,
            }
