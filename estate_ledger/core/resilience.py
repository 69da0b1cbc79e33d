"""
Fault-tolerance helpers shared by the repositories, the startup path and the
outbox dispatcher.

1. **Circuit Breaker**: after ``failure_threshold`` consecutive connection
   failures the database is treated as down and calls fail fast with
   :class:`CircuitBreakerError` until ``recovery_timeout`` has passed. One
   probe call is then let through (HALF_OPEN); success closes the circuit,
   failure re-opens it.

2. **Exponential backoff**: :func:`backoff_delay` computes the wait before
   attempt ``n``. :func:`retry_with_backoff` uses it to retry transient
   startup failures, and the outbox dispatcher uses it to reschedule events
   whose listeners failed.
"""

import asyncio
import functools
import logging
import random
import time
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Type

from estate_ledger.core.config import settings

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: Tuple[Type[Exception], ...] = (
    ConnectionError,
    OSError,
    TimeoutError,
)


# ────────────────────────────────────────────────────────────────────────────
# Circuit Breaker
# ────────────────────────────────────────────────────────────────────────────


class CircuitState(str, Enum):
    """Possible states of a circuit breaker."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """Raised when a call is rejected because the circuit is open."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(
            f"Circuit breaker '{name}' is OPEN, rejecting calls. "
            f"Retry after {retry_after:.1f}s."
        )


class CircuitBreaker:
    """
    Async circuit breaker guarding one dependency.

    Parameters
    ----------
    name : str
        Identifier used in logs and the health report (e.g. ``"database"``).
    failure_threshold : int
        Consecutive failures that open the circuit.
    recovery_timeout : float
        Seconds spent OPEN before a probe is allowed.
    expected_exceptions : tuple
        Exception types counted as failures. Domain errors such as
        ``InsufficientFunds`` are not listed and pass straight through.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        expected_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exceptions = expected_exceptions

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at: Optional[float] = None
        self._rejected_calls = 0

    @property
    def state(self) -> CircuitState:
        """Current state; an OPEN circuit turns HALF_OPEN once the timeout elapses."""
        if self._state is CircuitState.OPEN and self.seconds_until_probe() == 0:
            self._state = CircuitState.HALF_OPEN
            logger.info("Circuit '%s' half-open, letting one probe through", self.name)
        return self._state

    def seconds_until_probe(self) -> float:
        if self._opened_at is None:
            return 0.0
        return max(self.recovery_timeout - (time.monotonic() - self._opened_at), 0.0)

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = time.monotonic()
        logger.error(
            "Circuit '%s' open after %d consecutive failures; failing fast for %.1fs",
            self.name,
            self._consecutive_failures,
            self.recovery_timeout,
        )

    def _on_success(self) -> None:
        if self._state is not CircuitState.CLOSED:
            logger.info("Circuit '%s' closed, dependency answered again", self.name)
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = None

    def _on_failure(self) -> None:
        self._consecutive_failures += 1
        if (
            self._state is CircuitState.HALF_OPEN
            or self._consecutive_failures >= self.failure_threshold
        ):
            self._open()
        else:
            logger.warning(
                "Circuit '%s' saw failure %d of %d",
                self.name,
                self._consecutive_failures,
                self.failure_threshold,
            )

    async def call(self, func: Callable, *args: Any, **kwargs: Any) -> Any:
        """
        Await ``func(*args, **kwargs)`` through the breaker.

        Raises :class:`CircuitBreakerError` without calling ``func`` while the
        circuit is OPEN.
        """
        if self.state is CircuitState.OPEN:
            self._rejected_calls += 1
            raise CircuitBreakerError(self.name, self.seconds_until_probe())

        try:
            result = await func(*args, **kwargs)
        except self.expected_exceptions:
            self._on_failure()
            raise
        self._on_success()
        return result

    def get_status(self) -> dict:
        """Snapshot for the health endpoint."""
        return {
            "name": self.name,
            "state": self.state.value,
            "consecutive_failures": self._consecutive_failures,
            "failure_threshold": self.failure_threshold,
            "rejected_calls": self._rejected_calls,
            "recovery_timeout_s": self.recovery_timeout,
        }


# ── Shared breaker for every repository call ──
db_circuit_breaker = CircuitBreaker(
    name="database",
    failure_threshold=settings.CB_FAILURE_THRESHOLD,
    recovery_timeout=settings.CB_RECOVERY_TIMEOUT,
    expected_exceptions=TRANSIENT_ERRORS,
)


# ────────────────────────────────────────────────────────────────────────────
# Exponential backoff
# ────────────────────────────────────────────────────────────────────────────


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: bool = True,
) -> float:
    """
    Seconds to wait before retry number ``attempt`` (1-based).

    The delay doubles per attempt starting at ``base_delay`` and is capped at
    ``max_delay``. With ``jitter`` up to 50% extra is added so that many
    failed events do not all come due at the same instant.
    """
    exponent = max(attempt - 1, 0)
    delay = min(base_delay * (2**exponent), max_delay)
    if jitter:
        delay += random.uniform(0, delay * 0.5)
    return delay


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[Exception], ...] = TRANSIENT_ERRORS,
) -> Callable:
    """
    Decorator: retry an async function on transient errors.

    Parameters
    ----------
    max_retries : int
        Retries after the initial call (0 = call once).
    base_delay : float
        Delay before the first retry; doubles each time.
    max_delay : float
        Upper bound for a single delay.
    jitter : bool
        Add up to 50% random jitter to each delay.
    retryable_exceptions : tuple
        Only these exception types are retried; anything else propagates.

    Example::

        @retry_with_backoff(max_retries=5, base_delay=1.0)
        async def create_tables():
            ...
    """

    def decorator(func: Callable) -> Callable:
        name = getattr(func, "__qualname__", repr(func))

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    attempt += 1
                    if attempt > max_retries:
                        logger.error(
                            "%s still failing after %d retries: %r", name, max_retries, exc
                        )
                        raise
                    delay = backoff_delay(attempt, base_delay, max_delay, jitter)
                    logger.warning(
                        "%s failed (%r); retry %d of %d in %.2fs",
                        name,
                        exc,
                        attempt,
                        max_retries,
                        delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
