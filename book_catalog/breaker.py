"""Circuit breaker and fallback composition for book-info calls.

The breaker tracks call outcomes in a rolling time window. Once the window
holds enough calls and the failure percentage reaches the threshold, the
circuit opens and calls fail fast with ``CircuitOpenError``. After the sleep
window one trial call is let through (half-open); its outcome decides whether
the circuit closes again or stays open for another sleep window.
"""
import logging
import threading
import time
from collections import deque
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, Tuple, TypeVar

from book_catalog.errors import CircuitOpenError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Failure-rate circuit breaker, safe to share between threads."""

    def __init__(
        self,
        name: str = "book-info",
        window_seconds: float = 10.0,
        request_volume_threshold: int = 20,
        error_threshold_percentage: float = 50.0,
        sleep_window_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            name: Label used in log lines
            window_seconds: Length of the rolling outcome window
            request_volume_threshold: Minimum calls in the window before tripping
            error_threshold_percentage: Failure percentage that trips the circuit
            sleep_window_seconds: Time spent open before a trial call
            clock: Monotonic time source
        """
        self.name = name
        self.window_seconds = window_seconds
        self.request_volume_threshold = request_volume_threshold
        self.error_threshold_percentage = error_threshold_percentage
        self.sleep_window_seconds = sleep_window_seconds
        self._clock = clock

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._opened_at = 0.0
        # (timestamp, succeeded)
        self._outcomes: Deque[Tuple[float, bool]] = deque()

    @classmethod
    def from_config(cls, config, name: str = "book-info") -> "CircuitBreaker":
        return cls(
            name=name,
            window_seconds=config.BREAKER_WINDOW_SECONDS,
            request_volume_threshold=config.BREAKER_REQUEST_VOLUME,
            error_threshold_percentage=config.BREAKER_ERROR_PERCENTAGE,
            sleep_window_seconds=config.BREAKER_SLEEP_WINDOW_SECONDS,
        )

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def allow_request(self) -> bool:
        """Return True if a call may proceed, moving OPEN to HALF_OPEN when due."""
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                if self._clock() - self._opened_at < self.sleep_window_seconds:
                    return False
                self._state = CircuitState.HALF_OPEN
                logger.info(f"[CIRCUIT BREAKER] {self.name} half-open, sending trial request")
                return True

            # HALF_OPEN: the trial call is already in flight
            return False

    def record_success(self):
        """Record a successful call."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._close()
                return
            if self._state == CircuitState.OPEN:
                return
            self._record(True)

    def record_failure(self):
        """Record a failed call, tripping the circuit when the threshold is reached."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                logger.error(f"[CIRCUIT BREAKER] {self.name} trial request failed, reopening")
                self._open()
                return
            if self._state == CircuitState.OPEN:
                return

            self._record(False)
            total, failures = self._counts()
            if total < self.request_volume_threshold:
                return

            error_percentage = failures * 100.0 / total
            if error_percentage >= self.error_threshold_percentage:
                logger.error(
                    f"[CIRCUIT BREAKER] {self.name} circuit opened: "
                    f"{failures}/{total} failures ({error_percentage:.0f}%)"
                )
                self._open()

    def reset(self):
        """Force the circuit closed and forget recorded outcomes."""
        with self._lock:
            self._close()

    def snapshot(self) -> Dict[str, Any]:
        """Current state and window counts."""
        with self._lock:
            self._prune()
            total, failures = self._counts()
            return {
                "name": self.name,
                "state": self._state.value,
                "requests": total,
                "failures": failures,
            }

    def _record(self, succeeded: bool):
        self._outcomes.append((self._clock(), succeeded))
        self._prune()

    def _prune(self):
        cutoff = self._clock() - self.window_seconds
        while self._outcomes and self._outcomes[0][0] <= cutoff:
            self._outcomes.popleft()

    def _counts(self) -> Tuple[int, int]:
        failures = sum(1 for _, ok in self._outcomes if not ok)
        return len(self._outcomes), failures

    def _open(self):
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._outcomes.clear()

    def _close(self):
        if self._state != CircuitState.CLOSED:
            logger.info(f"[CIRCUIT BREAKER] {self.name} circuit closed")
        self._state = CircuitState.CLOSED
        self._outcomes.clear()


def call_with_fallback(
    primary: Callable[..., T],
    fallback: Callable[..., T],
    breaker: CircuitBreaker,
    *args,
    **kwargs
) -> T:
    """
    Run ``primary`` through ``breaker``; on any failure return ``fallback``.

    Both callables receive the same arguments. Exceptions from ``primary``
    never reach the caller.
    """
    try:
        if not breaker.allow_request():
            raise CircuitOpenError(f"Circuit '{breaker.name}' is open")
        try:
            result = primary(*args, **kwargs)
        except BaseException:
            # Cancellation must still release the half-open trial
            breaker.record_failure()
            raise
        breaker.record_success()
        return result
    except Exception as e:
        logger.warning(f"Falling back after {type(e).__name__}: {e}")
        return fallback(*args, **kwargs)


async def acall_with_fallback(
    primary: Callable[..., Awaitable[T]],
    fallback: Callable[..., T],
    breaker: CircuitBreaker,
    *args,
    **kwargs
) -> T:
    """Async twin of ``call_with_fallback`` for coroutine primaries."""
    try:
        if not breaker.allow_request():
            raise CircuitOpenError(f"Circuit '{breaker.name}' is open")
        try:
            result = await primary(*args, **kwargs)
        except BaseException:
            # Cancellation must still release the half-open trial
            breaker.record_failure()
            raise
        breaker.record_success()
        return result
    except Exception as e:
        logger.warning(f"Falling back after {type(e).__name__}: {e}")
        return fallback(*args, **kwargs)
