"""
Retry logic with exponential backoff for calls against the record API.

Timeouts, dropped connections and 5xx answers from the storage backend
are common enough on a dashboard reload that every request goes through
these helpers.
"""

import time
import functools
from typing import Callable, Type, Tuple, Optional
from datetime import datetime

from .errors import RetryError, CircuitOpenError


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Multiplier applied to the delay after each attempt
        exceptions: Exception types that trigger a retry
        on_retry: Optional callback(attempt, exception, delay)

    Example:
        @exponential_backoff(max_retries=3, exceptions=(requests.exceptions.Timeout,))
        def load_records(url):
            return session.get(url, timeout=15)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {e}"
                        ) from e

                    current_delay = min(delay, max_delay)
                    if on_retry:
                        on_retry(attempt + 1, e, current_delay)
                    time.sleep(current_delay)
                    delay *= exponential_base

            raise RetryError("Retry loop exited without a result")

        return wrapper
    return decorator


class CircuitBreaker:
    """
    Stops calling a storage backend that keeps failing.

    States:
    - CLOSED: requests pass through
    - OPEN: too many consecutive failures, requests are rejected
    - HALF_OPEN: recovery timeout elapsed, the next request is a trial call
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        expected_exception: Type[Exception] = Exception,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception

        self.failure_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.state = self.CLOSED

    def call(self, func: Callable, *args, **kwargs):
        """
        Execute func under circuit breaker protection.

        Raises:
            CircuitOpenError: If the circuit is OPEN
            Original exception: If func fails while CLOSED or HALF_OPEN
        """
        if self.state == self.OPEN:
            if self._should_attempt_reset():
                self.state = self.HALF_OPEN
            else:
                raise CircuitOpenError(self._time_until_reset())

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _should_attempt_reset(self) -> bool:
        if self.last_failure_time is None:
            return True
        elapsed = (datetime.now() - self.last_failure_time).total_seconds()
        return elapsed >= self.recovery_timeout

    def _time_until_reset(self) -> float:
        if self.last_failure_time is None:
            return 0
        elapsed = (datetime.now() - self.last_failure_time).total_seconds()
        return max(0, self.recovery_timeout - elapsed)

    def _on_success(self):
        self.failure_count = 0
        self.state = self.CLOSED

    def _on_failure(self):
        self.failure_count += 1
        self.last_failure_time = datetime.now()
        if self.state == self.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = self.OPEN

    def reset(self):
        """Manually close the circuit."""
        self.failure_count = 0
        self.last_failure_time = None
        self.state = self.CLOSED


RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def should_retry_http_status(status_code: int) -> bool:
    """Check if an HTTP status code from the record API is retryable."""
    return status_code in RETRYABLE_STATUS_CODES
