"""
Error types raised at the network boundaries of Kursverwaltung.

Resolver and merge functions never raise for malformed data; only the
storage and extraction clients raise, and only these types.
"""

from typing import Optional


class KursverwaltungError(Exception):
    """Base class for all domain errors."""


class StorageError(KursverwaltungError):
    """Raised when a call against the record storage API fails."""

    def __init__(self, collection: str, message: str, status: Optional[int] = None):
        self.collection = collection
        self.status = status
        detail = f" ({status})" if status is not None else ""
        super().__init__(f"Storage error for '{collection}'{detail}: {message}")


class ExtractionError(KursverwaltungError):
    """Raised when the photo extraction service fails or returns garbage."""


class RetryError(KursverwaltungError):
    """Raised when all retry attempts are exhausted."""


class CircuitOpenError(KursverwaltungError):
    """Raised when a call is blocked by an open circuit breaker."""

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(
            f"Circuit breaker is OPEN. Service unavailable. Retry after {retry_after:.0f}s"
        )
