"""
HTTP client for the Living Apps record REST API.

Records live under ``{base_url}/apps/{app_id}/records``. Listing returns an
object keyed by record id; create and update send ``{"fields": {...}}``.
"""

from typing import Any, Dict, List, Mapping, Optional

import requests

from .config import get_config
from .errors import CircuitOpenError, RetryError, StorageError
from .logger import get_logger
from .models import Record, app_id_for
from .retry import CircuitBreaker, exponential_backoff, should_retry_http_status

logger = get_logger()


class TransientStatusError(requests.exceptions.HTTPError):
    """A 5xx/429/408 answer that is worth retrying."""


RETRY_EXCEPTIONS = (
    requests.exceptions.Timeout,
    requests.exceptions.ConnectionError,
    TransientStatusError,
)


class LivingAppsClient:
    """
    CRUD access to the five collections over HTTP.

    Every failure surfaces as StorageError; transient failures are retried
    with exponential backoff first.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        breaker: Optional[CircuitBreaker] = None,
    ):
        settings = get_config()
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self.timeout = timeout or settings.request_timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")
        api_key = api_key or settings.api_key
        if api_key:
            self.session.headers["X-API-Key"] = api_key
        self.breaker = breaker or CircuitBreaker(failure_threshold=5, recovery_timeout=30, expected_exception=RetryError)
        self._send = exponential_backoff(
            max_retries=max_retries,
            base_delay=retry_delay,
            exceptions=RETRY_EXCEPTIONS,
            on_retry=self._log_retry,
        )(self._send_once)

    def _url(self, collection: str, record_id: Optional[str] = None) -> str:
        url = f"{self.base_url}/apps/{app_id_for(collection)}/records"
        return f"{url}/{record_id}" if record_id else url

    @staticmethod
    def _log_retry(attempt: int, error: Exception, delay: float):
        logger.warning("Retrying storage request", attempt=attempt, error=str(error), delay=delay)

    def _send_once(self, method: str, url: str, **kwargs) -> requests.Response:
        resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        if should_retry_http_status(resp.status_code):
            raise TransientStatusError(f"{resp.status_code} from {url}", response=resp)
        return resp

    def _request(self, method: str, collection: str, record_id: Optional[str] = None, **kwargs) -> Any:
        """Send a request and return the decoded JSON body (None when empty)."""
        url = self._url(collection, record_id)
        logger.record_api_call(collection)
        try:
            resp = self.breaker.call(self._send, method, url, **kwargs)
            resp.raise_for_status()
        except CircuitOpenError as e:
            logger.record_api_failure(collection, "CircuitOpen")
            logger.error("Storage backend unavailable", collection=collection, error=str(e))
            raise StorageError(collection, str(e)) from e
        except RetryError as e:
            cause = e.__cause__
            status = None
            if isinstance(cause, requests.exceptions.HTTPError) and cause.response is not None:
                status = cause.response.status_code
            logger.record_api_failure(collection, type(cause).__name__ if cause else "RetryError")
            logger.error("Storage request failed after retries", collection=collection, method=method, url=url, status=status)
            raise StorageError(collection, "request failed after retries", status=status) from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.record_api_failure(collection, f"HTTPError_{status}")
            logger.error("Storage request rejected", collection=collection, method=method, url=url, status=status)
            if status == 404:
                raise StorageError(collection, f"record not found: {record_id or url}", status=404) from e
            raise StorageError(collection, f"request rejected: {url}", status=status) from e
        except requests.exceptions.RequestException as e:
            logger.record_api_failure(collection, "RequestException")
            logger.error("Storage request error", collection=collection, method=method, url=url, error=str(e))
            raise StorageError(collection, f"request error: {e}") from e

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            logger.record_api_failure(collection, "InvalidJSON")
            raise StorageError(collection, "response is not valid JSON", status=resp.status_code) from e

    def get_records(self, collection: str) -> List[Record]:
        data = self._request("GET", collection)
        if data is None:
            return []
        if not isinstance(data, dict):
            raise StorageError(collection, "unexpected payload for record list")
        records = [
            Record.from_api(record_id, payload)
            for record_id, payload in data.items()
            if isinstance(payload, dict)
        ]
        logger.debug("Loaded records", collection=collection, count=len(records))
        return records

    def create_record(self, collection: str, fields: Mapping[str, Any]) -> Record:
        data = self._request("POST", collection, json={"fields": dict(fields)})
        record_id = None
        if isinstance(data, dict):
            record_id = data.get("record_id") or data.get("id")
        if not record_id:
            raise StorageError(collection, "create response carries no record id")
        payload = data if isinstance(data.get("fields"), dict) else {**data, "fields": dict(fields)}
        logger.info("Created record", collection=collection, record_id=record_id)
        return Record.from_api(record_id, payload)

    def update_record(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> Record:
        data = self._request("PATCH", collection, record_id, json={"fields": dict(fields)})
        payload: Dict[str, Any] = data if isinstance(data, dict) and isinstance(data.get("fields"), dict) else {"fields": dict(fields)}
        logger.info("Updated record", collection=collection, record_id=record_id)
        return Record.from_api(record_id, payload)

    def delete_record(self, collection: str, record_id: str) -> None:
        self._request("DELETE", collection, record_id)
        logger.info("Deleted record", collection=collection, record_id=record_id)
