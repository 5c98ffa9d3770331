"""
Waiting-data source adapter.

Fetches one day of congestion records from the object store:

    GET {bucket_url}/waiting-data/{YYYY-MM-DD}.json

One request per call, no retries. The timeout is an overall deadline
covering connect, headers and the whole body. Every failure is turned into a
WaitingDataResult here; nothing raised by httpx or the JSON parser leaves
fetch().

Outcomes:
    200 + JSON array    -> success, records normalized
    404                 -> failure, error "not found", not_found=True
    timeout             -> failure
    other status/network/non-array/parse error -> failure
"""

from __future__ import annotations

import json
import time
from typing import Optional, Tuple

import httpx

from core.exceptions import (
    MalformedWaitingDataError,
    WaitingDataNotFoundError,
    WaitingSourceDisabledError,
    WaitingSourceError,
    WaitingSourceTimeoutError,
)
from models.waiting import WaitingData, WaitingDataResult
from logging_config import get_logger


logger = get_logger(__name__)

DEFAULT_TIMEOUT_MS = 3000


def object_key_for(date_key: str) -> str:
    return f"waiting-data/{date_key}.json"


class WaitingDataSource:
    """
    Object-store client for per-day waiting data.

    Example:
        >>> source = WaitingDataSource("https://bucket.s3.ap-northeast-2.amazonaws.com")
        >>> result = source.fetch("2026-01-15")
        >>> result.success, len(result.data)
        (True, 312)
    """

    def __init__(
        self,
        bucket_url: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        enabled: bool = True,
        client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            bucket_url: Base URL of the bucket (no trailing object key)
            timeout_ms: Per-request timeout covering connect and read
            enabled: When False every fetch fails with "waiting source disabled"
            client: Pre-built httpx client (tests pass one with a MockTransport)
        """
        self._bucket_url = bucket_url.rstrip("/")
        self._timeout_ms = timeout_ms
        self._enabled = enabled
        self._owns_client = client is None
        self._client = client or httpx.Client()

        logger.info(
            f"WaitingDataSource initialized ({self._bucket_url}, timeout {timeout_ms}ms, "
            f"{'enabled' if enabled else 'disabled'})"
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    def close(self) -> None:
        """Close the underlying HTTP client if this adapter created it."""
        if self._owns_client:
            self._client.close()

    def fetch(self, date_key: str) -> WaitingDataResult:
        """
        Fetch and normalize one day of waiting data.

        Never raises; see module docstring for the outcome table.
        """
        try:
            records = self._fetch_records(date_key)
        except WaitingDataNotFoundError as e:
            logger.warning(f"No waiting data for {date_key} ({e.object_key})")
            return WaitingDataResult.failed(e.message, not_found=True)
        except WaitingSourceTimeoutError as e:
            logger.warning(f"Waiting data fetch for {date_key} timed out after {e.timeout_ms}ms")
            return WaitingDataResult.failed(e.message)
        except WaitingSourceError as e:
            logger.error(f"Waiting data fetch for {date_key} failed: {e.message}")
            return WaitingDataResult.failed(e.message)
        except httpx.HTTPError as e:
            logger.error(f"Waiting data fetch for {date_key} failed: {e}")
            return WaitingDataResult.failed(str(e) or type(e).__name__)

        logger.info(f"Fetched {len(records)} waiting records for {date_key}")
        return WaitingDataResult.found(records, cached=False)

    def _fetch_records(self, date_key: str) -> Tuple[WaitingData, ...]:
        if not self._enabled:
            raise WaitingSourceDisabledError(date_key)

        object_key = object_key_for(date_key)
        url = f"{self._bucket_url}/{object_key}"
        timeout_s = self._timeout_ms / 1000.0
        # httpx timeouts apply per connect/read; this bounds the whole request
        deadline = time.monotonic() + timeout_s

        try:
            with self._client.stream("GET", url, timeout=timeout_s) as response:
                if response.status_code == 404:
                    raise WaitingDataNotFoundError(date_key, object_key)
                if response.status_code != 200:
                    raise WaitingSourceError(
                        f"Object store returned HTTP {response.status_code}",
                        date_key,
                        {"status_code": response.status_code},
                    )
                body = self._read_body(response, date_key, deadline)
        except httpx.TimeoutException:
            raise WaitingSourceTimeoutError(date_key, self._timeout_ms)

        if not body:
            raise MalformedWaitingDataError("Empty object body", date_key)

        try:
            raw = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            raise MalformedWaitingDataError("JSON parse error", date_key)

        if not isinstance(raw, list):
            raise MalformedWaitingDataError("Waiting data is not an array", date_key)

        try:
            return tuple(WaitingData.from_raw(item) for item in raw)
        except (AttributeError, TypeError, ValueError, OverflowError):
            raise MalformedWaitingDataError("Waiting data record is malformed", date_key)

    def _read_body(self, response: httpx.Response, date_key: str, deadline: float) -> bytes:
        """Read the streamed body, giving up once the overall deadline has passed."""
        chunks = []
        if time.monotonic() > deadline:
            raise WaitingSourceTimeoutError(date_key, self._timeout_ms)
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            if time.monotonic() > deadline:
                # Leaving the stream() block closes the connection
                raise WaitingSourceTimeoutError(date_key, self._timeout_ms)
        return b"".join(chunks)
