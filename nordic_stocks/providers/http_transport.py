"""
HTTP transport shared by the screener provider and the snapshot client.

Owns timeouts, rate limiting and retry/backoff; callers only see
TransportError, DocumentParseError or FetchCancelled.
"""
from __future__ import annotations

from decimal import Decimal
import logging
import random
import threading
import time

import requests

from ..errors import DocumentParseError, FetchCancelled, TransportError

logger = logging.getLogger(__name__)


DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "application/json",
    "Accept-Encoding": "gzip, deflate",
    "Accept-Language": "en-US,en;q=0.9",
}

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


def raise_if_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise FetchCancelled("operation cancelled")


def _sleep(seconds: float, cancel_event: threading.Event | None) -> None:
    if cancel_event is None:
        time.sleep(seconds)
        return
    if cancel_event.wait(seconds):
        raise FetchCancelled("operation cancelled")


class RequestThrottle:
    """
    Spaces upstream requests at least `1 / max_requests_per_second` apart.

    Shared by every thread using one transport. A rate of 0 disables it.
    """

    def __init__(self, max_requests_per_second: float = 0.0, *, clock=time.monotonic):
        rps = float(max_requests_per_second)
        if rps < 0:
            raise ValueError("max_requests_per_second must be >= 0")
        self._interval = 0.0 if rps == 0 else 1.0 / rps
        self._clock = clock
        self._lock = threading.Lock()
        self._next_slot = 0.0

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def reserve(self) -> float:
        """Claim the next request slot; returns how long the caller must wait for it."""
        if self._interval <= 0:
            return 0.0
        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self._interval
        return slot - now

    def wait(self, cancel_event: threading.Event | None = None) -> None:
        delay = self.reserve()
        if delay > 0:
            _sleep(delay, cancel_event)


class HttpTransport:
    """requests-based JSON fetcher."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        backoff_base_seconds: float = 0.5,
        backoff_max_seconds: float = 10.0,
        max_requests_per_second: float = 0.0,
        session: requests.Session | None = None,
        headers: dict | None = None,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._timeout_seconds = float(timeout_seconds)
        self._max_retries = int(max_retries)
        self._backoff_base_seconds = float(backoff_base_seconds)
        self._backoff_max_seconds = float(backoff_max_seconds)

        self._throttle = RequestThrottle(max_requests_per_second)

        self._session = session or requests.Session()
        self._session.headers.update(DEFAULT_HEADERS)
        if headers:
            self._session.headers.update(headers)

    def _backoff(self, attempt: int) -> float:
        delay = min(self._backoff_max_seconds, self._backoff_base_seconds * (2**attempt))
        return delay * (0.8 + 0.4 * random.random())

    def fetch_json(self, url: str, *, params: dict | None = None, cancel_event: threading.Event | None = None):
        """
        GET `url` and return the decoded JSON document.

        JSON numbers with a fraction/exponent are decoded as Decimal.
        Retries network errors and 429/5xx responses with jittered exponential
        backoff; other non-2xx responses fail immediately.
        """
        last_err: Exception | None = None
        last_status: int | None = None
        for attempt in range(self._max_retries + 1):
            raise_if_cancelled(cancel_event)
            self._throttle.wait(cancel_event)
            logger.debug(f"GET {url} params={params} attempt={attempt + 1}")
            try:
                res = self._session.get(url, params=params, timeout=self._timeout_seconds)
            except requests.RequestException as e:
                last_err, last_status = e, None
                if attempt >= self._max_retries:
                    break
                logger.warning(f"Network error for {url} ({e}); retrying")
                _sleep(self._backoff(attempt), cancel_event)
                continue

            if 200 <= res.status_code < 300:
                try:
                    return res.json(parse_float=Decimal)
                except ValueError as e:
                    raise DocumentParseError(f"malformed JSON: {e}", url=url) from e

            last_err, last_status = None, res.status_code
            if res.status_code in RETRYABLE_STATUS and attempt < self._max_retries:
                logger.warning(f"HTTP {res.status_code} for {url}; retrying")
                _sleep(self._backoff(attempt), cancel_event)
                continue
            break

        raise TransportError(url=url, status_code=last_status, cause=last_err)
