"""
Client for the published, date-addressed stock snapshots.

Snapshots are written by the publisher (see orchestrator.run_publish) and
served from a CDN as `<base>/data/latest.json` and `<base>/data/YYYY-MM-DD.json`.
"""
from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import logging
import threading

from ..cache import TieredCache
from ..errors import DocumentParseError, FetchCancelled, RetrievalFailed, TransportError
from ..models import Quote
from .http_transport import HttpTransport, raise_if_cancelled

logger = logging.getLogger(__name__)


DEFAULT_BASE_URL = "https://cdn.jsdelivr.net/gh/henrikroschmann/OpenNordicStocks.NET@main"
CACHE_KEY_PREFIX = "nordic-stocks:quotes:"
LATEST = "latest"


@dataclass(frozen=True)
class CacheSettings:
    """`shared_ttl` bounds staleness everywhere; `local_ttl` bounds it within this process."""

    shared_ttl: dt.timedelta = dt.timedelta(hours=1)
    local_ttl: dt.timedelta = dt.timedelta(minutes=5)

    def __post_init__(self):
        if self.local_ttl > self.shared_ttl:
            raise ValueError("local_ttl must not exceed shared_ttl")


def effective_date(at: dt.datetime | dt.date | None = None) -> dt.date:
    """Calendar date of `at` (time-of-day dropped), or today's UTC date."""
    if at is None:
        return dt.datetime.now(dt.timezone.utc).date()
    if isinstance(at, dt.datetime):
        return at.date()
    return at


def cache_key(day: dt.date) -> str:
    return f"{CACHE_KEY_PREFIX}{day.isoformat()}"


class SnapshotClient:
    def __init__(
        self,
        transport: HttpTransport,
        cache: TieredCache,
        *,
        base_url: str = DEFAULT_BASE_URL,
        settings: CacheSettings | None = None,
    ):
        if transport is None:
            raise ValueError("transport is required")
        if cache is None:
            raise ValueError("cache is required")
        self._transport = transport
        self._cache = cache
        self._base_url = base_url.rstrip("/")
        self._settings = settings or CacheSettings()

    def resource_url(self, at: dt.datetime | dt.date | None = None) -> str:
        label = LATEST if at is None else effective_date(at).isoformat()
        return f"{self._base_url}/data/{label}.json"

    def get_quotes(
        self,
        at: dt.datetime | dt.date | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[Quote]:
        """
        Quotes for the calendar date of `at`, or the latest snapshot when omitted.

        Repeated calls for the same effective date are served from the cache;
        concurrent misses for one date share a single upstream request.
        Raises RetrievalFailed or FetchCancelled.
        """
        raise_if_cancelled(cancel_event)
        key = cache_key(effective_date(at))
        logger.debug(f"Looking up {key}")
        return self._cache.get_or_create(
            key,
            lambda cancel: self._download(at, cancel),
            shared_ttl=self._settings.shared_ttl,
            local_ttl=self._settings.local_ttl,
            cancel_event=cancel_event,
        )

    def _download(self, at: dt.datetime | dt.date | None, cancel_event: threading.Event | None) -> list[Quote]:
        label = LATEST if at is None else effective_date(at).isoformat()
        url = self.resource_url(at)
        logger.info(f"Fetching stock snapshot {label} from {url}")
        try:
            raise_if_cancelled(cancel_event)
            document = self._transport.fetch_json(url, cancel_event=cancel_event)
            if document is None:
                raise RetrievalFailed(
                    f"Received null response for {label}",
                    resource=label,
                    reason="empty",
                )
            if not isinstance(document, list):
                raise DocumentParseError(f"expected an array of quotes, got {type(document).__name__}", url=url)
            return [Quote.from_row(row) for row in document]
        except (FetchCancelled, RetrievalFailed):
            raise
        except TransportError as e:
            logger.error(f"Failed to fetch stock data for {label}: {e}")
            raise RetrievalFailed(
                f"Failed to fetch stock data for {label}: {e}",
                resource=label,
                reason="transport",
                cause=e,
            ) from e
        except DocumentParseError as e:
            logger.error(f"Failed to parse stock data for {label}: {e}")
            raise RetrievalFailed(
                f"Failed to parse stock data for {label}: {e}",
                resource=label,
                reason="parse",
                cause=e,
            ) from e
