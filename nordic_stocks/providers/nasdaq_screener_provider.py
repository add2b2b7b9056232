"""
Nasdaq Nordic screener provider.

Walks the paginated "shares" screener listing and returns every quote in
page order.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import threading

from ..errors import DocumentParseError, FetchCancelled, FetchFailed, ParseFailed, TransportError
from ..models import FetchResult, Page, Quote, StopReason, lower_keys
from ..decoding import decode_integer
from ..provider import QuoteProvider
from .http_transport import HttpTransport, raise_if_cancelled

logger = logging.getLogger(__name__)


NASDAQ_SCREENER_URL = "https://api.nasdaq.com/api/nordic/screener/shares"
DEFAULT_PAGE_SIZE = 100
MAX_PAGES = 100


def _object_or_none(value, what: str) -> dict | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise DocumentParseError(f"{what} is not an object: {type(value).__name__}")
    return lower_keys(value)


def parse_listing_page(document, *, page: int) -> Page:
    """
    Decode one screener response: data -> instrumentListing -> rows.

    A null document or missing levels mean "no rows"; wrong JSON types at any
    level are structural errors.
    """
    root = _object_or_none(document, "response")
    data = _object_or_none((root or {}).get("data"), "data")
    listing = _object_or_none((data or {}).get("instrumentlisting"), "instrumentListing")
    if listing is None:
        return Page(number=page, quotes=())

    rows = listing.get("rows")
    if rows is None:
        rows = []
    if not isinstance(rows, list):
        raise DocumentParseError(f"rows is not an array: {type(rows).__name__}")

    return Page(
        number=page,
        quotes=tuple(Quote.from_row(r) for r in rows),
        total_pages=decode_integer(listing.get("totalpages")),
        total_records=decode_integer(listing.get("totalrecords")),
    )


def next_stop_reason(
    page: Page,
    *,
    page_size: int,
) -> StopReason | None:
    """Termination decided by the page just fetched (None -> continue)."""
    if page.row_count == 0:
        return StopReason.EMPTY_PAGE
    if page.row_count < page_size:
        return StopReason.SHORT_PAGE
    return None


@dataclass(frozen=True)
class NasdaqScreenerProvider(QuoteProvider):
    """
    QuoteProvider over the Nasdaq Nordic screener.

    Stops on the first of: an empty page, a short page, or the page number
    passing min(first reported totalPages, max_pages).
    """

    transport: HttpTransport = field(default_factory=HttpTransport, repr=False, compare=False)
    url: str = NASDAQ_SCREENER_URL
    category: str = "MAIN_MARKET"
    page_size: int = DEFAULT_PAGE_SIZE
    max_pages: int = MAX_PAGES
    name: str = "nasdaq_screener"

    def __post_init__(self):
        if self.transport is None:
            raise ValueError("transport is required")
        if self.page_size <= 0:
            raise ValueError("page_size must be > 0")
        if self.max_pages <= 0:
            raise ValueError("max_pages must be > 0")

    def _params(self, page: int) -> dict:
        return {
            "category": self.category,
            "tableonly": "false",
            "page": page,
            "size": self.page_size,
            "lang": "en",
        }

    def fetch_page(self, page: int, *, cancel_event: threading.Event | None = None) -> Page:
        document = self.transport.fetch_json(self.url, params=self._params(page), cancel_event=cancel_event)
        return parse_listing_page(document, page=page)

    def fetch(self, *, cancel_event: threading.Event | None = None) -> FetchResult:
        """
        Fetch the full listing.

        Raises FetchFailed (transport), ParseFailed (document structure) or
        FetchCancelled. Nothing accumulated is returned on failure.
        """
        quotes: list[Quote] = []
        page_number = 1
        total_pages: int | None = None
        stop_reason: StopReason | None = None

        try:
            while stop_reason is None:
                page_limit = self.max_pages if total_pages is None else min(total_pages, self.max_pages)
                if page_number > page_limit:
                    stop_reason = StopReason.PAGE_LIMIT
                    page_number -= 1
                    break

                raise_if_cancelled(cancel_event)
                page = self.fetch_page(page_number, cancel_event=cancel_event)

                if page.row_count == 0:
                    logger.debug(f"No more rows returned at page {page_number}")
                else:
                    quotes.extend(page.quotes)
                    if total_pages is None:
                        total_pages = page.total_pages
                    logger.debug(
                        f"Fetched page {page_number} of {total_pages}, retrieved {page.row_count} stocks"
                    )

                stop_reason = next_stop_reason(page, page_size=self.page_size)
                if stop_reason is None:
                    page_number += 1
        except FetchCancelled:
            logger.warning(f"Fetch cancelled before page {page_number}")
            raise
        except TransportError as e:
            logger.error(f"Failed to fetch Nasdaq stocks from {self.url}: {e}")
            raise FetchFailed(endpoint=self.url, cause=e) from e
        except DocumentParseError as e:
            logger.error(f"Failed to parse Nasdaq stocks response: {e}")
            raise ParseFailed(cause=e) from e
        except Exception as e:
            logger.error(f"Unexpected error while fetching Nasdaq stocks: {e}")
            raise FetchFailed(endpoint=self.url, cause=e) from e

        logger.info(f"Successfully fetched {len(quotes)} stocks ({page_number} pages, stop={stop_reason.value})")
        return FetchResult(
            quotes=quotes,
            pages_fetched=page_number,
            total_pages=total_pages,
            stop_reason=stop_reason,
        )
