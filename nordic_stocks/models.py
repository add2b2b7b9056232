from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Mapping

from .decoding import decode_decimal, decode_integer, decode_text
from .errors import DocumentParseError


# attribute -> upstream/snapshot field name (camelCase)
_TEXT_FIELDS = {
    "full_name": "fullName",
    "symbol": "symbol",
    "currency": "currency",
    "percentage_change": "percentageChange",
    "orderbook_id": "orderbookId",
    "asset_class": "assetClass",
    "sector": "sector",
    "isin": "isin",
    "delta_indicator": "deltaIndicator",
}

_DECIMAL_FIELDS = {
    "bid_price": "bidPrice",
    "ask_price": "askPrice",
    "last_sale_price": "lastSalePrice",
    "high": "high",
    "low": "low",
    "net_change": "netChange",
    "turnover": "turnover",
}

_INTEGER_FIELDS = {
    "volume": "volume",
}

FIELD_ORDER = [
    "fullName",
    "symbol",
    "currency",
    "netChange",
    "percentageChange",
    "bidPrice",
    "askPrice",
    "lastSalePrice",
    "high",
    "low",
    "volume",
    "turnover",
    "orderbookId",
    "assetClass",
    "sector",
    "isin",
    "deltaIndicator",
]


def lower_keys(obj: Mapping[str, Any]) -> dict[str, Any]:
    """Case-insensitive view of a JSON object (first key wins on collisions)."""
    out: dict[str, Any] = {}
    for k, v in obj.items():
        out.setdefault(str(k).lower(), v)
    return out


@dataclass(frozen=True)
class Quote:
    """One security's observation. Missing numbers are None, never 0."""

    full_name: str = ""
    symbol: str = ""
    currency: str = ""
    net_change: Decimal | None = None
    percentage_change: str = ""
    bid_price: Decimal | None = None
    ask_price: Decimal | None = None
    last_sale_price: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    volume: int | None = None
    turnover: Decimal | None = None
    orderbook_id: str = ""
    asset_class: str = ""
    sector: str = ""
    isin: str = ""
    delta_indicator: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Quote":
        """
        Build a Quote from one upstream row.

        Field names are matched case-insensitively. Cell-level anomalies
        decode to None/""; a row that is not an object, or a text cell holding
        an object/array, raises DocumentParseError.
        """
        if not isinstance(row, Mapping):
            raise DocumentParseError(f"row is not an object: {type(row).__name__}")
        cells = lower_keys(row)

        values: dict[str, Any] = {}
        for attr, name in _TEXT_FIELDS.items():
            try:
                values[attr] = decode_text(cells.get(name.lower()))
            except TypeError as e:
                raise DocumentParseError(f"field {name!r}: {e}") from e
        for attr, name in _DECIMAL_FIELDS.items():
            values[attr] = decode_decimal(cells.get(name.lower()))
        for attr, name in _INTEGER_FIELDS.items():
            values[attr] = decode_integer(cells.get(name.lower()))
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """camelCase mapping in snapshot field order."""
        by_name = {}
        for mapping in (_TEXT_FIELDS, _DECIMAL_FIELDS, _INTEGER_FIELDS):
            for attr, name in mapping.items():
                by_name[name] = getattr(self, attr)
        return {name: by_name[name] for name in FIELD_ORDER}


@dataclass(frozen=True)
class Page:
    """A single listing page; transient, merged into a FetchResult."""

    number: int
    quotes: tuple[Quote, ...]
    total_pages: int | None = None
    total_records: int | None = None

    @property
    def row_count(self) -> int:
        return len(self.quotes)


class StopReason(str, Enum):
    EMPTY_PAGE = "empty_page"
    SHORT_PAGE = "short_page"
    PAGE_LIMIT = "page_limit"


@dataclass(frozen=True)
class FetchResult:
    """Quotes accumulated across all pages of one fetch, in page order."""

    quotes: list[Quote] = field(default_factory=list)
    pages_fetched: int = 0
    total_pages: int | None = None
    stop_reason: StopReason | None = None

    def __len__(self) -> int:
        return len(self.quotes)

    def __iter__(self) -> Iterator[Quote]:
        return iter(self.quotes)

    def __getitem__(self, index):
        return self.quotes[index]
