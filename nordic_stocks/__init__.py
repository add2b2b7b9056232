"""
nordic_stocks

Nasdaq Nordic listing collection + snapshot publishing/consumption.

Design goals:
- Tolerant cell decoding (a bad cell is a missing value, never an error)
- Fail-fast on transport and document-structure errors (no partial results)
- Minimal exception catching (catch only at CLI boundary)
- Readability first
"""

from .models import Quote, FetchResult, StopReason
from .errors import FetchCancelled, FetchFailed, NordicStocksError, ParseFailed, RetrievalFailed

__all__ = [
    "Quote",
    "FetchResult",
    "StopReason",
    "FetchCancelled",
    "FetchFailed",
    "NordicStocksError",
    "ParseFailed",
    "RetrievalFailed",
]
