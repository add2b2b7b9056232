from __future__ import annotations

from typing import Protocol
import threading

from .models import FetchResult


class QuoteProvider(Protocol):
    """
    Single provider contract.

    A provider is responsible for supplying the complete current listing
    of quotes for its market(s).

    Failures are raised, never returned as partial results.
    """

    name: str

    def fetch(self, *, cancel_event: threading.Event | None = None) -> FetchResult:
        """
        Returns every quote of the listing in upstream order.

        Raises FetchCancelled when `cancel_event` is set before the next request.
        """
