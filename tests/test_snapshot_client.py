"""
SnapshotClient tests: URL construction, caching per calendar date and
failure classification. No network.
"""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
import threading
import time

import pytest

from nordic_stocks.cache import MemoryStore, TieredCache
from nordic_stocks.errors import (
    DocumentParseError,
    FetchCancelled,
    NordicStocksError,
    RetrievalFailed,
    TransportError,
)
from nordic_stocks.providers.snapshot_client import CacheSettings, SnapshotClient, cache_key

BASE = "https://cdn.example.test/snapshots"

ROWS = [
    {"fullName": "Volvo AB", "symbol": "VOLV-B", "currency": "SEK", "lastSalePrice": 245.5, "volume": 1500000},
    {"fullName": "Nokia Corporation", "symbol": "NOKIA", "currency": "EUR", "lastSalePrice": 3.45, "volume": None},
]


class FakeTransport:
    """Serves documents by URL; an Exception value is raised instead."""

    def __init__(self, documents: dict, *, delay: float = 0.0):
        self._documents = documents
        self._delay = delay
        self._lock = threading.Lock()
        self.calls: list[str] = []

    def fetch_json(self, url, *, params=None, cancel_event=None):
        with self._lock:
            self.calls.append(url)
        if self._delay:
            time.sleep(self._delay)
        result = self._documents[url]
        if isinstance(result, Exception):
            raise result
        return result


def _client(documents: dict, **kwargs) -> tuple[SnapshotClient, FakeTransport]:
    transport = FakeTransport(documents, **kwargs)
    return SnapshotClient(transport, TieredCache(), base_url=BASE), transport


def test_latest_snapshot_when_no_date():
    client, transport = _client({f"{BASE}/data/latest.json": ROWS})
    quotes = client.get_quotes()

    assert transport.calls == [f"{BASE}/data/latest.json"]
    assert [q.symbol for q in quotes] == ["VOLV-B", "NOKIA"]
    assert quotes[0].last_sale_price == Decimal("245.5")
    assert quotes[1].volume is None


def test_dated_snapshot_url():
    client, transport = _client({f"{BASE}/data/2025-03-14.json": ROWS})
    client.get_quotes(dt.datetime(2025, 3, 14, 9, 30))
    assert transport.calls == [f"{BASE}/data/2025-03-14.json"]


def test_trailing_slash_in_base_url_is_ignored():
    transport = FakeTransport({f"{BASE}/data/latest.json": ROWS})
    client = SnapshotClient(transport, TieredCache(), base_url=BASE + "/")
    client.get_quotes()
    assert transport.calls == [f"{BASE}/data/latest.json"]


def test_same_calendar_date_is_fetched_once():
    client, transport = _client({f"{BASE}/data/2025-03-14.json": ROWS})

    first = client.get_quotes(dt.datetime(2025, 3, 14, 0, 1))
    second = client.get_quotes(dt.datetime(2025, 3, 14, 23, 59))
    third = client.get_quotes(dt.date(2025, 3, 14))

    assert len(transport.calls) == 1
    assert first == second == third


def test_different_dates_are_fetched_separately():
    client, transport = _client(
        {
            f"{BASE}/data/2025-03-13.json": ROWS[:1],
            f"{BASE}/data/2025-03-14.json": ROWS,
        }
    )

    assert len(client.get_quotes(dt.date(2025, 3, 13))) == 1
    assert len(client.get_quotes(dt.date(2025, 3, 14))) == 2
    assert len(transport.calls) == 2


def test_cache_key_uses_calendar_date():
    assert cache_key(dt.date(2025, 3, 14)) == "nordic-stocks:quotes:2025-03-14"


def test_transport_failure_is_classified():
    url = f"{BASE}/data/2025-03-14.json"
    client, _ = _client({url: TransportError(url=url, status_code=404)})

    with pytest.raises(RetrievalFailed) as e:
        client.get_quotes(dt.date(2025, 3, 14))

    assert e.value.reason == "transport"
    assert e.value.resource == "2025-03-14"
    assert "Failed to fetch stock data for 2025-03-14" in str(e.value)
    assert isinstance(e.value.__cause__, TransportError)


@pytest.mark.parametrize("body", [DocumentParseError("malformed JSON"), {"rows": []}, ["not-a-row"]])
def test_parse_failure_is_classified(body):
    client, _ = _client({f"{BASE}/data/latest.json": body})

    with pytest.raises(RetrievalFailed) as e:
        client.get_quotes()

    assert e.value.reason == "parse"
    assert "Failed to parse stock data for latest" in str(e.value)


def test_null_body_is_classified_as_empty():
    client, _ = _client({f"{BASE}/data/latest.json": None})

    with pytest.raises(RetrievalFailed) as e:
        client.get_quotes()

    assert e.value.reason == "empty"
    assert str(e.value) == "Received null response for latest"


def test_retrieval_failed_is_a_package_error():
    assert issubclass(RetrievalFailed, NordicStocksError)


def test_empty_array_is_a_valid_snapshot():
    client, _ = _client({f"{BASE}/data/latest.json": []})
    assert client.get_quotes() == []


def test_failures_are_not_cached():
    url = f"{BASE}/data/2025-03-14.json"
    documents = {url: TransportError(url=url, status_code=503)}
    client, transport = _client(documents)

    with pytest.raises(RetrievalFailed):
        client.get_quotes(dt.date(2025, 3, 14))

    documents[url] = ROWS
    assert len(client.get_quotes(dt.date(2025, 3, 14))) == 2
    assert len(transport.calls) == 2


def test_cancellation_propagates_unchanged():
    client, transport = _client({f"{BASE}/data/latest.json": ROWS})
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(FetchCancelled) as e:
        client.get_quotes(cancel_event=cancel)

    assert not isinstance(e.value, NordicStocksError)
    assert transport.calls == []


def test_concurrent_calls_for_one_date_share_a_request():
    client, transport = _client({f"{BASE}/data/2025-03-14.json": ROWS}, delay=0.2)
    results: list = []
    lock = threading.Lock()

    def worker():
        quotes = client.get_quotes(dt.date(2025, 3, 14))
        with lock:
            results.append(quotes)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)

    assert len(transport.calls) == 1
    assert len(results) == 6
    assert all(r == results[0] for r in results)


def test_clients_sharing_a_store_reuse_snapshots():
    shared = MemoryStore()
    transport = FakeTransport({f"{BASE}/data/2025-03-14.json": ROWS})
    first = SnapshotClient(transport, TieredCache(shared=shared), base_url=BASE)
    second = SnapshotClient(transport, TieredCache(shared=shared), base_url=BASE)

    first.get_quotes(dt.date(2025, 3, 14))
    second.get_quotes(dt.date(2025, 3, 14))
    assert len(transport.calls) == 1


def test_missing_collaborators_are_rejected():
    with pytest.raises(ValueError):
        SnapshotClient(None, TieredCache())
    with pytest.raises(ValueError):
        SnapshotClient(FakeTransport({}), None)


def test_cache_settings_validation():
    with pytest.raises(ValueError):
        CacheSettings(shared_ttl=dt.timedelta(minutes=1), local_ttl=dt.timedelta(minutes=5))
    settings = CacheSettings()
    assert settings.shared_ttl == dt.timedelta(hours=1)
    assert settings.local_ttl == dt.timedelta(minutes=5)
