"""
Example: Reading published snapshots

Both clients share one long-lived cache tier; each keeps its own
short-lived local tier.
"""
import datetime as dt

from nordic_stocks.cache import MemoryStore, TieredCache
from nordic_stocks.errors import RetrievalFailed
from nordic_stocks.providers import CacheSettings, HttpTransport, SnapshotClient

shared = MemoryStore()
settings = CacheSettings(shared_ttl=dt.timedelta(hours=1), local_ttl=dt.timedelta(minutes=5))
transport = HttpTransport()

client_a = SnapshotClient(transport, TieredCache(shared=shared), settings=settings)
client_b = SnapshotClient(transport, TieredCache(shared=shared), settings=settings)

# 1. Latest snapshot
print("=== Latest ===")
latest = client_a.get_quotes()
print(f"Stocks: {len(latest)}")
for q in latest[:5]:
    print(f"  {q.symbol:<10} {q.currency} {q.last_sale_price} ({q.percentage_change})")

# 2. Same day through the other client: served from the shared tier
print("\n=== Latest (second client, cached) ===")
print(f"Stocks: {len(client_b.get_quotes())}")

# 3. A specific date
print("\n=== Historical ===")
try:
    day = dt.date.today() - dt.timedelta(days=1)
    quotes = client_a.get_quotes(day)
    print(f"{day}: {len(quotes)} stocks")
except RetrievalFailed as e:
    print(f"Note: {e} (reason={e.reason})")
