from .http_transport import HttpTransport
from .nasdaq_screener_provider import NasdaqScreenerProvider
from .snapshot_client import CacheSettings, SnapshotClient

__all__ = ["HttpTransport", "NasdaqScreenerProvider", "CacheSettings", "SnapshotClient"]
