"""
Two-tier in-process cache with single-flight computation.

- local tier: private to one TieredCache, short horizon (`local_ttl`)
- shared tier: a MemoryStore that several caches may share, long horizon (`shared_ttl`)

Concurrent `get_or_create` calls for the same key run the factory once;
every caller observes that single result (or that single failure).
"""
from __future__ import annotations

from concurrent.futures import Future, TimeoutError as FutureTimeoutError
import datetime as dt
import logging
import threading
import time
from typing import Any, Callable

from .errors import FetchCancelled

logger = logging.getLogger(__name__)


_WAIT_POLL_SECONDS = 0.05


def _seconds(ttl: dt.timedelta | float) -> float:
    if isinstance(ttl, dt.timedelta):
        return ttl.total_seconds()
    return float(ttl)


class MemoryStore:
    """Thread-safe key -> (expires_at, value) map."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return False, None
            return True, value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, value)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class TieredCache:
    def __init__(
        self,
        *,
        shared: MemoryStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._local = MemoryStore(clock=clock)
        self._shared = shared if shared is not None else MemoryStore(clock=clock)
        self._lock = threading.Lock()
        self._inflight: dict[str, Future] = {}

    @property
    def shared(self) -> MemoryStore:
        return self._shared

    def get_or_create(
        self,
        key: str,
        factory: Callable[[threading.Event | None], Any],
        *,
        shared_ttl: dt.timedelta | float,
        local_ttl: dt.timedelta | float,
        cancel_event: threading.Event | None = None,
    ) -> Any:
        """
        Return the live value for `key`, computing it with `factory(cancel_event)` on a miss.

        Failures are propagated to every caller waiting on the same computation
        and are not cached. When the leading caller is cancelled, the other
        waiters start a new computation instead of observing FetchCancelled.
        """
        shared_seconds = _seconds(shared_ttl)
        local_seconds = _seconds(local_ttl)
        if local_seconds > shared_seconds:
            raise ValueError("local_ttl must not exceed shared_ttl")

        while True:
            hit, value = self._local.get(key)
            if hit:
                logger.debug(f"cache local hit: {key}")
                return value

            with self._lock:
                fut = self._inflight.get(key)
                leader = fut is None
                if leader:
                    fut = Future()
                    self._inflight[key] = fut

            if leader:
                return self._compute(key, fut, factory, shared_seconds, local_seconds, cancel_event)

            logger.debug(f"cache joining in-flight computation: {key}")
            try:
                return self._wait(fut, cancel_event)
            except FetchCancelled:
                if cancel_event is not None and cancel_event.is_set():
                    raise
                # the leader's caller cancelled, not this one
                logger.debug(f"cache in-flight computation cancelled by its leader, retrying: {key}")

    def _compute(
        self,
        key: str,
        fut: Future,
        factory: Callable[[threading.Event | None], Any],
        shared_seconds: float,
        local_seconds: float,
        cancel_event: threading.Event | None,
    ) -> Any:
        try:
            hit, value = self._shared.get(key)
            if hit:
                logger.debug(f"cache shared hit: {key}")
            else:
                value = factory(cancel_event)
                self._shared.set(key, value, shared_seconds)
            self._local.set(key, value, local_seconds)
        except BaseException as e:
            self._release(key)
            fut.set_exception(e)
            raise
        self._release(key)
        fut.set_result(value)
        return value

    def _release(self, key: str) -> None:
        with self._lock:
            self._inflight.pop(key, None)

    @staticmethod
    def _wait(fut: Future, cancel_event: threading.Event | None) -> Any:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise FetchCancelled("operation cancelled")
            try:
                return fut.result(timeout=_WAIT_POLL_SECONDS)
            except FutureTimeoutError:
                continue

    def invalidate(self, key: str) -> None:
        self._local.remove(key)
        self._shared.remove(key)

    def clear(self) -> None:
        self._local.clear()
        self._shared.clear()
