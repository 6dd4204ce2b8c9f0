"""In-memory TTL cache used to avoid redundant upstream calls.

Each entry carries its own TTL, the store has a hard entry cap, and eviction is
FIFO by insertion time (not LRU): a hot key inserted early can still be evicted.
Expired entries are purged lazily on read and by a periodic sweep
(see ``app.services.maintenance``).
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


@dataclass
class CacheEntry:
    """Container for cached values with expiration metadata."""

    value: Any
    inserted_at: float
    ttl_seconds: float

    def is_live(self, now: float) -> bool:
        # ttl <= 0 is accepted on set but never live
        if self.ttl_seconds <= 0:
            return False
        return now - self.inserted_at <= self.ttl_seconds


class TTLCache:
    """Thread-safe, in-memory cache with per-entry TTL and FIFO eviction.

    Attributes:
        default_ttl_seconds: TTL applied when ``set`` is called without one.
        max_entries: Maximum number of cached items.
    """

    def __init__(
        self,
        *,
        default_ttl_seconds: float = 300.0,
        max_entries: int = 1000,
        single_flight: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl_seconds: TTL used when callers omit one.
            max_entries: Upper bound on the number of stored entries.
            single_flight: Share one in-flight fetch between concurrent
                ``get_or_set`` callers racing on the same missing key.
            clock: Monotonic time source in seconds.

        Raises:
            ValueError: If max_entries is not positive.
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self.default_ttl_seconds = default_ttl_seconds
        self.max_entries = max_entries
        self._single_flight = single_flight
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"TTLCache(default_ttl_seconds={self.default_ttl_seconds}, "
            f"max_entries={self.max_entries}, size={len(self._store)}, "
            f"hits={self._hits}, misses={self._misses}, evictions={self._evictions})"
        )

    def _lookup(self, key: str) -> Any:
        """Return the live value for key or ``_MISSING``, purging stale entries."""

        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                logger.debug("cache.miss", extra={"cache_key": key, "reason": "not_found"})
                return _MISSING

            if not entry.is_live(self._clock()):
                del self._store[key]
                self._misses += 1
                logger.debug("cache.miss", extra={"cache_key": key, "reason": "expired"})
                return _MISSING

            self._hits += 1
            logger.debug("cache.hit", extra={"cache_key": key})
            return entry.value

    def get(self, key: str) -> Any | None:
        """Retrieve a cached value if it exists and is still live.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired.
        """

        value = self._lookup(key)
        return None if value is _MISSING else value

    def has(self, key: str) -> bool:
        """Return True when key holds a live entry (stale entries are purged)."""

        return self._lookup(key) is not _MISSING

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Insert or overwrite an entry with a fresh insertion time.

        When a new key arrives and the store is full, the oldest inserted
        entry is evicted first. Overwriting an existing key never evicts.

        Args:
            key: Cache key.
            value: Value to store.
            ttl_seconds: Entry lifetime; defaults to ``default_ttl_seconds``.
        """

        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds

        with self._lock:
            if key in self._store:
                # re-insert at the tail so order tracks inserted_at
                del self._store[key]
            elif len(self._store) >= self.max_entries:
                self._evict_oldest_locked()

            self._store[key] = CacheEntry(value=value, inserted_at=self._clock(), ttl_seconds=ttl)

            logger.debug(
                "cache.set",
                extra={"cache_key": key, "size": len(self._store), "ttl_s": ttl},
            )

    def delete(self, key: str) -> bool:
        """Remove key; return True if an entry was removed."""

        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def keys(self) -> list[str]:
        """Snapshot of the stored keys, stale entries included until purged."""

        with self._lock:
            return list(self._store.keys())

    def get_stats(self) -> dict[str, int | float]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            size = len(self._store)
            return {
                "size": size,
                "capacity": self.max_entries,
                "percentage": 100.0 * size / self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "default_ttl_seconds": self.default_ttl_seconds,
            }

    def purge_expired(self) -> int:
        """Delete every entry whose live window has elapsed.

        Returns:
            Number of entries removed.
        """

        with self._lock:
            now = self._clock()
            expired_keys = [k for k, entry in self._store.items() if not entry.is_live(now)]
            for key in expired_keys:
                del self._store[key]

        if expired_keys:
            logger.info(
                "cache.sweep",
                extra={"removed": len(expired_keys), "size": self.size()},
            )
        return len(expired_keys)

    async def get_or_set(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        ttl_seconds: float | None = None,
    ) -> T:
        """Return the cached value for key, fetching and storing it on a miss.

        Fetcher exceptions propagate to the caller and leave the cache
        untouched. With single-flight enabled, callers that race on the same
        missing key await one shared fetch instead of issuing duplicates.

        Args:
            key: Cache key.
            fetcher: Zero-argument coroutine function producing the value.
            ttl_seconds: Lifetime of the stored value.

        Returns:
            The cached or freshly fetched value.
        """

        value, _ = await self.get_or_set_with_hit(key, fetcher, ttl_seconds)
        return value

    async def get_or_set_with_hit(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        ttl_seconds: float | None = None,
    ) -> tuple[T, bool]:
        """Like ``get_or_set`` but also report whether the value was a cache hit.

        The lookup happens once, so hit/miss counters move by exactly one per
        call. Callers that joined another caller's in-flight fetch see False.
        """

        cached = self._lookup(key)
        if cached is not _MISSING:
            return cached, True

        if not self._single_flight:
            value = await fetcher()
            self.set(key, value, ttl_seconds)
            return value, False

        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_and_store(key, fetcher, ttl_seconds))
            pending.add_done_callback(_retrieve_exception)
            self._inflight[key] = pending
        else:
            logger.debug("cache.inflight_join", extra={"cache_key": key})

        # cancelling one caller must not cancel the fetch the others are waiting on
        return await asyncio.shield(pending), False

    async def _fetch_and_store(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        ttl_seconds: float | None,
    ) -> Any:
        try:
            value = await fetcher()
            self.set(key, value, ttl_seconds)
            return value
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]

    def _evict_oldest_locked(self) -> None:
        key, _ = self._store.popitem(last=False)
        self._evictions += 1
        logger.debug("cache.evict", extra={"cache_key": key, "reason": "capacity"})


def _retrieve_exception(task: asyncio.Task[Any]) -> None:
    # a failed fetch whose callers were all cancelled must not warn on GC
    if not task.cancelled():
        task.exception()
