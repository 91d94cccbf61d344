"""In-memory TTL cache with single-flight population.

Concurrent misses for the same key share one computation: the first caller
starts it as a task, later callers await the same task, and every waiter sees
the same value or the same exception. Only successful computations are
stored.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from time import monotonic
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 3600.0

_MISSING: Any = object()


@dataclass
class CacheItem(Generic[T]):
    """Container for cached values with expiration metadata."""

    value: T
    expires_at: float


@dataclass
class _Flight:
    task: asyncio.Task
    waiters: int = field(default=0)


class AsyncTTLCache(Generic[T]):
    """Thread-safe, in-memory TTL cache with LRU eviction.

    Attributes:
        ttl_seconds: Default time-to-live applied to entries.
        max_entries: Maximum number of cached items (None for unlimited).
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int | None = None,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, CacheItem[T]] = OrderedDict()
        self._inflight: dict[str, _Flight] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"AsyncTTLCache(ttl_seconds={self.ttl_seconds}, max_entries={self.max_entries}, "
            f"size={len(self._store)}, hits={self._hits}, misses={self._misses})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def get(self, key: str, default: Any = None) -> T | Any:
        """Return the live value for ``key``, or ``default`` if absent/expired."""
        with self._lock:
            item = self._store.get(key)
            if item is None:
                self._misses += 1
                logger.debug("Cache miss for %s", key)
                return default

            if self._is_expired(item):
                self._evict_single(key)
                self._misses += 1
                logger.debug("Cache entry expired for %s", key)
                return default

            self._hits += 1
            self._store.move_to_end(key)
            logger.debug("Cache hit for %s", key)
            return item.value

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        """Store a value with TTL, evicting as needed."""
        ttl = self.ttl_seconds if ttl is None else ttl
        with self._lock:
            self._evict_expired_locked()
            self._store[key] = CacheItem(value=value, expires_at=self._clock() + ttl)
            self._store.move_to_end(key)
            self._evict_if_over_capacity_locked()

    def invalidate(self, key: str) -> bool:
        """Drop ``key``; returns whether a live or expired entry existed."""
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> dict[str, int | float | None]:
        """Return lightweight cache metrics without exposing values."""
        with self._lock:
            return {
                "ttl_seconds": self.ttl_seconds,
                "max_entries": self.max_entries,
                "entries": len(self._store),
                "in_flight": len(self._inflight),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T:
        """Return the cached value for ``key`` or compute, store and return it.

        ``compute`` runs at most once per miss no matter how many callers
        miss concurrently. A caller that is cancelled stops waiting; the
        shared computation is cancelled only once no caller is left.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        with self._lock:
            flight = self._inflight.get(key)
            if flight is None:
                task = asyncio.ensure_future(self._populate(key, compute, ttl))
                flight = _Flight(task=task)
                self._inflight[key] = flight
            else:
                logger.debug("Joining in-flight computation for %s", key)
            flight.waiters += 1

        try:
            return await asyncio.shield(flight.task)
        finally:
            with self._lock:
                flight.waiters -= 1
                abandoned = flight.waiters == 0 and not flight.task.done()
                if abandoned and self._inflight.get(key) is flight:
                    # Later callers must start afresh, not join a dying task.
                    del self._inflight[key]
            if abandoned:
                logger.debug("All waiters left; cancelling computation for %s", key)
                flight.task.cancel()
                # Let the computation unwind (and release what it holds)
                # before the cancellation reaches the caller.
                await asyncio.wait([flight.task])
                if not flight.task.cancelled():
                    # Failed while unwinding; nobody is left to see it.
                    exc = flight.task.exception()
                    if exc is not None:
                        logger.debug("Abandoned computation for %s failed: %r", key, exc)

    async def _populate(
        self,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl: float | None,
    ) -> T:
        try:
            value = await compute()
            self.set(key, value, ttl=ttl)
            return value
        finally:
            with self._lock:
                flight = self._inflight.get(key)
                if flight is not None and flight.task is asyncio.current_task():
                    del self._inflight[key]

    def _evict_single(self, key: str) -> None:
        if key in self._store:
            self._store.pop(key, None)
            self._evictions += 1

    def _evict_expired_locked(self) -> None:
        now = self._clock()
        expired_keys = [k for k, item in self._store.items() if item.expires_at <= now]
        for key in expired_keys:
            self._evict_single(key)

    def _evict_if_over_capacity_locked(self) -> None:
        if not self.max_entries:
            return

        while len(self._store) > self.max_entries:
            # popitem(last=False) removes the least recently used entry
            self._store.popitem(last=False)
            self._evictions += 1

    def _is_expired(self, item: CacheItem[T]) -> bool:
        return self._clock() >= item.expires_at
