"""
In-process result cache for hot KPI read paths.

This module provides a size-bounded LRU cache whose entries carry their own
TTL. Expiry is checked lazily on access; there is no background sweeper.
Dashboard polling hits the same few windows repeatedly, so serving a value
that is up to `ttl` seconds old is accepted in exchange for read latency.

Key Features:
    - LRU eviction at a fixed maximum size
    - Per-entry TTL (short for live KPIs, longer for historical series)
    - Failed computations are never cached
    - Thread-safe map, with per-key locks against cache stampedes
    - Async variant for coroutine computations

Example:
    >>> cache = ResultCache(max_entries=500)
    >>> key = build_cache_key("kpi_snapshot", start=start, end=end)
    >>> snapshot = cache.get_or_compute(key, 30, lambda: calc.compute_snapshot(stats))
"""

import asyncio
import hashlib
import json
import threading
import time
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _normalize(value: Any) -> Any:
    """Normalize a key parameter to a JSON-stable representation."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return sorted(str(_normalize(v)) for v in value)
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in sorted(value.items()) if v is not None}
    if hasattr(value, "value"):
        return _normalize(value.value)
    return value


def build_cache_key(namespace: str, **params: Any) -> str:
    """
    Build a deterministic cache key from exact query parameters.

    The same parameters always produce the same key regardless of argument
    order. None-valued parameters are dropped.

    Args:
        namespace: Query kind (e.g., "kpi_snapshot", "kpi_comparison").
        **params: Query parameters (date range, filters, period length).

    Returns:
        str: "<namespace>:<hash>" key.

    Example:
        >>> build_cache_key("kpi_comparison", period_days=30)
        'kpi_comparison:...'
    """
    normalized = {
        key: _normalize(value)
        for key, value in sorted(params.items())
        if value is not None
    }
    cache_str = json.dumps(normalized, sort_keys=True, default=str)
    hash_key = hashlib.sha256(cache_str.encode()).hexdigest()[:16]
    return f"{namespace}:{hash_key}"


class ResultCache:
    """
    Thread-safe LRU cache with lazily checked per-entry TTL.

    Attributes:
        max_entries: Maximum number of entries before LRU eviction.

    Example:
        >>> cache = ResultCache(max_entries=2)
        >>> cache.get_or_compute("a", 30, lambda: 1)
        1
        >>> cache.get_or_compute("a", 30, lambda: 2)  # hit, not recomputed
        1
    """

    def __init__(
        self,
        max_entries: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the cache.

        Args:
            max_entries: LRU size bound (default: 500).
            clock: Monotonic time source in seconds, injectable for tests.

        Raises:
            ValueError: If max_entries < 1.
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")

        self.max_entries = max_entries
        self._clock = clock
        # key -> (value, expires_at)
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.Lock()
        # key -> [lock, users]; removed when the last user releases it
        self._key_locks: Dict[str, list] = {}
        self._async_key_locks: Dict[str, list] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def _lookup(self, key: str, count: bool = True) -> Tuple[bool, Any]:
        """Return (found, value), dropping the entry if expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                if count:
                    self._misses += 1
                return False, None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                if count:
                    self._misses += 1
                return False, None
            self._entries.move_to_end(key)
            if count:
                self._hits += 1
            return True, value

    def _store(self, key: str, value: Any, ttl: float) -> None:
        """Insert or replace an entry, evicting least recently used ones."""
        if ttl <= 0:
            return
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("result_cache_evicted", key=evicted_key)

    def _checkout_key_lock(
        self, locks: Dict[str, list], key: str, factory: Callable[[], Any]
    ) -> Any:
        """Get the per-key lock for `key`, registering one more user of it."""
        with self._lock:
            entry = locks.get(key)
            if entry is None:
                entry = [factory(), 0]
                locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _release_key_lock(self, locks: Dict[str, list], key: str) -> None:
        """Drop one user of the per-key lock; forget the lock once unused."""
        with self._lock:
            entry = locks.get(key)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                del locks[key]

    def get(self, key: str) -> Optional[Any]:
        """
        Get a live entry without computing.

        Returns:
            The cached value, or None on miss or expiry.
        """
        _, value = self._lookup(key)
        return value

    def get_or_compute(self, key: str, ttl: float, compute: Callable[[], T]) -> T:
        """
        Return the cached value for `key`, computing and storing it on miss.

        Concurrent callers for the same key wait for a single computation.
        If `compute` raises, nothing is stored and the exception propagates.

        Args:
            key: Cache key derived from the exact query parameters.
            ttl: Seconds the computed value stays valid; <= 0 disables caching.
            compute: Zero-argument function producing the value.

        Returns:
            The cached or freshly computed value.
        """
        found, value = self._lookup(key)
        if found:
            return value

        lock = self._checkout_key_lock(self._key_locks, key, threading.Lock)
        try:
            with lock:
                found, value = self._lookup(key, count=False)
                if found:
                    return value
                try:
                    value = compute()
                except Exception as e:
                    logger.warning("result_cache_compute_failed", key=key, error=str(e))
                    raise
                self._store(key, value, ttl)
                return value
        finally:
            self._release_key_lock(self._key_locks, key)

    async def aget_or_compute(
        self,
        key: str,
        ttl: float,
        compute: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Async variant of get_or_compute for coroutine computations.

        Args:
            key: Cache key derived from the exact query parameters.
            ttl: Seconds the computed value stays valid; <= 0 disables caching.
            compute: Zero-argument coroutine function producing the value.

        Returns:
            The cached or freshly computed value.
        """
        found, value = self._lookup(key)
        if found:
            return value

        lock = self._checkout_key_lock(self._async_key_locks, key, asyncio.Lock)
        try:
            async with lock:
                found, value = self._lookup(key, count=False)
                if found:
                    return value
                try:
                    value = await compute()
                except Exception as e:
                    logger.warning("result_cache_compute_failed", key=key, error=str(e))
                    raise
                self._store(key, value, ttl)
                return value
        finally:
            self._release_key_lock(self._async_key_locks, key)

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()
        logger.info("result_cache_cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics for monitoring."""
        with self._lock:
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }
