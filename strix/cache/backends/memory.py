"""
StrixCache - In-process memory backend.

Process-local and lost on restart; meant for development, tests and
single-worker deployments. Entries expire on the monotonic clock:
expired entries are dropped when touched and by a periodic sweep over a
heap of expiry times.

When ``max_size`` is reached the eviction policy picks a victim:

- ``lru``: least recently read or written
- ``fifo``: oldest write
- ``ttl``: soonest to expire (entries without a TTL go last)
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import time
from collections import OrderedDict
from heapq import heapify, heappop, heappush
from typing import Any, List, Optional, Tuple

from ..core import CacheBackend, CacheEntry, CacheStats, EvictionPolicy
from ..faults import CacheConfigFault

logger = logging.getLogger("strix.cache.memory")


def _value_size(value: Any) -> int:
    if isinstance(value, (bytes, bytearray, str)):
        return len(value)
    return 0


class MemoryBackend(CacheBackend):
    """
    Bounded in-memory store guarded by an asyncio lock.

    Example:
        >>> backend = MemoryBackend(max_size=1000, eviction_policy="lru")
        >>> await backend.set("Session.4f2a", b"{...}", ttl=1800)
        True
    """

    def __init__(
        self,
        max_size: int = 10000,
        eviction_policy: str = "lru",
        sweep_interval: float = 30.0,
    ):
        if max_size < 1:
            raise CacheConfigFault(f"max_size must be positive, got {max_size}")

        self.max_size = max_size
        self.policy = EvictionPolicy(eviction_policy)
        self.sweep_interval = sweep_interval

        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._expiries: List[Tuple[float, str]] = []
        self._lock = asyncio.Lock()
        self._stats = CacheStats(max_size=max_size, backend="memory")
        self._started = time.monotonic()
        self._sweeper: Optional[asyncio.Task] = None

    @property
    def name(self) -> str:
        return f"memory:{self.policy.value}"

    # ── Lifecycle ────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Start the expiry sweeper (idempotent)."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._started = time.monotonic()
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def shutdown(self) -> None:
        """Stop the sweeper and drop every entry."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        await self.clear()

    # ── Operations ───────────────────────────────────────────────────

    async def get(self, key: str) -> Optional[CacheEntry]:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                self._stats.misses += 1
                return None

            entry.touch()
            self._stats.hits += 1
            if self.policy is EvictionPolicy.LRU:
                self._entries.move_to_end(key)
            return entry

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        async with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_size:
                self._evict()

            expires_at = time.monotonic() + ttl if ttl and ttl > 0 else None
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                expires_at=expires_at,
                size_bytes=_value_size(value),
            )
            if expires_at is not None:
                heappush(self._expiries, (expires_at, key))
                if len(self._expiries) > 2 * len(self._entries) + 64:
                    self._compact_expiries()

            self._stats.sets += 1
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if self._live(key) is None:
                return False
            del self._entries[key]
            self._stats.deletes += 1
            return True

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._live(key) is not None

    async def clear(self) -> int:
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._expiries.clear()
            return count

    async def keys(self, pattern: str = "*") -> List[str]:
        async with self._lock:
            return [
                key for key, entry in self._entries.items()
                if not entry.is_expired and fnmatch.fnmatchcase(key, pattern)
            ]

    async def stats(self) -> CacheStats:
        self._stats.size = len(self._entries)
        self._stats.uptime_seconds = time.monotonic() - self._started
        return self._stats

    # ── Internals (caller holds the lock) ────────────────────────────

    def _live(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is not None and entry.is_expired:
            del self._entries[key]
            return None
        return entry

    def _evict(self) -> None:
        if self.policy is EvictionPolicy.TTL:
            victim = min(
                self._entries.values(),
                key=lambda e: (e.expires_at is None, e.expires_at or 0.0),
            ).key
        else:
            # lru moves hits to the end, fifo never reorders
            victim = next(iter(self._entries))

        del self._entries[victim]
        self._stats.evictions += 1

    def _compact_expiries(self) -> None:
        """Rebuild the expiry heap from live entries, dropping stale items."""
        self._expiries = [
            (entry.expires_at, key) for key, entry in self._entries.items()
            if entry.expires_at is not None
        ]
        heapify(self._expiries)

    async def _sweep_expired(self) -> int:
        """Drop entries whose expiry has passed; returns how many."""
        async with self._lock:
            now = time.monotonic()
            swept = 0
            while self._expiries and self._expiries[0][0] <= now:
                _, key = heappop(self._expiries)
                entry = self._entries.get(key)
                # rewritten keys leave stale heap items behind
                if entry is not None and entry.is_expired:
                    del self._entries[key]
                    swept += 1
            self._stats.evictions += swept
            return swept

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                swept = await self._sweep_expired()
            except Exception as e:
                logger.warning(f"Expiry sweep failed: {e}")
                continue
            if swept:
                logger.debug(f"Expiry sweep removed {swept} entries")
