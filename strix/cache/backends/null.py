"""
StrixCache - Null backend.

Stores nothing and refuses every write. Pointing the session cache
instance at it disables persistence: each request gets a fresh session
and every save reports failure.
"""

from __future__ import annotations

from typing import Any, List, Optional

from ..core import CacheBackend, CacheEntry, CacheStats


class NullBackend(CacheBackend):
    """Backend that is always empty."""

    def __init__(self):
        self._stats = CacheStats(backend="null")

    @property
    def name(self) -> str:
        return "null"

    async def initialize(self) -> None:
        return None

    async def shutdown(self) -> None:
        return None

    async def get(self, key: str) -> Optional[CacheEntry]:
        self._stats.misses += 1
        return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self._stats.errors += 1
        return False

    async def delete(self, key: str) -> bool:
        return False

    async def exists(self, key: str) -> bool:
        return False

    async def clear(self) -> int:
        return 0

    async def keys(self, pattern: str = "*") -> List[str]:
        return []

    async def stats(self) -> CacheStats:
        return self._stats
