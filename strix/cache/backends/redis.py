"""
StrixCache - Redis backend for sessions shared between workers.

Values are opaque bytes (the session layer serializes), expiry is left
to Redis via ``SETEX``. Every command goes through ``_run``, which turns
connection and command errors into a logged miss or failed write.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from ..core import CacheBackend, CacheEntry, CacheStats

logger = logging.getLogger("strix.cache.redis")

T = TypeVar("T")


class RedisBackend(CacheBackend):
    """
    Backend on redis-py's asyncio client.

    Args:
        url: Redis URL, e.g. ``redis://cache:6379/0``
        max_connections: Connection pool size
        socket_timeout: Per-command timeout (seconds)
        connect_timeout: Connect timeout (seconds)
        retry_on_timeout: Let redis-py retry timed-out commands
        key_prefix: Prefix applied to every key this backend touches
        client: Pre-built client (skips ``initialize``'s connect)
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        max_connections: int = 10,
        socket_timeout: float = 5.0,
        connect_timeout: float = 5.0,
        retry_on_timeout: bool = True,
        key_prefix: str = "",
        client: Optional[Any] = None,
    ):
        self.url = url
        self.key_prefix = key_prefix
        self._pool_options = {
            "max_connections": max_connections,
            "socket_timeout": socket_timeout,
            "socket_connect_timeout": connect_timeout,
            "retry_on_timeout": retry_on_timeout,
        }
        self._client = client
        self._stats = CacheStats(backend="redis")
        self._started = time.monotonic()

    @property
    def name(self) -> str:
        return "redis"

    @property
    def is_distributed(self) -> bool:
        return True

    # ── Lifecycle ────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Create the client and verify the server answers PING."""
        if self._client is not None:
            return

        try:
            import redis.asyncio as aioredis
        except ImportError:
            raise ImportError(
                "RedisBackend requires the 'redis' package. "
                "Install with: pip install strix[redis]"
            ) from None

        client = aioredis.from_url(self.url, decode_responses=False, **self._pool_options)
        try:
            await client.ping()
        except Exception as e:
            logger.error(f"Redis at {self.url} is unreachable: {e}")
            await client.aclose()
            raise

        self._client = client
        self._started = time.monotonic()
        logger.info(f"Redis cache connected: {self.url}")

    async def shutdown(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── Operations ───────────────────────────────────────────────────

    def _key(self, key: str) -> str:
        return self.key_prefix + key

    async def _run(
        self,
        command: str,
        key: str,
        call: Callable[[Any], Awaitable[T]],
        default: T,
    ) -> T:
        if self._client is None:
            return default
        try:
            return await call(self._client)
        except Exception as e:
            self._stats.errors += 1
            logger.warning(f"Redis {command} failed for '{key}': {e}")
            return default

    async def get(self, key: str) -> Optional[CacheEntry]:
        raw = await self._run("GET", key, lambda r: r.get(self._key(key)), None)
        if raw is None:
            self._stats.misses += 1
            return None
        self._stats.hits += 1
        return CacheEntry(key=key, value=raw)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        full_key = self._key(key)
        if ttl and ttl > 0:
            ok = await self._run("SETEX", key, lambda r: r.setex(full_key, ttl, value), False)
        else:
            ok = await self._run("SET", key, lambda r: r.set(full_key, value), False)
        if ok:
            self._stats.sets += 1
        return bool(ok)

    async def delete(self, key: str) -> bool:
        removed = await self._run("DEL", key, lambda r: r.delete(self._key(key)), 0)
        if removed:
            self._stats.deletes += 1
        return bool(removed)

    async def exists(self, key: str) -> bool:
        return bool(await self._run("EXISTS", key, lambda r: r.exists(self._key(key)), 0))

    async def _scan(self, client: Any, match: str) -> List[bytes]:
        found: List[bytes] = []
        cursor = 0
        while True:
            cursor, batch = await client.scan(cursor=cursor, match=match, count=1000)
            found.extend(batch)
            if cursor == 0:
                return found

    async def clear(self) -> int:
        """Delete every key under this backend's prefix."""

        async def clear_prefix(client: Any) -> int:
            found = await self._scan(client, f"{self.key_prefix}*")
            if found:
                await client.delete(*found)
            return len(found)

        return await self._run("CLEAR", f"{self.key_prefix}*", clear_prefix, 0)

    async def keys(self, pattern: str = "*") -> List[str]:
        found = await self._run(
            "SCAN", pattern, lambda r: self._scan(r, self.key_prefix + pattern), [],
        )
        start = len(self.key_prefix)
        return [
            (k.decode("utf-8") if isinstance(k, bytes) else k)[start:]
            for k in found
        ]

    async def stats(self) -> CacheStats:
        self._stats.uptime_seconds = time.monotonic() - self._started
        return self._stats

    async def health_check(self) -> bool:
        return bool(await self._run("PING", "-", lambda r: r.ping(), False))
