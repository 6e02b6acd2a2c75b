"""
StrixCache - Cache: named cache instances behind one API.

Each instance pairs a backend with its own TTL policy. Callers address
entries by ``(key, instance)``:

- ``get(key, instance) -> bytes | None``
- ``set(key, value, instance) -> bool``
- ``delete(key, instance) -> bool``

Backend failures are logged as ``CacheBackendFault`` and degrade to a
miss or a failed write; they are never raised to callers. Unknown
instances raise ``CacheInstanceNotFoundFault`` because that is a wiring
error, not a runtime condition.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from .backends import MemoryBackend, NullBackend, RedisBackend
from .core import CacheBackend, CacheConfig, CacheInstanceConfig
from .faults import (
    CacheBackendFault,
    CacheConfigFault,
    CacheFault,
    CacheInstanceNotFoundFault,
)
from .key_builder import DefaultKeyBuilder

logger = logging.getLogger("strix.cache")


def create_cache_backend(instance: CacheInstanceConfig) -> CacheBackend:
    """
    Build the backend for one instance profile.

    Raises:
        CacheConfigFault: If the engine is unknown
    """
    options = dict(instance.options)

    if instance.engine == "memory":
        return MemoryBackend(
            max_size=int(options.get("max_size", 10000)),
            eviction_policy=options.get("eviction_policy", "lru"),
            sweep_interval=float(options.get("sweep_interval", 30.0)),
        )

    if instance.engine == "redis":
        return RedisBackend(
            url=options.get("url", "redis://localhost:6379/0"),
            max_connections=int(options.get("max_connections", 10)),
            socket_timeout=float(options.get("socket_timeout", 5.0)),
            connect_timeout=float(options.get("connect_timeout", 5.0)),
            retry_on_timeout=bool(options.get("retry_on_timeout", True)),
        )

    if instance.engine == "null":
        return NullBackend()

    raise CacheConfigFault(
        f"unknown engine {instance.engine!r} for instance {instance.name!r} "
        f"(expected 'memory', 'redis' or 'null')"
    )


class _Instance:
    __slots__ = ("config", "backend")

    def __init__(self, config: CacheInstanceConfig, backend: CacheBackend):
        self.config = config
        self.backend = backend


class Cache:
    """
    Registry of named cache instances.

    Usage::

        cache = Cache.from_config({
            "prefix": "myapp_",
            "instances": {
                "default": {"engine": "memory", "duration": "+30 minutes"},
                "shared": {"engine": "redis", "url": "redis://cache:6379/0",
                           "duration": "2 hours"},
            },
        })
        await cache.initialize()

        await cache.set("Session.abc", b"...", "default")
        raw = await cache.get("Session.abc", "default")
    """

    __slots__ = (
        "_prefix",
        "_instances",
        "_key_builder",
        "_fault_handlers",
        "_initialized",
    )

    def __init__(self, prefix: str = "", key_version: int = 0):
        self._prefix = prefix
        self._instances: Dict[str, _Instance] = {}
        self._key_builder = DefaultKeyBuilder(version=key_version)
        self._fault_handlers: List[Callable[[CacheFault], None]] = []
        self._initialized = False

    @classmethod
    def from_config(cls, config: Dict[str, Any] | CacheConfig) -> Cache:
        """
        Build a cache from configuration.

        Raises:
            CacheConfigFault: If the configuration is malformed
        """
        if isinstance(config, dict):
            config = CacheConfig.from_dict(config)

        if not config.instances:
            raise CacheConfigFault("at least one cache instance must be configured")

        cache = cls(prefix=config.prefix)
        for name, instance in config.instances.items():
            cache.add_instance(name, create_cache_backend(instance), duration=instance.duration)
        return cache

    # ── Registration ─────────────────────────────────────────────────

    def add_instance(
        self,
        name: str,
        backend: CacheBackend,
        duration: Optional[int] = None,
    ) -> None:
        """Register a backend under an instance name."""
        if not name or not name.strip():
            raise CacheConfigFault("instance name must not be blank")

        config = CacheInstanceConfig(name=name, engine=backend.name, duration=duration)
        self._instances[name] = _Instance(config, backend)

    def has_instance(self, name: str) -> bool:
        return name in self._instances

    @property
    def instances(self) -> List[str]:
        return list(self._instances)

    @property
    def prefix(self) -> str:
        return self._prefix

    def backend(self, instance: str = "default") -> CacheBackend:
        """Return the backend behind an instance."""
        return self._resolve(instance).backend

    def duration(self, instance: str = "default") -> Optional[int]:
        """Return the entry TTL (seconds) of an instance."""
        return self._resolve(instance).config.duration

    def _resolve(self, instance: str) -> _Instance:
        try:
            return self._instances[instance]
        except KeyError:
            raise CacheInstanceNotFoundFault(instance) from None

    # ── Lifecycle ────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Initialize every instance backend."""
        if self._initialized:
            return
        for name, inst in self._instances.items():
            await inst.backend.initialize()
            logger.info(f"Cache instance '{name}' initialized (backend={inst.backend.name})")
        self._initialized = True

    async def shutdown(self) -> None:
        """Shutdown every instance backend."""
        for name, inst in self._instances.items():
            try:
                await inst.backend.shutdown()
            except Exception as e:
                logger.warning(f"Cache instance '{name}' shutdown failed: {e}")
        self._initialized = False

    # ── Core Operations ──────────────────────────────────────────────

    def build_key(self, key: str, instance: str = "default") -> str:
        """Build the fully qualified backend key."""
        return self._key_builder.build(instance, key, self._prefix)

    async def get(self, key: str, instance: str = "default") -> Optional[bytes]:
        """
        Get a value from an instance.

        Returns:
            Stored value or None on miss. Never raises on backend errors.
        """
        inst = self._resolve(instance)
        full_key = self.build_key(key, instance)

        try:
            entry = await inst.backend.get(full_key)
        except Exception as e:
            self._report(CacheBackendFault(inst.backend.name, "get", str(e)))
            return None

        if entry is None:
            return None
        return entry.value

    async def set(self, key: str, value: bytes, instance: str = "default") -> bool:
        """
        Store a value using the instance's duration.

        Returns:
            True if the backend accepted the write.
        """
        inst = self._resolve(instance)
        full_key = self.build_key(key, instance)

        try:
            return bool(await inst.backend.set(full_key, value, ttl=inst.config.duration))
        except Exception as e:
            self._report(CacheBackendFault(inst.backend.name, "set", str(e)))
            return False

    async def delete(self, key: str, instance: str = "default") -> bool:
        """
        Delete a value.

        Returns:
            True if the key existed and was deleted.
        """
        inst = self._resolve(instance)
        full_key = self.build_key(key, instance)

        try:
            return bool(await inst.backend.delete(full_key))
        except Exception as e:
            self._report(CacheBackendFault(inst.backend.name, "delete", str(e)))
            return False

    async def exists(self, key: str, instance: str = "default") -> bool:
        inst = self._resolve(instance)
        try:
            return await inst.backend.exists(self.build_key(key, instance))
        except Exception as e:
            self._report(CacheBackendFault(inst.backend.name, "exists", str(e)))
            return False

    async def clear(self, instance: str = "default") -> int:
        """Clear every entry of an instance."""
        inst = self._resolve(instance)
        try:
            return await inst.backend.clear()
        except Exception as e:
            self._report(CacheBackendFault(inst.backend.name, "clear", str(e)))
            return 0

    # ── Diagnostics ──────────────────────────────────────────────────

    async def health_check(self) -> Dict[str, bool]:
        """Health of every instance."""
        results = {}
        for name, inst in self._instances.items():
            try:
                results[name] = await inst.backend.health_check()
            except Exception:
                results[name] = False
        return results

    async def stats(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: (await inst.backend.stats()).to_dict()
            for name, inst in self._instances.items()
        }

    def on_fault(self, handler: Callable[[CacheFault], None]) -> None:
        """Register a handler receiving every reported backend fault."""
        self._fault_handlers.append(handler)

    def _report(self, fault: CacheFault) -> None:
        logger.warning(str(fault))
        for handler in self._fault_handlers:
            try:
                handler(fault)
            except Exception as e:
                logger.error(f"Cache fault handler error: {e}")
