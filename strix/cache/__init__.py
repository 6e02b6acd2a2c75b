"""
StrixCache - Named, expiring key-value cache instances.

Provides:
- Cache: registry of named instances with per-instance TTL
- Backends: memory (LRU/FIFO/TTL), Redis, null
- JSON and msgpack serializers
- Typed cache faults

Usage::

    from strix.cache import Cache

    cache = Cache.from_config({
        "prefix": "myapp_",
        "instances": {"default": {"engine": "memory", "duration": "+30 minutes"}},
    })
    await cache.initialize()
"""

from .core import (
    CacheBackend,
    CacheConfig,
    CacheEntry,
    CacheInstanceConfig,
    CacheSerializer,
    CacheStats,
    EvictionPolicy,
    parse_duration,
)
from .backends import MemoryBackend, NullBackend, RedisBackend
from .faults import (
    CacheBackendFault,
    CacheConfigFault,
    CacheFault,
    CacheInstanceNotFoundFault,
    CacheSerializationFault,
)
from .key_builder import DefaultKeyBuilder
from .serializers import JsonCacheSerializer, MsgpackCacheSerializer, get_serializer
from .service import Cache, create_cache_backend

__all__ = [
    "Cache",
    "create_cache_backend",
    "CacheBackend",
    "CacheConfig",
    "CacheEntry",
    "CacheInstanceConfig",
    "CacheSerializer",
    "CacheStats",
    "EvictionPolicy",
    "parse_duration",
    "MemoryBackend",
    "NullBackend",
    "RedisBackend",
    "CacheFault",
    "CacheBackendFault",
    "CacheConfigFault",
    "CacheInstanceNotFoundFault",
    "CacheSerializationFault",
    "DefaultKeyBuilder",
    "JsonCacheSerializer",
    "MsgpackCacheSerializer",
    "get_serializer",
]
