"""
Cache subsystem (strix/cache/)

Covers:
- MemoryBackend: LRU/FIFO/TTL eviction, expiry, sweeper
- NullBackend: no-op semantics
- RedisBackend: command mapping and error degradation (mocked client)
- Cache: named instances, per-instance TTL, key building, fault reporting
- parse_duration / CacheConfig
- Serializers and key builder
"""

from __future__ import annotations

import time
import types
from unittest.mock import AsyncMock

import pytest

from strix.cache import (
    Cache,
    CacheBackend,
    CacheBackendFault,
    CacheConfig,
    CacheConfigFault,
    CacheEntry,
    CacheInstanceConfig,
    CacheInstanceNotFoundFault,
    CacheStats,
    DefaultKeyBuilder,
    EvictionPolicy,
    JsonCacheSerializer,
    MemoryBackend,
    NullBackend,
    RedisBackend,
    create_cache_backend,
    get_serializer,
    parse_duration,
)


# ============================================================================
# Fixtures
# ============================================================================


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def monotonic(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock(monkeypatch):
    """Controls the monotonic clock seen by entries and the memory backend."""
    c = FakeClock()
    fake_time = types.SimpleNamespace(monotonic=c.monotonic, time=time.time)
    monkeypatch.setattr("strix.cache.core.time", fake_time)
    monkeypatch.setattr("strix.cache.backends.memory.time", fake_time)
    return c


@pytest.fixture
def memory_backend():
    """Fresh MemoryBackend (LRU, 100 entries)."""
    return MemoryBackend(max_size=100, eviction_policy="lru")


@pytest.fixture
def small_memory_backend():
    """Small MemoryBackend for eviction tests."""
    return MemoryBackend(max_size=3, eviction_policy="lru")


class ExplodingBackend(NullBackend):
    """Backend whose every data operation raises."""

    @property
    def name(self) -> str:
        return "exploding"

    async def get(self, key):
        raise ConnectionError("down")

    async def set(self, key, value, ttl=None):
        raise ConnectionError("down")

    async def delete(self, key):
        raise ConnectionError("down")


# ============================================================================
# CacheEntry / CacheStats
# ============================================================================


class TestCacheEntry:
    def test_entry_not_expired(self):
        entry = CacheEntry(key="k", value="v")
        assert not entry.is_expired

    def test_entry_expired(self, clock):
        entry = CacheEntry(key="k", value="v", expires_at=clock.now - 1)
        assert entry.is_expired

    def test_entry_ttl_remaining(self, clock):
        entry = CacheEntry(key="k", value="v", expires_at=clock.now + 100)
        assert entry.ttl_remaining == pytest.approx(100.0)

    def test_entry_no_ttl(self):
        entry = CacheEntry(key="k", value="v")
        assert entry.ttl_remaining is None

    def test_touch(self):
        entry = CacheEntry(key="k", value="v")
        entry.touch()
        assert entry.access_count == 1


class TestCacheStats:
    def test_hit_rate_zero_ops(self):
        assert CacheStats().hit_rate == 0.0

    def test_hit_rate_calculation(self):
        assert CacheStats(hits=7, misses=3).hit_rate == pytest.approx(70.0)

    def test_to_dict(self):
        d = CacheStats(hits=5, misses=5, backend="memory").to_dict()
        assert d["hit_rate"] == 50.0
        assert d["backend"] == "memory"


class TestEvictionPolicy:
    def test_values(self):
        assert EvictionPolicy.LRU == "lru"
        assert EvictionPolicy.FIFO == "fifo"
        assert EvictionPolicy.TTL == "ttl"

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            MemoryBackend(eviction_policy="random")

    def test_max_size_must_be_positive(self):
        with pytest.raises(CacheConfigFault):
            MemoryBackend(max_size=0)


# ============================================================================
# Durations / Config
# ============================================================================


class TestParseDuration:

    @pytest.mark.parametrize("value,expected", [
        ("+30 minutes", 1800),
        ("30 minutes", 1800),
        ("1 hour", 3600),
        ("2 days", 172800),
        ("1 week", 604800),
        ("10 secs", 10),
        ("5 min", 300),
        ("90", 90),
        (45, 45),
    ])
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", [None, 0, "0"])
    def test_no_expiry(self, value):
        assert parse_duration(value) is None

    @pytest.mark.parametrize("value", ["soon", "+30 fortnights", -1, True, "minutes"])
    def test_invalid(self, value):
        with pytest.raises(CacheConfigFault):
            parse_duration(value)


class TestCacheConfig:

    def test_from_dict(self):
        cfg = CacheConfig.from_dict({
            "prefix": "myapp_",
            "instances": {
                "default": {"engine": "memory", "duration": "+30 minutes", "max_size": 50},
                "shared": {"engine": "REDIS", "url": "redis://cache:6379/1"},
            },
        })
        assert cfg.prefix == "myapp_"
        assert cfg.instances["default"].duration == 1800
        assert cfg.instances["default"].options == {"max_size": 50}
        assert cfg.instances["shared"].engine == "redis"
        assert cfg.instances["shared"].duration is None

    def test_to_dict(self):
        cfg = CacheConfig.from_dict({"instances": {"default": {"duration": 60}}})
        assert cfg.to_dict() == {
            "prefix": "",
            "instances": {"default": {"engine": "memory", "duration": 60}},
        }

    def test_instances_must_be_mapping(self):
        with pytest.raises(CacheConfigFault):
            CacheConfig.from_dict({"instances": ["default"]})
        with pytest.raises(CacheConfigFault):
            CacheConfig.from_dict({"instances": {"default": "memory"}})


class TestCreateCacheBackend:

    def test_memory(self):
        backend = create_cache_backend(
            CacheInstanceConfig("default", "memory", options={"max_size": 5, "eviction_policy": "fifo"})
        )
        assert isinstance(backend, MemoryBackend)
        assert backend.name == "memory:fifo"

    def test_redis(self):
        backend = create_cache_backend(CacheInstanceConfig("shared", "redis"))
        assert isinstance(backend, RedisBackend)
        assert backend.is_distributed

    def test_null(self):
        assert isinstance(create_cache_backend(CacheInstanceConfig("off", "null")), NullBackend)

    def test_unknown_engine(self):
        with pytest.raises(CacheConfigFault):
            create_cache_backend(CacheInstanceConfig("x", "memcached"))


# ============================================================================
# MemoryBackend
# ============================================================================


class TestMemoryBackend:

    @pytest.mark.asyncio
    async def test_init_shutdown(self, memory_backend):
        await memory_backend.initialize()
        assert memory_backend.name == "memory:lru"
        await memory_backend.shutdown()

    @pytest.mark.asyncio
    async def test_set_get(self, memory_backend):
        assert await memory_backend.set("key1", b"value1", ttl=60) is True
        entry = await memory_backend.get("key1")
        assert entry is not None
        assert entry.value == b"value1"

    @pytest.mark.asyncio
    async def test_get_miss(self, memory_backend):
        assert await memory_backend.get("nonexistent") is None

    @pytest.mark.asyncio
    async def test_delete(self, memory_backend):
        await memory_backend.set("key1", "value1")
        assert await memory_backend.delete("key1") is True
        assert await memory_backend.get("key1") is None
        assert await memory_backend.delete("key1") is False

    @pytest.mark.asyncio
    async def test_exists(self, memory_backend):
        assert await memory_backend.exists("key1") is False
        await memory_backend.set("key1", "v")
        assert await memory_backend.exists("key1") is True

    @pytest.mark.asyncio
    async def test_clear(self, memory_backend):
        await memory_backend.set("a", 1)
        await memory_backend.set("b", 2)
        assert await memory_backend.clear() == 2
        assert await memory_backend.get("a") is None

    @pytest.mark.asyncio
    async def test_keys_pattern(self, memory_backend):
        await memory_backend.set("Session.a", 1)
        await memory_backend.set("Session.b", 2)
        await memory_backend.set("other", 3)
        assert sorted(await memory_backend.keys("Session.*")) == ["Session.a", "Session.b"]

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, memory_backend, clock):
        await memory_backend.set("k", "v", ttl=10)
        clock.advance(9)
        assert await memory_backend.get("k") is not None
        clock.advance(2)
        assert await memory_backend.get("k") is None
        assert await memory_backend.exists("k") is False

    @pytest.mark.asyncio
    async def test_rewrite_refreshes_ttl(self, memory_backend, clock):
        await memory_backend.set("k", "v", ttl=10)
        clock.advance(8)
        await memory_backend.set("k", "v", ttl=10)
        clock.advance(8)
        assert await memory_backend.get("k") is not None

    @pytest.mark.asyncio
    async def test_no_ttl_never_expires(self, memory_backend, clock):
        await memory_backend.set("k", "v")
        clock.advance(10 ** 9)
        assert await memory_backend.get("k") is not None

    @pytest.mark.asyncio
    async def test_sweep_expired(self, memory_backend, clock):
        await memory_backend.set("short", 1, ttl=5)
        await memory_backend.set("long", 2, ttl=500)
        clock.advance(10)
        assert await memory_backend._sweep_expired() == 1
        assert await memory_backend.keys() == ["long"]

    @pytest.mark.asyncio
    async def test_expiry_heap_bounded_without_sweeper(self, memory_backend, clock):
        for i in range(1000):
            await memory_backend.set("Session.a", i, ttl=1800)
            await memory_backend.set(f"tmp{i}", i, ttl=1800)
            await memory_backend.delete(f"tmp{i}")

        assert len(memory_backend._expiries) < 100

        clock.advance(3600)
        assert await memory_backend._sweep_expired() == 1
        assert await memory_backend.keys() == []

    @pytest.mark.asyncio
    async def test_lru_eviction(self, small_memory_backend):
        b = small_memory_backend
        await b.set("a", 1)
        await b.set("b", 2)
        await b.set("c", 3)
        await b.get("a")
        await b.set("d", 4)

        assert await b.get("b") is None
        assert await b.get("a") is not None
        assert (await b.stats()).evictions == 1

    @pytest.mark.asyncio
    async def test_fifo_eviction(self):
        b = MemoryBackend(max_size=2, eviction_policy="fifo")
        await b.set("a", 1)
        await b.set("b", 2)
        await b.get("a")
        await b.set("c", 3)
        assert await b.get("a") is None
        assert await b.get("b") is not None

    @pytest.mark.asyncio
    async def test_ttl_eviction(self, clock):
        b = MemoryBackend(max_size=2, eviction_policy="ttl")
        await b.set("soon", 1, ttl=5)
        await b.set("later", 2, ttl=500)
        await b.set("new", 3, ttl=50)
        assert await b.get("soon") is None
        assert await b.get("later") is not None

    @pytest.mark.asyncio
    async def test_stats(self, memory_backend):
        await memory_backend.set("a", 1)
        await memory_backend.get("a")
        await memory_backend.get("missing")
        stats = await memory_backend.stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.sets == 1
        assert stats.size == 1


# ============================================================================
# NullBackend
# ============================================================================


class TestNullBackend:

    @pytest.mark.asyncio
    async def test_never_stores(self):
        b = NullBackend()
        assert await b.set("k", "v") is False
        assert await b.get("k") is None
        assert await b.exists("k") is False
        assert await b.delete("k") is False
        assert await b.keys() == []
        assert await b.clear() == 0

    def test_is_backend(self):
        assert isinstance(NullBackend(), CacheBackend)


# ============================================================================
# RedisBackend (mocked client)
# ============================================================================


class TestRedisBackend:

    @pytest.fixture
    def client(self):
        return AsyncMock()

    @pytest.fixture
    def backend(self, client):
        return RedisBackend(client=client, key_prefix="app:")

    @pytest.mark.asyncio
    async def test_get(self, backend, client):
        client.get.return_value = b"payload"
        entry = await backend.get("k")
        client.get.assert_awaited_once_with("app:k")
        assert entry.value == b"payload"

    @pytest.mark.asyncio
    async def test_get_miss(self, backend, client):
        client.get.return_value = None
        assert await backend.get("k") is None

    @pytest.mark.asyncio
    async def test_set_with_ttl_uses_setex(self, backend, client):
        client.setex.return_value = True
        assert await backend.set("k", b"v", ttl=1800) is True
        client.setex.assert_awaited_once_with("app:k", 1800, b"v")

    @pytest.mark.asyncio
    async def test_set_without_ttl(self, backend, client):
        client.set.return_value = True
        assert await backend.set("k", b"v") is True
        client.set.assert_awaited_once_with("app:k", b"v")

    @pytest.mark.asyncio
    async def test_delete(self, backend, client):
        client.delete.return_value = 1
        assert await backend.delete("k") is True
        client.delete.return_value = 0
        assert await backend.delete("k") is False

    @pytest.mark.asyncio
    async def test_errors_degrade(self, backend, client):
        client.get.side_effect = ConnectionError("refused")
        client.setex.side_effect = ConnectionError("refused")
        client.delete.side_effect = ConnectionError("refused")

        assert await backend.get("k") is None
        assert await backend.set("k", b"v", ttl=10) is False
        assert await backend.delete("k") is False
        assert (await backend.stats()).errors == 3

    @pytest.mark.asyncio
    async def test_keys_strip_prefix(self, backend, client):
        client.scan.return_value = (0, [b"app:Session.a", b"app:Session.b"])
        assert await backend.keys("Session.*") == ["Session.a", "Session.b"]
        client.scan.assert_awaited_once_with(cursor=0, match="app:Session.*", count=1000)

    @pytest.mark.asyncio
    async def test_not_connected(self):
        backend = RedisBackend()
        assert await backend.get("k") is None
        assert await backend.set("k", b"v") is False
        assert await backend.health_check() is False

    @pytest.mark.asyncio
    async def test_shutdown_closes_client(self, backend, client):
        await backend.shutdown()
        client.aclose.assert_awaited_once()


# ============================================================================
# Cache (named instances)
# ============================================================================


class TestCache:

    @pytest.fixture
    def cache(self):
        return Cache.from_config({
            "prefix": "myapp_",
            "instances": {
                "default": {"engine": "memory", "duration": "+30 minutes"},
                "off": {"engine": "null"},
            },
        })

    def test_from_config(self, cache):
        assert cache.instances == ["default", "off"]
        assert cache.prefix == "myapp_"
        assert cache.duration("default") == 1800
        assert cache.has_instance("default")
        assert not cache.has_instance("sessions")

    def test_from_config_requires_instances(self):
        with pytest.raises(CacheConfigFault):
            Cache.from_config({"prefix": "x"})

    def test_blank_instance_name(self):
        with pytest.raises(CacheConfigFault):
            Cache().add_instance(" ", NullBackend())

    @pytest.mark.asyncio
    async def test_set_get_delete(self, cache):
        assert await cache.set("Session.abc", b"data", "default") is True
        assert await cache.get("Session.abc", "default") == b"data"
        assert await cache.exists("Session.abc", "default") is True
        assert await cache.delete("Session.abc", "default") is True
        assert await cache.get("Session.abc", "default") is None

    @pytest.mark.asyncio
    async def test_keys_namespaced(self, cache):
        await cache.set("Session.abc", b"data")
        assert await cache.backend("default").keys() == ["myapp_default:Session.abc"]

    @pytest.mark.asyncio
    async def test_instance_duration_applied(self, cache, clock):
        await cache.set("Session.abc", b"data", "default")
        clock.advance(1799)
        assert await cache.get("Session.abc", "default") == b"data"
        clock.advance(2)
        assert await cache.get("Session.abc", "default") is None

    @pytest.mark.asyncio
    async def test_null_instance_rejects_writes(self, cache):
        assert await cache.set("k", b"v", "off") is False
        assert await cache.get("k", "off") is None

    @pytest.mark.asyncio
    async def test_instances_isolated(self):
        cache = Cache()
        cache.add_instance("a", MemoryBackend())
        cache.add_instance("b", MemoryBackend())
        await cache.set("k", b"1", "a")
        assert await cache.get("k", "b") is None

    @pytest.mark.asyncio
    async def test_unknown_instance(self, cache):
        with pytest.raises(CacheInstanceNotFoundFault):
            await cache.get("k", "sessions")

    @pytest.mark.asyncio
    async def test_backend_errors_reported(self):
        cache = Cache()
        cache.add_instance("default", ExplodingBackend())
        faults = []
        cache.on_fault(faults.append)

        assert await cache.get("k") is None
        assert await cache.set("k", b"v") is False
        assert await cache.delete("k") is False

        assert [f.metadata["operation"] for f in faults] == ["get", "set", "delete"]
        assert all(isinstance(f, CacheBackendFault) for f in faults)

    @pytest.mark.asyncio
    async def test_clear(self, cache):
        await cache.set("a", b"1")
        await cache.set("b", b"2")
        assert await cache.clear("default") == 2

    @pytest.mark.asyncio
    async def test_lifecycle_and_diagnostics(self, cache):
        await cache.initialize()
        try:
            assert await cache.health_check() == {"default": True, "off": True}
            stats = await cache.stats()
            assert set(stats) == {"default", "off"}
        finally:
            await cache.shutdown()


# ============================================================================
# Serializers / Key builder
# ============================================================================


class TestSerializers:

    def test_json_round_trip(self):
        s = JsonCacheSerializer()
        data = {"session_id": "abc", "values": {"n": 1, "tags": ["a"]}}
        assert s.deserialize(s.serialize(data)) == data

    def test_json_rejects_unknown_types(self):
        with pytest.raises(TypeError):
            JsonCacheSerializer().serialize({"when": types.SimpleNamespace(day=2)})

    def test_json_accepts_str(self):
        assert JsonCacheSerializer().deserialize('{"a": 1}') == {"a": 1}

    def test_json_invalid(self):
        with pytest.raises(ValueError):
            JsonCacheSerializer().deserialize(b"{not json")

    def test_get_serializer(self):
        assert isinstance(get_serializer("json"), JsonCacheSerializer)
        with pytest.raises(ValueError):
            get_serializer("pickle")

    def test_msgpack(self):
        pytest.importorskip("msgpack")
        s = get_serializer("msgpack")
        assert s.deserialize(s.serialize({"a": [1, 2]})) == {"a": [1, 2]}


class TestKeyBuilder:

    def test_default(self):
        assert DefaultKeyBuilder().build("default", "Session.abc", "myapp_") == "myapp_default:Session.abc"

    def test_versioned(self):
        assert DefaultKeyBuilder(version=2).build("default", "k") == "v2:default:k"
