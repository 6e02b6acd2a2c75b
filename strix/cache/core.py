"""
StrixCache - Core types, protocols, and data structures.

Defines the storage contract every backend implements, the entry and
statistics records, and the configuration of named cache instances.
"""

from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from .faults import CacheConfigFault


# ============================================================================
# Entries & Statistics
# ============================================================================

class EvictionPolicy(str, Enum):
    """Which entry a full memory backend drops first."""
    LRU = "lru"
    FIFO = "fifo"
    TTL = "ttl"


@dataclass(slots=True)
class CacheEntry:
    """
    A stored value plus its bookkeeping.

    Times are ``time.monotonic()`` readings; ``expires_at`` is None for
    entries that never expire.
    """
    key: str
    value: Any
    expires_at: Optional[float] = None
    created_at: float = field(default_factory=lambda: time.monotonic())
    last_accessed: float = field(default_factory=lambda: time.monotonic())
    access_count: int = 0
    size_bytes: int = 0

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    @property
    def ttl_remaining(self) -> Optional[float]:
        """Seconds left before expiry (never negative), None without TTL."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    def touch(self) -> None:
        self.access_count += 1
        self.last_accessed = time.monotonic()

    def __repr__(self) -> str:
        remaining = self.ttl_remaining
        suffix = "" if remaining is None else f" expires_in={remaining:.0f}s"
        return f"<CacheEntry {self.key!r} reads={self.access_count}{suffix}>"


@dataclass
class CacheStats:
    """Per-backend counters, exposed through ``Cache.stats()``."""
    backend: str = "unknown"
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    errors: int = 0
    size: int = 0
    max_size: int = 0
    uptime_seconds: float = 0.0

    @property
    def hit_rate(self) -> float:
        """Percentage of reads that found a live entry."""
        reads = self.hits + self.misses
        return 100.0 * self.hits / reads if reads else 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "backend": self.backend,
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "errors": self.errors,
            "size": self.size,
            "max_size": self.max_size,
        }
        data["hit_rate"] = round(self.hit_rate, 2)
        data["uptime_seconds"] = round(self.uptime_seconds, 2)
        return data


# ============================================================================
# Durations
# ============================================================================

_DURATION_UNITS = {
    "second": 1,
    "sec": 1,
    "minute": 60,
    "min": 60,
    "hour": 3600,
    "day": 86400,
    "week": 604800,
}

_DURATION_RE = re.compile(r"^\+?\s*(\d+)\s*([a-z]+?)s?$")


def parse_duration(value: Union[int, str, None]) -> Optional[int]:
    """
    Parse an instance duration into seconds.

    Accepts integer seconds or relative strings such as ``"+30 minutes"``,
    ``"1 hour"`` or ``"2 days"``. ``None`` and ``0`` mean no expiry.

    Raises:
        CacheConfigFault: If the value cannot be parsed
    """
    if value is None:
        return None

    if isinstance(value, bool):
        raise CacheConfigFault(f"duration must be seconds or a relative string, got {value!r}")

    if isinstance(value, int):
        if value < 0:
            raise CacheConfigFault(f"duration must not be negative, got {value}")
        return value or None

    text = str(value).strip().lower()
    if text.isdigit():
        return int(text) or None

    match = _DURATION_RE.match(text)
    if not match or match.group(2) not in _DURATION_UNITS:
        raise CacheConfigFault(f"unrecognized duration {value!r}")

    seconds = int(match.group(1)) * _DURATION_UNITS[match.group(2)]
    return seconds or None


# ============================================================================
# Cache Configuration
# ============================================================================

@dataclass
class CacheInstanceConfig:
    """
    One named cache profile: which engine backs it and how long entries live.

    Attributes:
        name: Instance name used by callers (e.g. "default")
        engine: "memory", "redis" or "null"
        duration: Entry TTL in seconds (None = no expiry)
        options: Engine-specific options (max_size, url, ...)
    """
    name: str
    engine: str = "memory"
    duration: Optional[int] = None
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, config: Dict[str, Any]) -> CacheInstanceConfig:
        """Build an instance profile from its configuration mapping."""
        options = {
            k: v for k, v in config.items()
            if k not in ("engine", "duration")
        }
        return cls(
            name=name,
            engine=str(config.get("engine", "memory")).lower(),
            duration=parse_duration(config.get("duration")),
            options=options,
        )


@dataclass
class CacheConfig:
    """
    Prefix plus the named instance profiles.

    Mirrors the mapping accepted by ``Cache.from_config``::

        {
            "prefix": "myapp_",
            "instances": {
                "default": {"engine": "memory", "duration": "+30 minutes"},
            },
        }
    """
    prefix: str = ""
    instances: Dict[str, CacheInstanceConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> CacheConfig:
        instances_config = config.get("instances") or {}
        if not isinstance(instances_config, dict):
            raise CacheConfigFault("'instances' must be a mapping of name to profile")

        instances = {}
        for name, profile in instances_config.items():
            if not isinstance(profile, dict):
                raise CacheConfigFault(f"instance {name!r} must be a mapping")
            instances[name] = CacheInstanceConfig.from_dict(name, profile)

        return cls(prefix=str(config.get("prefix", "")), instances=instances)

    def to_dict(self) -> Dict[str, Any]:
        """Mapping in the shape ``from_dict`` accepts."""
        return {
            "prefix": self.prefix,
            "instances": {
                name: {
                    "engine": inst.engine,
                    "duration": inst.duration,
                    **inst.options,
                }
                for name, inst in self.instances.items()
            },
        }




# ============================================================================
# Contracts
# ============================================================================

@runtime_checkable
class CacheSerializer(Protocol):
    """Turns values into the bytes a backend stores, and back."""

    def serialize(self, value: Any) -> bytes:
        ...

    def deserialize(self, data: bytes) -> Any:
        ...


class CacheBackend(ABC):
    """
    Storage engine behind one cache instance.

    Backends own expiry: an entry written with ``ttl`` seconds must stop
    being returned once that time has passed, whatever the caller stored
    inside it. Backends may raise on I/O failure; ``Cache`` converts that
    into a reported fault and a miss or failed write.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs and faults."""

    @property
    def is_distributed(self) -> bool:
        """True when other processes see the same entries."""
        return False

    @abstractmethod
    async def initialize(self) -> None:
        """Acquire connections, start background tasks."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Release everything ``initialize`` acquired."""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        """Live entry for ``key``, or None (missing or expired)."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Write ``value`` under ``key``, replacing any previous entry.

        Args:
            ttl: Seconds until expiry; None or 0 keeps it until evicted

        Returns:
            Whether the write was accepted.
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``; False if there was nothing to remove."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    async def clear(self) -> int:
        """Remove every entry; returns how many were removed."""

    @abstractmethod
    async def keys(self, pattern: str = "*") -> List[str]:
        """Live keys matching a glob pattern."""

    @abstractmethod
    async def stats(self) -> CacheStats:
        ...

    async def health_check(self) -> bool:
        return True
