"""
StrixCache - Value serializers.

Session records are stored as UTF-8 JSON so any process (or language)
sharing the cache can read them. MessagePack is available for compact
storage when the optional ``msgpack`` package is installed.

Neither serializer coerces unknown types: encoding them raises
``TypeError`` so the caller can refuse the write. Decoding failures
surface as ``ValueError``; the session store treats them as "no data".
"""

from __future__ import annotations

import json
from typing import Any, Dict, Type


class JsonCacheSerializer:
    """UTF-8 JSON; values JSON cannot represent raise ``TypeError``."""

    def serialize(self, value: Any) -> bytes:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    def deserialize(self, data: bytes | str) -> Any:
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8")
        return json.loads(data)


def _msgpack():
    try:
        import msgpack
    except ImportError:
        raise ImportError(
            "MsgpackCacheSerializer requires the 'msgpack' package. "
            "Install with: pip install strix[msgpack]"
        ) from None
    return msgpack


class MsgpackCacheSerializer:
    """Compact binary encoding via ``msgpack``."""

    def serialize(self, value: Any) -> bytes:
        return _msgpack().packb(value, use_bin_type=True)

    def deserialize(self, data: bytes) -> Any:
        msgpack = _msgpack()
        try:
            return msgpack.unpackb(data, raw=False)
        except (msgpack.UnpackException, ValueError) as e:
            raise ValueError(f"invalid msgpack data: {e}") from e


SERIALIZERS: Dict[str, Type] = {
    "json": JsonCacheSerializer,
    "msgpack": MsgpackCacheSerializer,
}


def get_serializer(name: str = "json"):
    """
    Serializer instance by name.

    Raises:
        ValueError: For names other than "json" and "msgpack"
    """
    try:
        return SERIALIZERS[name]()
    except KeyError:
        raise ValueError(f"Unknown serializer {name!r}; choose from {sorted(SERIALIZERS)}") from None
