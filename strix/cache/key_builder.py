"""
StrixCache - Backend key construction.

``Cache`` qualifies every caller key with the global prefix and the
instance name, so several instances can share one Redis database.
"""

from __future__ import annotations


class DefaultKeyBuilder:
    """
    ``{prefix}{instance}:{key}``, or ``{prefix}v{version}:{instance}:{key}``
    when a version is set.

    Bumping the version orphans every existing key at once (they then
    expire on their own TTL).

    Example:
        >>> DefaultKeyBuilder().build("default", "Session.4f2a", "myapp_")
        'myapp_default:Session.4f2a'
    """

    def __init__(self, version: int = 0):
        self.version = version

    def build(self, instance: str, key: str, prefix: str = "") -> str:
        scope = f"v{self.version}:{instance}" if self.version > 0 else instance
        return f"{prefix}{scope}:{key}"
