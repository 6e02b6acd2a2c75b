"""
StrixSessions - Session configuration.

``SessionConfig`` is the single source of truth for how a session store
behaves: which cache instance holds records, which cookie carries the
encrypted ID, the secrets involved, and the save mode.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any

from .faults import SessionConfigFault

DEFAULT_COOKIE_NAME = "strix_sess"
DEFAULT_CACHE_INSTANCE = "default"
DEFAULT_KEY_PREFIX = "Session."


@dataclass(frozen=True)
class SessionConfig:
    """
    Per-store configuration, immutable once built.

    Attributes:
        cache_instance: Cache instance holding session records
        cookie_name: Name of the cookie carrying the encrypted session ID
        session_secret: Secret for cookie encryption and fingerprints.
            Empty disables meaningful encryption.
        security_salt: Salt keying the hash and the encryption KDF
        cookie_secure: Add the Secure flag to the cookie
        cookie_path: Cookie path
        key_prefix: Namespace prefix of cache keys (prefix + session ID)
        write_through: Save on every ``set``. When False, mutations are
            kept in memory until ``commit``.

    Example:
        >>> config = SessionConfig.from_dict({
        ...     "cache_instance": "default",
        ...     "cookie_name": "myapp_sess",
        ...     "session_secret": "wxLl88ISVTz7lvHgZvOSKrxOWI7MjLA1",
        ...     "security_salt": "bhY4dZ5bEeru9e1XlObtY9Mc95cfDcrQ",
        ... })
    """

    cache_instance: str = DEFAULT_CACHE_INSTANCE
    cookie_name: str = DEFAULT_COOKIE_NAME
    session_secret: str = ""
    security_salt: str | None = None
    cookie_secure: bool = False
    cookie_path: str = "/"
    key_prefix: str = DEFAULT_KEY_PREFIX
    write_through: bool = True

    def cache_key(self, session_id: str) -> str:
        """Cache key of a session record."""
        return f"{self.key_prefix}{session_id}"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> SessionConfig:
        """
        Create config from a mapping.

        Blank ``cookie_name`` and ``cache_instance`` fall back to their
        defaults. Unknown keys are ignored.

        Raises:
            SessionConfigFault: If a value has the wrong type
        """
        for key in ("cache_instance", "cookie_name", "session_secret", "cookie_path", "key_prefix"):
            value = config.get(key)
            if value is not None and not isinstance(value, str):
                raise SessionConfigFault(f"'{key}' must be a string, got {type(value).__name__}")

        salt = config.get("security_salt")
        if salt is not None and not isinstance(salt, str):
            raise SessionConfigFault(
                f"'security_salt' must be a string, got {type(salt).__name__}"
            )

        def non_blank(key: str, default: str) -> str:
            value = config.get(key)
            if value is None or value.strip() == "":
                return default
            return value

        return cls(
            cache_instance=non_blank("cache_instance", DEFAULT_CACHE_INSTANCE),
            cookie_name=non_blank("cookie_name", DEFAULT_COOKIE_NAME),
            session_secret=config.get("session_secret") or "",
            security_salt=salt,
            cookie_secure=bool(config.get("cookie_secure", False)),
            cookie_path=non_blank("cookie_path", "/"),
            key_prefix=config.get("key_prefix") or DEFAULT_KEY_PREFIX,
            write_through=bool(config.get("write_through", True)),
        )
