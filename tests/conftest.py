"""
Shared test fixtures and helpers for the Strix test suite.
"""

import pytest
from typing import Dict, List, Optional

from strix.cache import Cache, MemoryBackend
from strix.security import Security
from strix.sessions import ClientContext, SessionConfig, SessionManager

SECRET = "wxLl88ISVTz7lvHgZvOSKrxOWI7MjLA1"
SALT = "bhY4dZ5bEeru9e1XlObtY9Mc95cfDcrQ"
COOKIE_NAME = "test_sess"


# ============================================================================
# Cache Helpers
# ============================================================================


class RecordingCache:
    """
    Dict-backed stand-in for ``Cache`` that records every call.

    ``fail_writes`` makes ``set`` report failure; ``raise_on`` makes the
    named operations raise.
    """

    def __init__(self, instances=("default",)):
        self.data: Dict[str, bytes] = {}
        self.calls: List[tuple] = []
        self.fail_writes = False
        self.raise_on: set = set()
        self._instances = set(instances)

    def has_instance(self, name: str) -> bool:
        return name in self._instances

    def _check(self, op: str) -> None:
        if op in self.raise_on:
            raise ConnectionError(f"cache {op} unavailable")

    async def get(self, key: str, instance: str = "default") -> Optional[bytes]:
        self.calls.append(("get", key, instance))
        self._check("get")
        return self.data.get(key)

    async def set(self, key: str, value: bytes, instance: str = "default") -> bool:
        self.calls.append(("set", key, instance))
        self._check("set")
        if self.fail_writes:
            return False
        self.data[key] = value
        return True

    async def delete(self, key: str, instance: str = "default") -> bool:
        self.calls.append(("delete", key, instance))
        self._check("delete")
        return self.data.pop(key, None) is not None

    def ops(self) -> List[str]:
        return [call[0] for call in self.calls]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def security():
    return Security(salt=SALT)


@pytest.fixture
def config():
    return SessionConfig(
        cache_instance="default",
        cookie_name=COOKIE_NAME,
        session_secret=SECRET,
        security_salt=SALT,
    )


@pytest.fixture
def cache():
    """Cache with one in-memory 'default' instance (30 minute TTL)."""
    c = Cache(prefix="test_")
    c.add_instance("default", MemoryBackend(max_size=100), duration=1800)
    return c


@pytest.fixture
def recording_cache():
    return RecordingCache()


@pytest.fixture
def client():
    return ClientContext(
        address="10.0.0.7",
        user_agent="Mozilla/5.0 (X11; Linux x86_64)",
        host="example.com",
    )


@pytest.fixture
def manager(cache, config, security):
    return SessionManager(cache, config, security)


# ============================================================================
# Request Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    headers: Optional[List[tuple]] = None,
    client: Optional[tuple] = None,
    server: Optional[tuple] = ("127.0.0.1", 8000),
    scope_type: str = "http",
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    if headers:
        for name, value in headers:
            raw_headers.append(
                (name.encode("latin-1") if isinstance(name, str) else name,
                 value.encode("latin-1") if isinstance(value, str) else value)
            )
    return {
        "type": scope_type,
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": b"",
        "headers": raw_headers,
        "scheme": "http",
        "server": server,
        "client": client or ("10.0.0.7", 12345),
        "root_path": "",
    }


def make_receive(body: bytes = b""):
    """Create an ASGI receive callable from body bytes."""
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


def cookie_value(set_cookie_header: str) -> str:
    """Value part of a ``Set-Cookie`` header."""
    pair = set_cookie_header.split(";", 1)[0]
    return pair.split("=", 1)[1]


def cookies_from(ctx) -> Dict[str, str]:
    """Request cookies a browser would send after receiving ``ctx``'s cookies."""
    header = ctx.outgoing_cookies.get(COOKIE_NAME)
    if header is None or "Max-Age=0" in header:
        return {}
    return {COOKIE_NAME: cookie_value(header)}
