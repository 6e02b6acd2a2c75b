"""
StrixSessions - Cookie transport.

Reads the encrypted session ID from the request cookie and writes the
``Set-Cookie`` headers that deliver or expire it:

- set:   ``name=<hex>; Path=/; Domain=<host>; HttpOnly`` (no expiry)
- clear: ``name=; Expires=<epoch+1>; Max-Age=0; Path=/; Domain=<host>; HttpOnly``

Transports do NOT validate, create or persist sessions; that is the
session store's job.
"""

from __future__ import annotations

from email.utils import formatdate
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from .policy import SessionConfig


def parse_cookie_header(cookie_header: str | None) -> dict[str, str]:
    """
    Parse a Cookie header into a name -> value mapping.

    Pairs are split on ``;`` independently, so a malformed neighbour
    (``theme=dark mode``) does not hide the cookies around it. Parts
    without ``=`` are skipped; the first occurrence of a name wins.
    """
    cookies: dict[str, str] = {}
    if not cookie_header:
        return cookies

    for part in cookie_header.split(";"):
        name, sep, value = part.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        cookies.setdefault(name, value)

    return cookies


# ============================================================================
# CookieJar - Outgoing Cookies
# ============================================================================

class CookieJar:
    """
    Outgoing ``Set-Cookie`` values for one response.

    Keeps one header per cookie name; a later write replaces an earlier
    one, so clearing then re-issuing a cookie in the same request emits
    only the final cookie.
    """

    __slots__ = ("_cookies",)

    def __init__(self):
        self._cookies: dict[str, str] = {}

    def set(self, name: str, header_value: str) -> None:
        self._cookies.pop(name, None)
        self._cookies[name] = header_value

    def get(self, name: str) -> str | None:
        return self._cookies.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._cookies

    def __len__(self) -> int:
        return len(self._cookies)

    def headers(self) -> list[str]:
        """``Set-Cookie`` header values in write order."""
        return list(self._cookies.values())

    def header_items(self) -> list[tuple[bytes, bytes]]:
        """Raw ASGI header pairs."""
        return [(b"set-cookie", value.encode("latin-1")) for value in self._cookies.values()]


# ============================================================================
# CookieTransport - HTTP Cookies
# ============================================================================

class CookieTransport:
    """
    Cookie-based session transport.

    Features:
    - HttpOnly flag always set
    - Secure flag opt-in via ``cookie_secure``
    - Domain scoped to the request host
    - Session cookie on creation, immediate expiry on destroy

    Example:
        >>> transport = CookieTransport(SessionConfig(cookie_name="myapp_sess"))
        >>> value = transport.extract({"myapp_sess": "9f8e..."})
        >>> transport.inject(jar, "9f8e...", host="example.com")
    """

    def __init__(self, config: SessionConfig):
        self.config = config
        self.cookie_name = config.cookie_name

    def extract(self, cookies: Mapping[str, str]) -> str | None:
        """Extract the raw (hex) cookie value, if present."""
        value = cookies.get(self.cookie_name)
        if value is None:
            return None
        return value

    def inject(self, jar: CookieJar, value: str, host: str = "") -> None:
        """Issue the session cookie."""
        parts = [f"{self.cookie_name}={value}", f"Path={self.config.cookie_path}"]
        parts.extend(self._common_attributes(host))
        jar.set(self.cookie_name, "; ".join(parts))

    def clear(self, jar: CookieJar, host: str = "") -> None:
        """Expire the session cookie immediately."""
        parts = [
            f"{self.cookie_name}=",
            f"Expires={formatdate(1, usegmt=True)}",
            "Max-Age=0",
            f"Path={self.config.cookie_path}",
        ]
        parts.extend(self._common_attributes(host))
        jar.set(self.cookie_name, "; ".join(parts))

    def _common_attributes(self, host: str) -> list[str]:
        attributes = []
        if host:
            attributes.append(f"Domain={host}")
        if self.config.cookie_secure:
            attributes.append("Secure")
        attributes.append("HttpOnly")
        return attributes
