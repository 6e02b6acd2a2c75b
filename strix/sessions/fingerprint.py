"""
StrixSessions - Client fingerprinting.

A fingerprint binds a session ID to the environment of the client that
created it. Inputs are concatenated byte-for-byte with no normalization:
a changed address, user agent or host (even case or whitespace) yields a
different fingerprint and ends the session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from strix.security import Cipher


@dataclass(frozen=True)
class ClientContext:
    """
    Request metadata a session is bound to.

    Attributes:
        address: Client IP address
        user_agent: Raw User-Agent header
        host: Server host name the request was addressed to (no port)
    """

    address: str = ""
    user_agent: str = ""
    host: str = ""

    @classmethod
    def from_scope(cls, scope: Mapping[str, Any]) -> ClientContext:
        """
        Build from an ASGI HTTP scope.

        Host comes from the Host header with any port stripped, falling
        back to the server address.
        """
        headers = {}
        for name, value in scope.get("headers", []):
            headers.setdefault(name.decode("latin-1").lower(), value.decode("latin-1"))

        client = scope.get("client") or ("", 0)
        server = scope.get("server") or ("", None)

        host = headers.get("host", "")
        if host.startswith("["):
            # IPv6 literal: [::1]:8000
            host = host[: host.find("]") + 1] if "]" in host else host
        elif ":" in host:
            host = host.rsplit(":", 1)[0]
        if not host:
            host = server[0] or ""

        return cls(
            address=client[0] or "",
            user_agent=headers.get("user-agent", ""),
            host=host,
        )


def compute_fingerprint(
    hasher: Cipher,
    session_id: str,
    client: ClientContext,
    secret: str,
) -> str:
    """
    Fingerprint = hash(id + address + secret + user_agent + host).

    Uses the same keyed hash as session ID generation.
    """
    return hasher.hash(
        session_id + client.address + secret + client.user_agent + client.host
    )
