"""
Strix - Cache-backed sessions with encrypted, fingerprint-bound cookies.

Subpackages:
- strix.cache: named, expiring cache instances (memory, Redis, null)
- strix.security: authenticated encryption and keyed hashing
- strix.sessions: session lifecycle, facade and ASGI middleware
- strix.faults: structured fault types
"""

__version__ = "0.3.0"

from .cache import Cache
from .security import Security
from .sessions import (
    NOT_FOUND,
    ClientContext,
    SessionConfig,
    SessionContext,
    SessionManager,
    SessionMiddleware,
)

__all__ = [
    "__version__",
    "Cache",
    "Security",
    "NOT_FOUND",
    "ClientContext",
    "SessionConfig",
    "SessionContext",
    "SessionManager",
    "SessionMiddleware",
]
