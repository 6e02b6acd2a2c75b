"""
StrixSessions - Cache-backed sessions authenticated by an encrypted cookie.

Provides:
- SessionManager / SessionContext: app-scoped owner, request-scoped facade
- SessionStore: lifecycle state machine (detect, load, validate, recover)
- Client fingerprinting bound to address, user agent and host
- Cookie transport and ASGI middleware
- Typed session faults

Usage::

    from strix.cache import Cache
    from strix.sessions import SessionManager, SessionMiddleware

    cache = Cache.from_config({
        "instances": {"default": {"engine": "memory", "duration": "+30 minutes"}},
    })
    manager = SessionManager.from_config({
        "cookie_name": "myapp_sess",
        "session_secret": "wxLl88ISVTz7lvHgZvOSKrxOWI7MjLA1",
        "security_salt": "bhY4dZ5bEeru9e1XlObtY9Mc95cfDcrQ",
    }, cache)
    app = SessionMiddleware(app, manager)
"""

from .core import NOT_FOUND, Resolution, ResolveResult, SessionRecord
from .faults import (
    SessionConfigFault,
    SessionDecryptionFault,
    SessionFault,
    SessionFingerprintMismatchFault,
    SessionNotFoundFault,
    SessionSaveFailedFault,
    SessionStoreCorruptedFault,
    hash_session_id,
)
from .fingerprint import ClientContext, compute_fingerprint
from .policy import (
    DEFAULT_CACHE_INSTANCE,
    DEFAULT_COOKIE_NAME,
    DEFAULT_KEY_PREFIX,
    SessionConfig,
)
from .transport import CookieJar, CookieTransport, parse_cookie_header
from .store import SessionStore
from .context import SessionContext, SessionManager
from .middleware import SessionMiddleware

__all__ = [
    # Core
    "NOT_FOUND",
    "Resolution",
    "ResolveResult",
    "SessionRecord",
    # Faults
    "SessionFault",
    "SessionConfigFault",
    "SessionDecryptionFault",
    "SessionFingerprintMismatchFault",
    "SessionNotFoundFault",
    "SessionSaveFailedFault",
    "SessionStoreCorruptedFault",
    "hash_session_id",
    # Fingerprint
    "ClientContext",
    "compute_fingerprint",
    # Config
    "SessionConfig",
    "DEFAULT_CACHE_INSTANCE",
    "DEFAULT_COOKIE_NAME",
    "DEFAULT_KEY_PREFIX",
    # Transport
    "CookieJar",
    "CookieTransport",
    "parse_cookie_header",
    # Lifecycle
    "SessionStore",
    "SessionContext",
    "SessionManager",
    "SessionMiddleware",
]
