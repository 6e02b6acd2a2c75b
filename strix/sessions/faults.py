"""
StrixSessions - Fault definitions.

Session faults describe why a presented session could not be continued.
The session store returns them as values inside a resolution result and
logs them; it never raises them to application code. Only configuration
faults are raised, at startup.
"""

import hashlib

from strix.faults.core import Fault, Severity, FaultDomain


def hash_session_id(session_id: str) -> str:
    """Short, stable digest of a session id, safe to put in logs and events."""
    digest = hashlib.sha256(session_id.encode("utf-8")).hexdigest()
    return "sha256:" + digest[:16]


# ============================================================================
# Base
# ============================================================================

class SessionFault(Fault):
    """
    Root of the session fault family (security domain unless overridden).

    The raw session id is never kept; only its hash lands in ``metadata``.
    """

    domain = FaultDomain.SECURITY
    retryable = False
    public = False

    def __init__(self, session_id: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.session_id_hash = hash_session_id(session_id) if session_id else None
        if self.session_id_hash:
            self.metadata.setdefault("session_id_hash", self.session_id_hash)

    def _detail(self, key: str, value, template: str) -> None:
        setattr(self, key, value)
        if value:
            self.message = template.format(value)
            self.metadata[key] = value


# ============================================================================
# Resolution (returned inside Resolution.INVALID / ABSENT results)
# ============================================================================

class SessionDecryptionFault(SessionFault):
    """Cookie was not hex, failed authentication, or was not UTF-8. Same as no cookie."""

    code = "SESSION_DECRYPTION_FAILED"
    message = "Session cookie could not be decrypted"
    severity = Severity.WARN


class SessionNotFoundFault(SessionFault):
    """Nothing stored under the presented id: expired, destroyed or forged."""

    code = "SESSION_NOT_FOUND"
    message = "No stored session for the presented id"
    severity = Severity.WARN
    public = True


class SessionStoreCorruptedFault(SessionFault):
    """The stored record exists but is not a valid session record."""

    code = "SESSION_STORE_CORRUPTED"
    message = "Session data corrupted"
    severity = Severity.ERROR

    def __init__(self, session_id: str | None = None, reason: str = "", **kwargs):
        super().__init__(session_id=session_id, **kwargs)
        self._detail("reason", reason, "Session data corrupted: {}")


class SessionFingerprintMismatchFault(SessionFault):
    """
    The cookie is presented from a different client.

    Address, user agent or host no longer hash to the fingerprint recorded
    when the session started; the session is destroyed.
    """

    code = "SESSION_FINGERPRINT_MISMATCH"
    message = "Client fingerprint differs from the stored one"
    severity = Severity.ERROR


# ============================================================================
# Persistence
# ============================================================================

class SessionSaveFailedFault(SessionFault):
    """Write to the cache failed; callers only see ``False``."""

    code = "SESSION_SAVE_FAILED"
    message = "Session could not be saved"
    severity = Severity.WARN
    retryable = True

    def __init__(self, session_id: str | None = None, cache_instance: str = "", **kwargs):
        super().__init__(session_id=session_id, **kwargs)
        self._detail(
            "cache_instance", cache_instance,
            "Session could not be saved to cache instance '{}'",
        )


# ============================================================================
# Configuration
# ============================================================================

class SessionConfigFault(SessionFault):
    """Raised while building a session manager from bad settings."""

    code = "SESSION_CONFIG_INVALID"
    message = "Invalid session configuration"
    domain = FaultDomain.CONFIG
    severity = Severity.FATAL

    def __init__(self, reason: str, **kwargs):
        super().__init__(**kwargs)
        self._detail("reason", reason, "Invalid session configuration: {}")
