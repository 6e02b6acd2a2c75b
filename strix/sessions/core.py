"""
StrixSessions - Core types.

Defines fundamental session data structures:
- SessionRecord: the persisted session (id, since, fingerprint, values)
- Resolution / ResolveResult: outcome of validating a presented session
- NOT_FOUND: sentinel returned for unset keys
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .faults import SessionFault


# ============================================================================
# NOT_FOUND - Missing Key Sentinel
# ============================================================================

class _NotFound:
    """
    Sentinel for keys that were never set.

    Falsy, so ``if not ctx.get("cart"):`` reads naturally, but distinct
    from a stored ``None``/``False``.
    """

    __slots__ = ()
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __reduce__(self):
        return (_NotFound, ())


NOT_FOUND: Any = _NotFound()


# ============================================================================
# SessionRecord - Persisted State
# ============================================================================

@dataclass
class SessionRecord:
    """
    Session state as stored in the cache.

    Attributes:
        session_id: Opaque identifier (keyed hash of a random seed)
        since: Creation time, integer epoch seconds
        fingerprint: Keyed hash binding the ID to the client context
        values: Application data

    Example:
        >>> record = SessionRecord(session_id="4f2a...", fingerprint="9c1e...")
        >>> record.values["cart_items"] = 3
        >>> SessionRecord.from_dict(record.to_dict()) == record
        True
    """

    session_id: str
    fingerprint: str
    since: int = field(default_factory=lambda: int(time.time()))
    values: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to the stored mapping.

        Returns:
            ``{"session_id", "since", "fingerprint", "values"}``
        """
        return {
            "session_id": self.session_id,
            "since": self.since,
            "fingerprint": self.fingerprint,
            "values": self.values,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        """
        Deserialize from the stored mapping.

        Raises:
            ValueError: If required fields are missing or mistyped
        """
        session_id = data.get("session_id")
        fingerprint = data.get("fingerprint")
        if not isinstance(session_id, str) or not isinstance(fingerprint, str):
            raise ValueError("session_id and fingerprint must be strings")

        values = data.get("values")
        if values is None:
            values = {}
        if not isinstance(values, dict):
            raise ValueError("values must be a mapping")

        since = data.get("since", 0)
        if isinstance(since, bool) or not isinstance(since, (int, float)):
            raise ValueError("since must be a number")

        return cls(
            session_id=session_id,
            fingerprint=fingerprint,
            since=int(since),
            values=dict(values),
        )


# ============================================================================
# Resolution - Validation Outcome
# ============================================================================

class Resolution(str, Enum):
    """
    Outcome of validating the session presented by a request.

    - VALID: cookie decrypted, data found, fingerprint matched
    - INVALID: a candidate ID existed but must not be continued
    - ABSENT: no usable candidate ID (no cookie, or undecryptable)
    """

    VALID = "valid"
    INVALID = "invalid"
    ABSENT = "absent"


@dataclass
class ResolveResult:
    """
    Result of resolving a candidate session ID.

    Attributes:
        resolution: VALID, INVALID or ABSENT
        session_id: Candidate ID ("" when absent)
        record: Loaded record (only when VALID)
        fault: Why the session was rejected (INVALID, and ABSENT when a
            cookie was present but unreadable)
    """

    resolution: Resolution
    session_id: str = ""
    record: SessionRecord | None = None
    fault: SessionFault | None = None

    @property
    def is_valid(self) -> bool:
        return self.resolution is Resolution.VALID

    @classmethod
    def valid(cls, record: SessionRecord) -> ResolveResult:
        return cls(Resolution.VALID, session_id=record.session_id, record=record)

    @classmethod
    def invalid(cls, session_id: str, fault: SessionFault) -> ResolveResult:
        return cls(Resolution.INVALID, session_id=session_id, fault=fault)

    @classmethod
    def absent(cls, fault: SessionFault | None = None) -> ResolveResult:
        return cls(Resolution.ABSENT, fault=fault)
