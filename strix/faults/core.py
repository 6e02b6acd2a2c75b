"""
StrixFaults - Core types and fault taxonomy.

A fault is an exception that also works as a plain value: session code
returns faults inside resolution results, cache code hands them to
fault handlers, and configuration code raises them.

Defines:
- Severity: how loudly a fault is logged
- FaultDomain: open set of functional areas (subsystems add their own)
- Fault: base class carrying code, message, domain and retry semantics
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """Fault severity, mapped onto logging levels by the reporter."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Functional area a fault belongs to.

    Domains compare by name, so a domain registered by a subsystem equals
    any other instance built with the same name (or the bare name string).

    Example:
        >>> FaultDomain.CACHE = FaultDomain("cache", "Cache subsystem faults")
        >>> FaultDomain.CACHE == "cache"
        True
    """

    __slots__ = ("name", "description")

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description

    @property
    def value(self) -> str:
        return self.name

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return other.name == self.name
        return isinstance(other, str) and other == self.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain({self.name!r})"


FaultDomain.CONFIG = FaultDomain("config", "Malformed or missing configuration")
FaultDomain.IO = FaultDomain("io", "Storage and network I/O")
FaultDomain.SECURITY = FaultDomain("security", "Session integrity and cryptography")
FaultDomain.SYSTEM = FaultDomain("system", "Unexpected internal failures")


# Severity and retry behaviour when a fault class does not set its own
DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.IO: {"severity": Severity.WARN, "retryable": True},
    FaultDomain.SECURITY: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.SYSTEM: {"severity": Severity.FATAL, "retryable": False},
}

_FALLBACK_DEFAULTS = {"severity": Severity.ERROR, "retryable": False}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Structured fault.

    Subclasses usually pin ``code``, ``message``, ``domain`` and friends as
    class attributes; constructor arguments override them per instance.
    ``severity`` and ``retryable`` fall back to the domain's defaults.

    Attributes:
        code: Stable identifier, e.g. ``"SESSION_NOT_FOUND"``
        message: Human-readable summary
        domain: FaultDomain
        severity: Severity
        retryable: Whether retrying the operation can succeed
        public: Whether the message may be shown to end users
        metadata: Extra context (never raw session IDs)

    Example:
        >>> fault = Fault("CACHE_INSTANCE_UNKNOWN", "no 'sessions' instance",
        ...               domain=FaultDomain.CONFIG)
        >>> fault.severity
        <Severity.FATAL: 'fatal'>
    """

    code: Optional[str] = None
    message: Optional[str] = None
    domain: Optional[FaultDomain] = None
    severity: Optional[Severity] = None
    retryable: Optional[bool] = None
    public: bool = False

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        *,
        domain: Optional[FaultDomain] = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: Optional[bool] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        cls = type(self)
        self.code = code or cls.code
        self.message = message or cls.message
        self.domain = domain or cls.domain

        missing = [
            name for name in ("code", "message", "domain")
            if getattr(self, name) is None
        ]
        if missing:
            raise TypeError(f"{cls.__name__} requires {', '.join(missing)}")

        defaults = DOMAIN_DEFAULTS.get(self.domain, _FALLBACK_DEFAULTS)
        self.severity = severity or cls.severity or defaults["severity"]

        if retryable is None:
            retryable = cls.retryable
        self.retryable = defaults["retryable"] if retryable is None else retryable

        self.public = cls.public if public is None else public
        self.metadata = dict(metadata) if metadata else {}

        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, domain={self.domain.name!r})"

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping for logs and event payloads."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.name,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": dict(self.metadata),
        }
