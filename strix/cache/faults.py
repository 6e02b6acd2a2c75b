"""
StrixCache - Cache faults.

Backend and serialization faults are reported to fault handlers and
logged; callers see a miss or a failed write. Configuration faults are
raised while a ``Cache`` is being assembled.
"""

from __future__ import annotations

from strix.faults.core import Fault, FaultDomain, Severity


FaultDomain.CACHE = FaultDomain("cache", "Cache subsystem faults")


class CacheFault(Fault):
    """Base class for all cache faults."""

    domain = FaultDomain.CACHE
    severity = Severity.WARN
    retryable = True


class CacheBackendFault(CacheFault):
    """A backend operation raised instead of answering."""

    code = "CACHE_BACKEND_ERROR"
    severity = Severity.ERROR

    def __init__(self, backend: str, operation: str, reason: str):
        super().__init__(
            message=f"{operation} on backend '{backend}' failed: {reason}",
            metadata={"backend": backend, "operation": operation, "reason": reason},
        )


class CacheSerializationFault(CacheFault):
    """A stored value could not be encoded or decoded."""

    code = "CACHE_SERIALIZATION_FAILED"
    retryable = False

    def __init__(self, key: str, operation: str, reason: str):
        super().__init__(
            message=f"could not {operation} value for '{key}': {reason}",
            metadata={"key": key, "operation": operation, "reason": reason},
        )


class CacheConfigFault(CacheFault):
    """Malformed cache configuration (engine, duration, instances)."""

    code = "CACHE_CONFIG_INVALID"
    severity = Severity.FATAL
    retryable = False

    def __init__(self, reason: str):
        super().__init__(
            message=f"Invalid cache configuration: {reason}",
            metadata={"reason": reason},
        )


class CacheInstanceNotFoundFault(CacheFault):
    """A caller addressed an instance that was never configured."""

    code = "CACHE_INSTANCE_NOT_FOUND"
    severity = Severity.ERROR
    retryable = False

    def __init__(self, instance: str):
        super().__init__(
            message=f"Cache instance '{instance}' is not configured",
            metadata={"instance": instance},
        )
