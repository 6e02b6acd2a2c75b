"""
StrixFaults - Structured fault handling.

Errors in Strix are typed fault signals: stable codes, a domain, a
severity and retry semantics. Subsystems (cache, sessions) define their
own fault families on top of these types.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
]
