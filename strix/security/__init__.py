"""
StrixSecurity - cipher and keyed hash primitives used by sessions.
"""

from .cipher import Cipher, Security

__all__ = [
    "Cipher",
    "Security",
]
