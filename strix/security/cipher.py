"""
StrixSecurity - Symmetric encryption and keyed hashing.

``Security`` is the cipher/hash collaborator of the session store:

- ``encrypt(plaintext, secret) -> bytes``: AES-256-GCM with a fresh
  random nonce per call, so encrypting the same value twice yields
  different ciphertexts.
- ``decrypt(data, secret) -> bytes``: fails soft. Wrong secret, tampered
  or truncated input all return ``b""`` instead of raising.
- ``hash(value) -> str``: deterministic HMAC-SHA256 keyed by the salt.

Encryption keys are derived from ``secret`` with HKDF-SHA256, salted
with the instance salt, so the same secret under two salts never
produces interchangeable ciphertexts.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
from functools import lru_cache
from typing import Protocol, runtime_checkable

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

logger = logging.getLogger("strix.security")

NONCE_SIZE = 12
KEY_SIZE = 32
_HKDF_INFO = b"strix.security.encrypt"


@runtime_checkable
class Cipher(Protocol):
    """Contract the session store relies on."""

    def encrypt(self, plaintext: bytes | str, secret: str) -> bytes:
        ...

    def decrypt(self, data: bytes, secret: str) -> bytes:
        ...

    def hash(self, value: str) -> str:
        ...


def _to_bytes(value: bytes | str | None) -> bytes:
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


@lru_cache(maxsize=64)
def _derive_key(secret: bytes, salt: bytes) -> bytes:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt or None,
        info=_HKDF_INFO,
    )
    return hkdf.derive(secret)


class Security:
    """
    Cipher and keyed hash bound to one salt.

    Example:
        >>> security = Security(salt="bhY4dZ5bEeru9e1X")
        >>> token = security.encrypt("4f2a...", "my-secret")
        >>> security.decrypt(token, "my-secret")
        b'4f2a...'
        >>> security.decrypt(token, "wrong-secret")
        b''
    """

    __slots__ = ("_salt",)

    def __init__(self, salt: str | bytes | None = None):
        self._salt = _to_bytes(salt)

    def encrypt(self, plaintext: bytes | str, secret: str) -> bytes:
        """
        Encrypt ``plaintext`` under ``secret``.

        Returns:
            ``nonce || ciphertext || tag``
        """
        key = _derive_key(_to_bytes(secret), self._salt)
        nonce = os.urandom(NONCE_SIZE)
        return nonce + AESGCM(key).encrypt(nonce, _to_bytes(plaintext), None)

    def decrypt(self, data: bytes, secret: str) -> bytes:
        """
        Decrypt data produced by :meth:`encrypt`.

        Returns:
            The plaintext, or ``b""`` if the data cannot be authenticated.
        """
        if not data or len(data) <= NONCE_SIZE:
            logger.debug("Decryption skipped: ciphertext too short")
            return b""

        key = _derive_key(_to_bytes(secret), self._salt)
        nonce, body = data[:NONCE_SIZE], data[NONCE_SIZE:]
        try:
            return AESGCM(key).decrypt(nonce, body, None)
        except InvalidTag:
            logger.debug("Decryption failed: authentication tag mismatch")
            return b""

    def hash(self, value: str) -> str:
        """Keyed, deterministic SHA-256 digest (hex)."""
        return hmac.new(self._salt, _to_bytes(value), hashlib.sha256).hexdigest()
