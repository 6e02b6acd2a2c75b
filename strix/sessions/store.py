"""
StrixSessions - Session Store.

The SessionStore owns the lifecycle of one request's session:

1. Detection  - hex-decode and decrypt the cookie into a candidate ID
2. Loading    - read the candidate's record from the cache instance
3. Validation - recompute the client fingerprint and compare
4. Recovery   - on any failure, destroy the candidate and mint a new
                session (new ID, new fingerprint, empty values)
5. Keep-alive - re-save so the cache entry's TTL is refreshed
6. Mutation   - get/set/delete values, saved per the configured mode
7. Destroy    - delete the record, expire the cookie, wipe memory

Failures never escape: undecryptable cookies, cache errors, corrupt
records and fingerprint mismatches all degrade to a fresh, empty, valid
session. Failed writes surface as ``False``.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import time
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping

from strix.cache.faults import CacheSerializationFault
from strix.cache.serializers import JsonCacheSerializer
from strix.faults.core import Fault, Severity

from .core import NOT_FOUND, ResolveResult, SessionRecord
from .faults import (
    SessionDecryptionFault,
    SessionFingerprintMismatchFault,
    SessionNotFoundFault,
    SessionSaveFailedFault,
    SessionStoreCorruptedFault,
    hash_session_id,
)
from .fingerprint import ClientContext, compute_fingerprint
from .transport import CookieJar, CookieTransport

if TYPE_CHECKING:
    from strix.cache import Cache, CacheSerializer
    from strix.security import Cipher
    from .policy import SessionConfig


logger = logging.getLogger("strix.sessions")

_LOG_LEVELS = {
    Severity.INFO: logging.DEBUG,
    Severity.WARN: logging.INFO,
    Severity.ERROR: logging.WARNING,
    Severity.FATAL: logging.ERROR,
}

_ENCODE_ERRORS = (TypeError, ValueError, OverflowError)

EventSink = Callable[[str, "SessionStore", "Fault | None"], None]


def log_fault(fault: Fault) -> None:
    """Log a fault at the level matching its severity."""
    logger.log(_LOG_LEVELS.get(fault.severity, logging.WARNING), str(fault), extra={"fault": fault.to_dict()})


class SessionStore:
    """
    Request-scoped session lifecycle state machine.

    Construct with :meth:`open`; the returned store always holds a valid
    session for the given client context.

    Example:
        >>> store = await SessionStore.open(
        ...     config, cache, Security(config.security_salt),
        ...     ClientContext("10.0.0.7", "Mozilla/5.0", "example.com"),
        ...     cookie_value=request_cookies.get(config.cookie_name),
        ... )
        >>> await store.set("cart_items", 3)
        True
        >>> store.get("cart_items")
        3
    """

    def __init__(
        self,
        config: SessionConfig,
        cache: Cache,
        security: Cipher,
        client: ClientContext,
        *,
        transport: CookieTransport | None = None,
        serializer: CacheSerializer | None = None,
        on_event: EventSink | None = None,
    ):
        self.config = config
        self.cache = cache
        self.security = security
        self.client = client
        self.transport = transport or CookieTransport(config)
        self.serializer = serializer or JsonCacheSerializer()
        self.cookies = CookieJar()
        self.resolution: ResolveResult | None = None
        # result of persisting a freshly minted session; None when continued
        self.created_saved: bool | None = None

        self._on_event = on_event
        self._session_id = ""
        self._record: SessionRecord | None = None
        self._dirty = False

    @classmethod
    async def open(
        cls,
        config: SessionConfig,
        cache: Cache,
        security: Cipher,
        client: ClientContext,
        cookie_value: str | None = None,
        **kwargs: Any,
    ) -> SessionStore:
        """
        Build a store from the incoming cookie and guarantee it holds a
        valid session before returning.
        """
        store = cls(config, cache, security, client, **kwargs)
        await store._bootstrap(cookie_value)
        return store

    async def _bootstrap(self, cookie_value: str | None) -> None:
        result = await self.resolve(cookie_value)
        self.resolution = result

        if result.is_valid:
            self._session_id = result.session_id
            self._record = result.record
            self._emit("session_loaded")
        else:
            self._session_id = result.session_id
            if result.fault is not None:
                log_fault(result.fault)
                self._emit("session_invalid", result.fault)
            await self.destroy()
            self.created_saved = await self._start()

        await self.keep_alive()

    # ========================================================================
    # Detection + Validation
    # ========================================================================

    async def resolve(self, cookie_value: str | None) -> ResolveResult:
        """
        Decide whether the presented cookie names a session that may be
        continued by this client.
        """
        if cookie_value is None:
            return ResolveResult.absent()

        session_id = self._decode_cookie(cookie_value)
        if not session_id:
            return ResolveResult.absent(SessionDecryptionFault())

        data = await self.load(session_id)
        if not data:
            return ResolveResult.invalid(session_id, SessionNotFoundFault(session_id=session_id))

        try:
            record = SessionRecord.from_dict(data)
        except ValueError as e:
            return ResolveResult.invalid(
                session_id, SessionStoreCorruptedFault(session_id=session_id, reason=str(e))
            )

        if record.session_id != session_id:
            return ResolveResult.invalid(
                session_id,
                SessionStoreCorruptedFault(session_id=session_id, reason="stored ID does not match key"),
            )

        # records come from a shared cache and may hold any text
        stored = record.fingerprint.encode("utf-8", "surrogatepass")
        expected = self.compute_fingerprint(session_id).encode("utf-8")
        if not hmac.compare_digest(stored, expected):
            return ResolveResult.invalid(
                session_id, SessionFingerprintMismatchFault(session_id=session_id)
            )

        return ResolveResult.valid(record)

    def _decode_cookie(self, cookie_value: str) -> str:
        """Hex-decode and decrypt a cookie value; "" on any failure."""
        try:
            ciphertext = bytes.fromhex(cookie_value)
        except ValueError:
            return ""

        try:
            plaintext = self.security.decrypt(ciphertext, self.config.session_secret)
        except Exception as e:
            logger.warning(f"Session cookie decryption raised: {e}")
            return ""

        if isinstance(plaintext, str):
            return plaintext.strip()
        try:
            return plaintext.decode("ascii").strip()
        except UnicodeDecodeError:
            return ""

    def compute_fingerprint(self, session_id: str) -> str:
        """Fingerprint of ``session_id`` for the current client context."""
        return compute_fingerprint(
            self.security, session_id, self.client, self.config.session_secret
        )

    # ========================================================================
    # Creation
    # ========================================================================

    def _generate_id(self) -> str:
        seed = secrets.token_hex(16) + str(time.time_ns()) + self.config.session_secret
        return self.security.hash(seed)

    async def _start(self) -> bool:
        """Mint, persist and deliver a brand-new session."""
        session_id = self._generate_id()
        self._session_id = session_id
        self._record = SessionRecord(
            session_id=session_id,
            fingerprint=self.compute_fingerprint(session_id),
            since=int(time.time()),
        )

        token = self.security.encrypt(session_id, self.config.session_secret)
        self.transport.inject(self.cookies, token.hex(), self.client.host)

        self._emit("session_created")
        return await self.save()

    # ========================================================================
    # Persistence
    # ========================================================================

    async def load(self, session_id: str) -> dict[str, Any]:
        """
        Read a stored record.

        Returns:
            The decoded mapping, or ``{}`` on miss, cache error or
            undecodable data. Never raises.
        """
        if not session_id or not session_id.strip():
            return {}

        key = self.config.cache_key(session_id)
        try:
            raw = await self.cache.get(key, self.config.cache_instance)
        except Exception as e:
            logger.warning(f"Session load failed for {hash_session_id(session_id)}: {e}")
            return {}

        if not raw:
            return {}

        try:
            data = self.serializer.deserialize(raw)
        except (ValueError, TypeError, UnicodeDecodeError) as e:
            log_fault(CacheSerializationFault(key=hash_session_id(session_id), operation="decode", reason=str(e)))
            return {}

        if not isinstance(data, dict):
            return {}
        return data

    async def save(self) -> bool:
        """
        Write the current record to the cache.

        Returns:
            False when there is no session ID or the write was rejected.
        """
        if not self._session_id.strip() or self._record is None:
            return False

        try:
            payload = self.serializer.serialize(self._record.to_dict())
        except _ENCODE_ERRORS as e:
            log_fault(CacheSerializationFault(
                key=hash_session_id(self._session_id), operation="encode", reason=str(e),
            ))
            return False

        try:
            saved = await self.cache.set(
                self.config.cache_key(self._session_id),
                payload,
                self.config.cache_instance,
            )
        except Exception as e:
            logger.warning(f"Session save raised: {e}")
            saved = False

        if saved:
            self._dirty = False
        else:
            fault = SessionSaveFailedFault(
                session_id=self._session_id,
                cache_instance=self.config.cache_instance,
            )
            log_fault(fault)
            self._emit("session_save_failed", fault)
        return bool(saved)

    async def keep_alive(self) -> bool:
        """Re-save unchanged data to refresh the cache entry's expiry."""
        return await self.save()

    async def commit(self) -> bool:
        """Persist pending mutations (deferred mode). True if nothing pending."""
        if not self._dirty:
            return True
        return await self.save()

    async def destroy(self) -> None:
        """
        Delete the record, expire the cookie and wipe in-memory state.

        Safe to call repeatedly.
        """
        had_session = bool(self._session_id or self._record is not None)

        if self._session_id.strip():
            try:
                await self.cache.delete(
                    self.config.cache_key(self._session_id),
                    self.config.cache_instance,
                )
            except Exception as e:
                logger.warning(f"Session delete failed for {hash_session_id(self._session_id)}: {e}")

        self.transport.clear(self.cookies, self.client.host)

        if had_session:
            self._emit("session_destroyed")

        self._record = None
        self._session_id = ""
        self._dirty = False

    # ========================================================================
    # Values
    # ========================================================================

    def get(self, key: str, default: Any = NOT_FOUND) -> Any:
        """Value stored under ``key``, or ``default`` (NOT_FOUND)."""
        if self._record is None:
            return default
        return self._record.values.get(key, default)

    async def set(self, key: str, value: Any) -> bool:
        """
        Store a value.

        Values the serializer cannot encode are refused and leave the
        session unchanged.

        Returns:
            The save result in write-through mode; True once buffered in
            deferred mode; False after the session was destroyed or for an
            unencodable value.
        """
        if self._record is None or not self._encodable(key, value):
            return False

        self._record.values[key] = value
        self._dirty = True

        if self.config.write_through:
            return await self.save()
        return True

    def _encodable(self, key: str, value: Any) -> bool:
        try:
            self.serializer.serialize(value)
        except _ENCODE_ERRORS as e:
            log_fault(CacheSerializationFault(
                key=f"{hash_session_id(self._session_id)}[{key}]", operation="encode", reason=str(e),
            ))
            return False
        return True

    async def delete(self, key: str) -> bool:
        """Remove a value. False if it was not set."""
        if self._record is None or key not in self._record.values:
            return False

        del self._record.values[key]
        self._dirty = True

        if self.config.write_through:
            return await self.save()
        return True

    # ========================================================================
    # Accessors
    # ========================================================================

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def since(self) -> int | None:
        return self._record.since if self._record else None

    @property
    def fingerprint(self) -> str | None:
        return self._record.fingerprint if self._record else None

    @property
    def values(self) -> Mapping[str, Any]:
        """Read-only view of the session values."""
        if self._record is None:
            return MappingProxyType({})
        return MappingProxyType(self._record.values)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def is_destroyed(self) -> bool:
        return self._record is None

    @property
    def is_new(self) -> bool:
        """Whether this request minted the session."""
        return self.resolution is not None and not self.resolution.is_valid

    def _emit(self, event_name: str, fault: Fault | None = None) -> None:
        if self._on_event is not None:
            self._on_event(event_name, self, fault)

    def __repr__(self) -> str:
        sid = hash_session_id(self._session_id) if self._session_id else "-"
        return f"SessionStore(id={sid}, values={len(self.values)})"
