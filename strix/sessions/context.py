"""
StrixSessions - Session manager and request-scoped context.

``SessionManager`` is app-scoped: it owns the configuration, the cache,
the cipher and the event handlers, and opens one ``SessionContext`` per
request. Application code only ever talks to the context.

Example:
    >>> manager = SessionManager.from_config({
    ...     "cache_instance": "default",
    ...     "cookie_name": "myapp_sess",
    ...     "session_secret": "wxLl88ISVTz7lvHgZvOSKrxOWI7MjLA1",
    ...     "security_salt": "bhY4dZ5bEeru9e1XlObtY9Mc95cfDcrQ",
    ... }, cache)
    >>> ctx = await manager.open(client, cookies)
    >>> await ctx.set("cart_items", 3)
    True
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Mapping

from strix.cache.serializers import JsonCacheSerializer
from strix.security import Security

from .core import NOT_FOUND, ResolveResult
from .faults import SessionConfigFault, hash_session_id
from .fingerprint import ClientContext
from .policy import SessionConfig
from .store import SessionStore
from .transport import CookieJar, CookieTransport, parse_cookie_header

if TYPE_CHECKING:
    from strix.cache import Cache, CacheSerializer
    from strix.faults import Fault
    from strix.security import Cipher


class SessionContext:
    """
    Request-scoped session facade.

    Thin wrapper over a :class:`SessionStore`; valid from the moment it
    is handed out.
    """

    __slots__ = ("_store",)

    def __init__(self, store: SessionStore):
        self._store = store

    def get(self, key: str, default: Any = NOT_FOUND) -> Any:
        return self._store.get(key, default)

    async def set(self, key: str, value: Any) -> bool:
        return await self._store.set(key, value)

    async def delete(self, key: str) -> bool:
        return await self._store.delete(key)

    async def destroy(self) -> None:
        await self._store.destroy()

    def current_id(self) -> str:
        """Current session ID ("" after destroy)."""
        return self._store.session_id

    async def commit(self) -> bool:
        """Persist buffered mutations (no-op when nothing is pending)."""
        return await self._store.commit()

    @property
    def values(self) -> Mapping[str, Any]:
        return self._store.values

    @property
    def since(self) -> int | None:
        return self._store.since

    @property
    def is_new(self) -> bool:
        return self._store.is_new

    @property
    def resolution(self) -> ResolveResult | None:
        return self._store.resolution

    @property
    def created_saved(self) -> bool | None:
        """Whether a session minted by this request reached the cache (None if continued)."""
        return self._store.created_saved

    @property
    def outgoing_cookies(self) -> CookieJar:
        return self._store.cookies

    @property
    def store(self) -> SessionStore:
        return self._store

    def __contains__(self, key: str) -> bool:
        return key in self._store.values

    def __repr__(self) -> str:
        return f"SessionContext({self._store!r})"


class SessionManager:
    """
    App-scoped owner of session configuration and collaborators.

    Args:
        cache: Cache holding session records
        config: Session configuration
        security: Cipher/hash collaborator (defaults to ``Security`` keyed
            by ``config.security_salt``)
        serializer: Record serializer (JSON by default)

    Raises:
        SessionConfigFault: If the configured cache instance does not exist
    """

    def __init__(
        self,
        cache: Cache,
        config: SessionConfig | None = None,
        security: Cipher | None = None,
        serializer: CacheSerializer | None = None,
    ):
        self.config = config or SessionConfig()
        self.cache = cache
        self.security = security or Security(self.config.security_salt)
        self.serializer = serializer or JsonCacheSerializer()
        self.transport = CookieTransport(self.config)
        self.logger = logging.getLogger("strix.sessions")
        self._event_handlers: list[Callable[[dict[str, Any]], None]] = []

        has_instance = getattr(cache, "has_instance", None)
        if has_instance is not None and not has_instance(self.config.cache_instance):
            raise SessionConfigFault(
                f"cache instance '{self.config.cache_instance}' is not configured"
            )

        if not self.config.session_secret:
            self.logger.warning(
                "session_secret is empty; session cookies are effectively unprotected"
            )

    @classmethod
    def from_config(cls, config: Mapping[str, Any], cache: Cache, **kwargs: Any) -> SessionManager:
        """Build a manager from a configuration mapping."""
        return cls(cache, SessionConfig.from_dict(dict(config)), **kwargs)

    async def open(
        self,
        client: ClientContext,
        cookies: Mapping[str, str] | None = None,
    ) -> SessionContext:
        """
        Open the session for one request.

        Args:
            client: Client context the session is bound to
            cookies: Parsed request cookies

        Returns:
            A context holding a valid session
        """
        store = await SessionStore.open(
            self.config,
            self.cache,
            self.security,
            client,
            cookie_value=self.transport.extract(cookies or {}),
            transport=self.transport,
            serializer=self.serializer,
            on_event=self._emit_event,
        )
        return SessionContext(store)

    async def open_scope(self, scope: Mapping[str, Any]) -> SessionContext:
        """Open the session for an ASGI HTTP scope."""
        cookie_header = None
        for name, value in scope.get("headers", []):
            if name.lower() == b"cookie":
                cookie_header = value.decode("latin-1")
                break
        return await self.open(
            ClientContext.from_scope(scope),
            parse_cookie_header(cookie_header),
        )

    # ========================================================================
    # Events
    # ========================================================================

    def on_event(self, handler: Callable[[dict[str, Any]], None]) -> None:
        """
        Register an event handler.

        Handlers receive a dict with ``event``, ``timestamp``,
        ``cache_instance`` and, when known, ``session_id_hash`` and
        ``fault``.
        """
        self._event_handlers.append(handler)

    def _emit_event(self, event_name: str, store: SessionStore, fault: Fault | None = None) -> None:
        event_data: dict[str, Any] = {
            "event": event_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "cache_instance": self.config.cache_instance,
        }
        if store.session_id:
            event_data["session_id_hash"] = hash_session_id(store.session_id)
        if fault is not None:
            event_data["fault"] = fault.code

        for handler in self._event_handlers:
            try:
                handler(event_data)
            except Exception as e:
                self.logger.error(f"Event handler error: {e}")

        self.logger.debug(f"Session event: {event_name}", extra={"session_event": event_data})
