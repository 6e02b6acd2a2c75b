"""
Session Middleware - binds one session context to each HTTP request.

Flow:
    Request → SessionMiddleware → [open] → app → [commit + Set-Cookie] → Response

The context is stored in ``scope["state"]["session"]``. Pending writes
are committed when the response starts, and the session's outgoing
cookies are appended to the response headers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, MutableMapping

if TYPE_CHECKING:
    from .context import SessionContext, SessionManager

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]


class SessionMiddleware:
    """
    ASGI middleware integrating the SessionManager with HTTP requests.

    Non-HTTP scopes (lifespan, websocket) pass straight through.

    Example:
        >>> manager = SessionManager.from_config(settings, cache)
        >>> app = SessionMiddleware(app, manager)
    """

    def __init__(self, app: ASGIApp, manager: SessionManager):
        self.app = app
        self.manager = manager
        self.logger = logging.getLogger("strix.sessions.middleware")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        session = await self.manager.open_scope(scope)
        scope.setdefault("state", {})["session"] = session

        response_started = False

        async def send_with_session(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start" and not response_started:
                response_started = True
                await self._commit(session)
                headers = list(message.get("headers", []))
                headers.extend(session.outgoing_cookies.header_items())
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_session)

        if not response_started:
            await self._commit(session)

    async def _commit(self, session: SessionContext) -> None:
        if not await session.commit():
            self.logger.warning("Session commit failed; changes from this request were not saved")
