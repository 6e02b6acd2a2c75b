"""
Strix Sessions - Bootstrap Example

A plain ASGI app with a shopping cart kept in the session:

    GET  /         -> show cart size
    POST /add      -> add one item
    POST /logout   -> destroy the session

Serve it with any ASGI server, e.g. ``uvicorn examples.session_app:app``.
"""

import logging

from strix.cache import Cache
from strix.sessions import SessionManager, SessionMiddleware


logging.basicConfig(level=logging.INFO)


# ============================================================================
# 1. Cache instances
# ============================================================================

cache = Cache.from_config({
    "prefix": "strix_example_session",
    "instances": {
        "default": {
            "engine": "memory",
            "duration": "+30 minutes",
        },
    },
})


# ============================================================================
# 2. Session manager
# ============================================================================

sessions = SessionManager.from_config({
    "cache_instance": "default",
    "cookie_name": "strix_sess",
    "session_secret": "wxLl88ISVTz7lvHgZvOSKrxOWI7MjLA1",
    "security_salt": "bhY4dZ5bEeru9e1XlObtY9Mc95cfDcrQ",
}, cache)

sessions.on_event(lambda event: logging.getLogger("example").info(event))


# ============================================================================
# 3. Application
# ============================================================================

async def shop(scope, receive, send):
    if scope["type"] == "lifespan":
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await cache.initialize()
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await cache.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    session = scope["state"]["session"]
    path, method = scope["path"], scope["method"]

    if method == "POST" and path == "/add":
        items = (session.get("cart_items") or 0) + 1
        await session.set("cart_items", items)
        body = f"Added. Cart has {items} item(s).\n"
    elif method == "POST" and path == "/logout":
        await session.destroy()
        body = "Logged out.\n"
    else:
        body = f"Cart has {session.get('cart_items') or 0} item(s).\n"

    await send({
        "type": "http.response.start",
        "status": 200,
        "headers": [(b"content-type", b"text/plain; charset=utf-8")],
    })
    await send({"type": "http.response.body", "body": body.encode()})


app = SessionMiddleware(shop, sessions)
