"""Session-based authorization gates.

Two independent gates share :func:`is_authenticated`:

- :func:`protected` wraps individual route handlers.
- :func:`restricted_gate` is installed once as application middleware and only
  enforces for paths under a fixed prefix.

They are not unified. A route outside the restricted prefix that is not
wrapped with ``protected`` is open to anonymous callers, and a protected route
under the prefix is checked twice.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Optional

from aiohttp import web
from aiohttp_session import Session, get_session

from .errors import H401, GatewayError

logger = logging.getLogger(__name__)

NOT_AUTHORIZED = "Not authorized!"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def is_authenticated(session: Optional[Session]) -> bool:
    """True when the session carries a username."""
    return session is not None and bool(session.get("username"))


def path_is_restricted(path: str, prefix: str) -> bool:
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


def protected(handler: Handler) -> Handler:
    """Reject the request with ``h401`` unless the session is authenticated."""

    @wraps(handler)
    async def wrapper(request: web.Request) -> Any:
        session = await get_session(request)
        if not is_authenticated(session):
            logger.debug(f"protected gate denied {request.path}")
            raise GatewayError(H401, NOT_AUTHORIZED)
        return await handler(request)

    return wrapper


def restricted_gate(prefix: str):
    """Build middleware that requires authentication for paths under ``prefix``."""

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        if path_is_restricted(request.path, prefix):
            session = await get_session(request)
            if not is_authenticated(session):
                logger.debug(f"restricted gate denied {request.path}")
                raise GatewayError(H401, NOT_AUTHORIZED)
        return await handler(request)

    return middleware
