"""Application factory.

Middleware order (outermost first)::

    security_headers → cors → error_funnel → session → restricted_gate → handler

``error_funnel`` wraps everything that can fail, so every ``GatewayError``
converges on it exactly once.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from aiohttp import web
from aiohttp_session import session_middleware

from .auth.store import CredentialStore
from .config import build_config
from .errors import error_funnel
from .gates import restricted_gate
from .middleware import cors, security_headers
from .routes import CONFIG_KEY, SESSION_STORAGE_KEY, STORE_KEY, setup_routes
from .sessions import SqliteSessionStorage, clear_expired_loop

logger = logging.getLogger(__name__)


async def _session_sweeper(app: web.Application):
    interval = app[CONFIG_KEY]["session"]["clear_interval"]
    task = asyncio.create_task(clear_expired_loop(app[SESSION_STORAGE_KEY], interval))
    yield
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


async def _close_stores(app: web.Application) -> None:
    app[STORE_KEY].close()
    app[SESSION_STORAGE_KEY].close()
    logger.info("Credential and session stores closed")


def create_app(config: dict[str, Any] | None = None) -> web.Application:
    """Build the gateway application.

    Args:
        config: Validated configuration (see :func:`gatehouse.config.build_config`).
                Defaults are used when omitted.
    """
    if config is None:
        config = build_config()

    auth_config = config["auth"]
    session_config = config["session"]

    store = CredentialStore(db_path=auth_config["db_path"])
    storage = SqliteSessionStorage(
        auth_config["db_path"],
        session_config["secret"],
        cookie_name=session_config["cookie_name"],
        max_age=session_config["max_age"],
        secure=session_config["secure_cookies"],
    )
    logger.info(f"Credential store initialized: {auth_config['db_path']}")

    app = web.Application(
        middlewares=[
            security_headers,
            cors,
            error_funnel,
            session_middleware(storage),
            restricted_gate(config["restricted_prefix"]),
        ]
    )
    app[CONFIG_KEY] = config
    app[STORE_KEY] = store
    app[SESSION_STORAGE_KEY] = storage

    setup_routes(app)
    app.cleanup_ctx.append(_session_sweeper)
    app.on_cleanup.append(_close_stores)
    return app
