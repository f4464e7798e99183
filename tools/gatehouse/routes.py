"""HTTP route handlers.

Every handler either returns a response or raises :class:`GatewayError`;
none of them formats an error body.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from typing import Any

from aiohttp import web
from aiohttp_session import get_session

from .auth.passwords import burn_dummy_check, check_password, hash_password
from .auth.store import CredentialStore
from .errors import H400, H401, H404, H500, GatewayError
from .events import log_event
from .gates import protected
from .sessions import SqliteSessionStorage

logger = logging.getLogger(__name__)

STORE_KEY = web.AppKey("store", CredentialStore)
SESSION_STORAGE_KEY = web.AppKey("session_storage", SqliteSessionStorage)
CONFIG_KEY = web.AppKey("config", dict)

WELCOME_MESSAGE = "Welcome home. Country roads."
BAD_CREDENTIALS = "You shall not pass!"


async def read_credentials(request: web.Request) -> dict[str, Any]:
    """Parse the JSON body. A missing body reads as ``{}``."""
    if not request.can_read_body:
        return {}
    raw = await request.read()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw.decode(request.charset or "utf-8"))
    except (UnicodeDecodeError, LookupError):
        raise GatewayError(H400, "Request body is not valid text")
    except json.JSONDecodeError as e:
        raise GatewayError(H400, f"Malformed JSON body: {e.msg}")
    if not isinstance(body, dict):
        raise GatewayError(H400, "Request body must be a JSON object")
    return body


def _events_path(request: web.Request) -> str:
    return request.app[CONFIG_KEY]["events"]["path"]


async def register(request: web.Request) -> web.Response:
    credentials = await read_credentials(request)
    store = request.app[STORE_KEY]
    rounds = request.app[CONFIG_KEY]["auth"]["bcrypt_rounds"]

    try:
        credentials["password"] = await asyncio.to_thread(
            hash_password, credentials.get("password"), rounds
        )
        ids = store.add_new_user(credentials)
    except (TypeError, ValueError, sqlite3.Error) as e:
        log_event(
            "register_failed",
            path=_events_path(request),
            username=credentials.get("username"),
            error=str(e),
            remote=request.remote,
        )
        raise GatewayError(H500, e) from e

    session = await get_session(request)
    session["username"] = credentials.get("username")
    log_event(
        "register_success",
        path=_events_path(request),
        user_id=ids[0],
        username=credentials.get("username"),
        remote=request.remote,
    )
    return web.json_response({"newUserId": ids[0]}, status=201)


async def login(request: web.Request) -> web.Response:
    credentials = await read_credentials(request)
    store = request.app[STORE_KEY]
    password = credentials.get("password")

    try:
        user = store.auth_user(credentials)
    except sqlite3.Error as e:
        raise GatewayError(H500, e) from e

    if user is None:
        await asyncio.to_thread(burn_dummy_check, password)
        matched = False
    else:
        matched = await asyncio.to_thread(check_password, password, user.password)

    if not matched:
        log_event(
            "login_failed",
            path=_events_path(request),
            username=credentials.get("username"),
            remote=request.remote,
        )
        raise GatewayError(H401, BAD_CREDENTIALS)

    session = await get_session(request)
    session["username"] = user.username
    log_event(
        "login_success",
        path=_events_path(request),
        user_id=user.id,
        username=user.username,
        remote=request.remote,
    )
    return web.json_response({"message": WELCOME_MESSAGE})


async def logout(request: web.Request) -> web.Response:
    session = await get_session(request)
    storage = request.app[SESSION_STORAGE_KEY]
    if session.new:
        # Stale or expired cookie: nothing stored, but clear it client-side.
        if storage.load_cookie(request):
            session.invalidate()
    else:
        try:
            storage.destroy(session.identity)
        except sqlite3.Error as e:
            raise GatewayError(H500, e) from e
        username = session.get("username")
        session.invalidate()
        log_event(
            "logout",
            path=_events_path(request),
            username=username,
            remote=request.remote,
        )
    return web.json_response({"message": "logged out"})


def _list_users(request: web.Request) -> web.Response:
    try:
        users = request.app[STORE_KEY].find()
    except sqlite3.Error as e:
        raise GatewayError(H500, e) from e
    return web.json_response(users)


@protected
async def list_users(request: web.Request) -> web.Response:
    return _list_users(request)


async def list_restricted_users(request: web.Request) -> web.Response:
    return _list_users(request)


async def not_found(request: web.Request) -> web.Response:
    raise GatewayError(H404, f"The requested path '{request.path_qs}' doesn't exist.")


def setup_routes(app: web.Application) -> None:
    app.router.add_post("/api/register", register)
    app.router.add_post("/api/login", login)
    app.router.add_get("/api/logout", logout)
    app.router.add_get("/api/users", list_users)
    app.router.add_get("/api/restricted/users", list_restricted_users)
    # Must stay last: matches every method and path not routed above.
    app.router.add_route("*", "/{tail:.*}", not_found)
