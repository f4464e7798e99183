#!/usr/bin/env python3
"""Tests for the error funnel and the authorization gate helpers."""

import importlib
import sys
import time
from pathlib import Path

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer
from aiohttp_session import Session

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

errors = importlib.import_module("gatehouse.errors")
gates = importlib.import_module("gatehouse.gates")
GatewayError = errors.GatewayError


class TestStatusMapping:
    @pytest.mark.parametrize(
        "kind,status",
        [("h400", 400), ("h401", 401), ("h403", 403), ("h404", 404), ("h409", 409), ("h500", 500)],
    )
    def test_known_kinds(self, kind, status):
        assert errors.status_for(kind) == status

    def test_unknown_kind_is_server_error(self):
        assert errors.status_for("h418") == 500
        assert errors.status_for("") == 500

    def test_message_from_exception(self):
        err = GatewayError(errors.H500, ValueError("boom"))
        assert err.status == 500
        assert err.message == "boom"
        assert err.kind == "h500"

    def test_message_from_string(self):
        err = GatewayError(errors.H401, "Not authorized!")
        assert err.status == 401
        assert err.message == "Not authorized!"


def _funnel_client(handler):
    app = web.Application(middlewares=[errors.error_funnel])
    app.router.add_get("/", handler)
    return TestClient(TestServer(app))


class TestErrorFunnel:
    @pytest.mark.asyncio
    async def test_gateway_error_rendered(self):
        async def handler(request):
            raise GatewayError(errors.H401, "Not authorized!")

        async with _funnel_client(handler) as client:
            resp = await client.get("/")
            assert resp.status == 401
            assert await resp.json() == {"status": 401, "message": "Not authorized!"}

    @pytest.mark.asyncio
    async def test_unknown_kind_rendered_as_500(self):
        async def handler(request):
            raise GatewayError("h418", "teapot")

        async with _funnel_client(handler) as client:
            resp = await client.get("/")
            assert resp.status == 500
            assert await resp.json() == {"status": 500, "message": "teapot"}

    @pytest.mark.asyncio
    async def test_unexpected_exception_rendered_as_500(self):
        async def handler(request):
            raise RuntimeError("kaput")

        async with _funnel_client(handler) as client:
            resp = await client.get("/")
            assert resp.status == 500
            assert await resp.json() == {"status": 500, "message": "kaput"}

    @pytest.mark.asyncio
    async def test_framework_http_error_rendered_as_json(self):
        async def handler(request):
            raise web.HTTPRequestEntityTooLarge(max_size=10, actual_size=20)

        async with _funnel_client(handler) as client:
            resp = await client.get("/")
            assert resp.status == 413
            body = await resp.json()
            assert body["status"] == 413
            assert "10" in body["message"]

    @pytest.mark.asyncio
    async def test_redirect_passes_through(self):
        async def handler(request):
            raise web.HTTPFound("/elsewhere")

        async with _funnel_client(handler) as client:
            resp = await client.get("/", allow_redirects=False)
            assert resp.status == 302
            assert resp.headers["Location"] == "/elsewhere"

    @pytest.mark.asyncio
    async def test_success_passes_through(self):
        async def handler(request):
            return web.json_response({"ok": True})

        async with _funnel_client(handler) as client:
            resp = await client.get("/")
            assert resp.status == 200
            assert await resp.json() == {"ok": True}


class TestGateHelpers:
    def test_no_session(self):
        assert gates.is_authenticated(None) is False

    def test_empty_session(self):
        assert gates.is_authenticated(Session(None, data=None, new=True)) is False

    def test_session_with_username(self):
        session = Session(
            "sid", data={"created": int(time.time()), "session": {"username": "owl"}}, new=False
        )
        assert gates.is_authenticated(session) is True

    def test_session_with_blank_username(self):
        session = Session(
            "sid", data={"created": int(time.time()), "session": {"username": ""}}, new=False
        )
        assert gates.is_authenticated(session) is False

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/api/restricted", True),
            ("/api/restricted/", True),
            ("/api/restricted/users", True),
            ("/api/restrictedusers", False),
            ("/api/users", False),
            ("/", False),
        ],
    )
    def test_path_is_restricted(self, path, expected):
        assert gates.path_is_restricted(path, "/api/restricted") is expected

    def test_trailing_slash_prefix(self):
        assert gates.path_is_restricted("/api/restricted/users", "/api/restricted/") is True

    def test_protected_keeps_handler_name(self):
        async def list_things(request):
            return None

        assert gates.protected(list_things).__name__ == "list_things"
