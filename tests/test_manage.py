#!/usr/bin/env python3
"""Tests for the gatehouse-manage CLI."""

import importlib
import sys
from pathlib import Path

import pytest
from aiohttp import web
from aiohttp.test_utils import make_mocked_request

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

manage = importlib.import_module("gatehouse.manage")
events = importlib.import_module("gatehouse.events")
CredentialStore = importlib.import_module("gatehouse.auth.store").CredentialStore
check_password = importlib.import_module("gatehouse.auth.passwords").check_password
SqliteSessionStorage = importlib.import_module("gatehouse.sessions").SqliteSessionStorage


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "auth.db")


def run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["gatehouse-manage", *argv])
    return manage.main()


def test_no_command_prints_help(monkeypatch, capsys):
    assert run(monkeypatch) == 1
    assert "usage" in capsys.readouterr().out.lower()


def test_add_user(monkeypatch, capsys, db_path):
    code = run(
        monkeypatch, "--db-path", db_path, "add-user",
        "--username", "owl", "--password", "hunter22", "--rounds", "4",
    )
    assert code == 0
    assert "User created: 1 (owl)" in capsys.readouterr().out

    store = CredentialStore(db_path)
    try:
        user = store.auth_user({"username": "owl"})
        assert user.password != "hunter22"
        assert check_password("hunter22", user.password)
    finally:
        store.close()


def test_add_user_prompts_for_password(monkeypatch, db_path):
    monkeypatch.setattr(manage.getpass, "getpass", lambda prompt: "prompted")
    code = run(monkeypatch, "--db-path", db_path, "add-user", "--username", "owl", "--rounds", "4")
    assert code == 0


def test_add_user_empty_prompt_rejected(monkeypatch, capsys, db_path):
    monkeypatch.setattr(manage.getpass, "getpass", lambda prompt: "")
    code = run(monkeypatch, "--db-path", db_path, "add-user", "--username", "owl", "--rounds", "4")
    assert code == 1
    assert "Password cannot be empty" in capsys.readouterr().err


def test_add_duplicate_user(monkeypatch, capsys, db_path):
    args = ("--db-path", db_path, "add-user", "--username", "owl", "--password", "x", "--rounds", "4")
    assert run(monkeypatch, *args) == 0
    assert run(monkeypatch, *args) == 1
    assert "already exists" in capsys.readouterr().err


def test_list_users(monkeypatch, capsys, db_path):
    assert run(monkeypatch, "--db-path", db_path, "list-users") == 0
    assert "No users found" in capsys.readouterr().out

    run(monkeypatch, "--db-path", db_path, "add-user", "--username", "owl", "--password", "x", "--rounds", "4")
    capsys.readouterr()
    assert run(monkeypatch, "--db-path", db_path, "list-users") == 0
    out = capsys.readouterr().out
    assert "owl" in out
    assert "$2" not in out


def test_remove_user(monkeypatch, capsys, db_path):
    run(monkeypatch, "--db-path", db_path, "add-user", "--username", "owl", "--password", "x", "--rounds", "4")
    assert run(monkeypatch, "--db-path", db_path, "remove-user", "--username", "owl") == 0
    assert run(monkeypatch, "--db-path", db_path, "remove-user", "--username", "owl") == 1
    assert "not found" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_remove_user_revokes_sessions(monkeypatch, capsys, db_path):
    run(monkeypatch, "--db-path", db_path, "add-user", "--username", "owl", "--password", "x", "--rounds", "4")

    storage = SqliteSessionStorage(db_path, "manage-test-secret-0123456789abcdef0123")
    try:
        session = await storage.load_session(make_mocked_request("GET", "/"))
        session["username"] = "owl"
        response = web.Response()
        await storage.save_session(make_mocked_request("GET", "/"), response, session)
        cookie = response.cookies["gatehouse_sid"].value

        assert run(monkeypatch, "--db-path", db_path, "remove-user", "--username", "owl") == 0
        assert "revoked 1 session(s)" in capsys.readouterr().out

        request = make_mocked_request("GET", "/", headers={"Cookie": f"gatehouse_sid={cookie}"})
        assert (await storage.load_session(request)).new is True
    finally:
        storage.close()


def test_events(monkeypatch, capsys, tmp_path, db_path):
    path = tmp_path / "events.jsonl"
    events.log_event("login_failed", path=path, username="ghost")
    events.log_event("login_success", path=path, username="owl")

    assert run(monkeypatch, "--db-path", db_path, "events", "--events-path", str(path)) == 0
    out = capsys.readouterr().out
    assert "login_failed" in out and "owl" in out

    assert run(
        monkeypatch, "--db-path", db_path, "events", "--events-path", str(path), "--type", "login_success"
    ) == 0
    out = capsys.readouterr().out
    assert "login_failed" not in out
