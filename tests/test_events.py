#!/usr/bin/env python3

import importlib
import json
import sys
from pathlib import Path


sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

events = importlib.import_module("gatehouse.events")


def test_default_path_is_under_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert events.event_log_path() == tmp_path / ".gatehouse/auth-events.jsonl"


def test_log_event_writes_jsonl(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    events.log_event("login_success", user_id=1, username="owl")

    event_file = tmp_path / ".gatehouse/auth-events.jsonl"
    assert event_file.exists()

    lines = event_file.read_text().strip().splitlines()
    assert len(lines) == 1

    payload = json.loads(lines[0])
    assert payload["event_type"] == "login_success"
    assert payload["user_id"] == 1
    assert payload["username"] == "owl"
    assert "timestamp" in payload


def test_explicit_path_and_read_back(tmp_path):
    path = tmp_path / "logs" / "events.jsonl"
    events.log_event("register_success", path=path, username="owl")
    events.log_event("logout", path=path, username="owl")

    loaded = events.read_events(path)
    assert [e["event_type"] for e in loaded] == ["register_success", "logout"]


def test_read_skips_bad_lines(tmp_path):
    path = tmp_path / "events.jsonl"
    path.write_text('{"event_type": "logout"}\nnot json\n\n')
    assert events.read_events(path) == [{"event_type": "logout"}]


def test_read_missing_file(tmp_path):
    assert events.read_events(tmp_path / "absent.jsonl") == []


def test_unwritable_path_is_ignored(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")
    events.log_event("logout", path=blocker / "events.jsonl")
