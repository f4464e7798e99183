from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

DEFAULT_EVENT_LOG = ".gatehouse/auth-events.jsonl"


def event_log_path(path: str | Path | None = None) -> Path:
    if path:
        return Path(path)
    return Path.cwd() / DEFAULT_EVENT_LOG


def log_event(event_type: str, *, path: str | Path | None = None, **details: Any) -> None:
    try:
        file_path = event_log_path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            **details,
        }
        with file_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=True, default=str) + "\n")
    except OSError:
        pass


def read_events(path: str | Path | None = None) -> list[dict[str, Any]]:
    file_path = event_log_path(path)
    if not file_path.exists():
        return []
    events = []
    with file_path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
    return events
