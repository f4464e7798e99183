"""Gateway configuration.

Configuration is a JSON file (default ``.gatehouse/config.json``) whose values
are merged over :data:`DEFAULT_CONFIG` and validated with jsonschema::

    {
      "server": {"host": "0.0.0.0", "port": 8080},
      "auth": {"db_path": ".gatehouse/auth.db", "bcrypt_rounds": 14},
      "session": {"secret": "...", "max_age": 3600},
      "restricted_prefix": "/api/restricted"
    }
"""

from __future__ import annotations

import copy
import json
import logging
import secrets
from pathlib import Path
from typing import Any

import jsonschema

from .auth.passwords import DEFAULT_ROUNDS
from .auth.store import DEFAULT_DB_PATH
from .events import DEFAULT_EVENT_LOG
from .sessions import DEFAULT_COOKIE_NAME

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".gatehouse/config.json"

DEFAULT_CONFIG: dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": 8080},
    "auth": {"db_path": DEFAULT_DB_PATH, "bcrypt_rounds": DEFAULT_ROUNDS},
    "session": {
        "secret": "",
        "cookie_name": DEFAULT_COOKIE_NAME,
        "max_age": 3600,
        "secure_cookies": False,
        "clear_interval": 3600,
    },
    "restricted_prefix": "/api/restricted",
    "events": {"path": DEFAULT_EVENT_LOG},
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "server": {
            "type": "object",
            "properties": {
                "host": {"type": "string"},
                "port": {"type": "integer", "minimum": 0, "maximum": 65535},
            },
        },
        "auth": {
            "type": "object",
            "properties": {
                "db_path": {"type": "string", "minLength": 1},
                "bcrypt_rounds": {"type": "integer", "minimum": 4, "maximum": 31},
            },
        },
        "session": {
            "type": "object",
            "properties": {
                "secret": {"type": "string"},
                "cookie_name": {"type": "string", "minLength": 1},
                "max_age": {"type": ["integer", "null"], "minimum": 1},
                "secure_cookies": {"type": "boolean"},
                "clear_interval": {"type": "number", "exclusiveMinimum": 0},
            },
        },
        "restricted_prefix": {"type": "string", "pattern": "^/"},
        "events": {
            "type": "object",
            "properties": {"path": {"type": "string", "minLength": 1}},
        },
    },
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def build_config(overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """Merge ``overrides`` over the defaults and validate the result.

    Raises:
        jsonschema.ValidationError: the merged configuration is invalid.
    """
    config = _merge(DEFAULT_CONFIG, overrides or {})
    jsonschema.validate(config, CONFIG_SCHEMA)

    session = config["session"]
    if not session["secret"]:
        logger.warning(
            "session.secret not configured — using a random secret, sessions will not survive restarts"
        )
        session["secret"] = secrets.token_hex(32)
    elif "CHANGE-ME" in session["secret"]:
        logger.warning("session.secret contains placeholder value — session cookies will be insecure")
    return config


def load_config(config_path: str | Path) -> dict[str, Any]:
    """Load configuration from a JSON file.

    Raises:
        FileNotFoundError: the file does not exist.
        json.JSONDecodeError: the file is not valid JSON.
        jsonschema.ValidationError: the configuration is invalid.
    """
    path = Path(config_path)
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise jsonschema.ValidationError("configuration root must be a JSON object")
    return build_config(data)
