"""
Gatehouse — Session-Backed Authentication Gateway

Registers users, checks credentials, and keeps the caller's identity in a
server-side session.

Architecture:
    request → security headers → CORS → error funnel → session → restricted gate → route

Components:
    - CredentialStore: SQLite user table (add_new_user, auth_user, find)
    - passwords: bcrypt hash / compare
    - SqliteSessionStorage: aiohttp_session storage with signed session-id cookies
    - gates: per-route ``protected`` decorator and prefix-based ``restricted_gate``
    - error_funnel: maps GatewayError kinds (h401, h404, h500, ...) to JSON responses

Usage:
    from aiohttp import web
    from gatehouse.app import create_app
    from gatehouse.config import load_config

    web.run_app(create_app(load_config(".gatehouse/config.json")))
"""

__version__ = "0.1.0"

from .errors import GatewayError, status_for
from .gates import is_authenticated, protected, restricted_gate

__all__ = [
    "GatewayError",
    "status_for",
    "is_authenticated",
    "protected",
    "restricted_gate",
]
