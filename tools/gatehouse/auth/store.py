"""SQLite-backed credential store."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

DEFAULT_DB_PATH = ".gatehouse/auth.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT UNIQUE NOT NULL,
    password TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


@dataclass
class User:
    """Stored user record. ``password`` is the bcrypt hash."""

    id: int
    username: str
    password: str
    created_at: datetime


class CredentialStore:
    """SQLite user table keyed by username.

    The store never hashes anything itself: callers hand it credentials whose
    ``password`` is already a hash. Username uniqueness is enforced by the
    table constraint, so a duplicate insert raises ``sqlite3.IntegrityError``.

    Args:
        db_path: Path to SQLite database file. Parent directories are created
                 automatically. Defaults to ".gatehouse/auth.db".
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    @property
    def db_path(self) -> str:
        return self._db_path

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            password=row["password"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def add_new_user(self, credentials: dict[str, Any]) -> list[int]:
        """Insert ``{username, password}`` and return ``[new_id]``.

        ``credentials["password"]`` must already be hashed.
        """
        now = datetime.now(timezone.utc).isoformat()
        with self._conn:
            cur = self._conn.execute(
                "INSERT INTO users (username, password, created_at) VALUES (?, ?, ?)",
                (credentials.get("username"), credentials.get("password"), now),
            )
        return [cur.lastrowid]

    def auth_user(self, credentials: dict[str, Any]) -> Optional[User]:
        """Look up the full record (hash included) for ``credentials["username"]``."""
        return self.get_by_username(credentials.get("username"))

    def get_by_username(self, username: Any) -> Optional[User]:
        """Look up by username.

        Non-string values are compared through the column's TEXT affinity, the
        same way they were stored, so ``123`` finds ``'123'``. Values sqlite3
        cannot bind raise ``sqlite3.Error``.
        """
        row = self._conn.execute(
            "SELECT * FROM users WHERE username = ?", (username,)
        ).fetchone()
        return self._row_to_user(row) if row else None

    def find(self) -> list[dict[str, Any]]:
        """Return every user as ``{id, username}`` ordered by id."""
        rows = self._conn.execute(
            "SELECT id, username FROM users ORDER BY id"
        ).fetchall()
        return [{"id": r["id"], "username": r["username"]} for r in rows]

    def delete_user(self, user_id: int) -> bool:
        """Remove a user by ID. Returns True if a row was deleted."""
        with self._conn:
            cur = self._conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        return cur.rowcount > 0

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
