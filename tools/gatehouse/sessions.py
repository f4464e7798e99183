"""Server-side session storage for aiohttp_session.

Session contents live in a ``sessions`` table; the cookie only carries a
signed session id (see :mod:`gatehouse.auth.tokens`).
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
import uuid
from pathlib import Path

from aiohttp import web
from aiohttp_session import AbstractStorage, Session

from .auth import tokens

logger = logging.getLogger(__name__)

DEFAULT_COOKIE_NAME = "gatehouse_sid"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    sid TEXT PRIMARY KEY,
    sess TEXT NOT NULL,
    expires INTEGER
);
"""


class SqliteSessionStorage(AbstractStorage):
    """aiohttp_session storage keeping session data in SQLite.

    Args:
        db_path: SQLite database file (may be shared with the credential store).
        secret: Key used to sign the session-id cookie.
        cookie_name: Name of the session cookie.
        max_age: Session lifetime in seconds, applied to both the cookie and
                 the stored row. ``None`` keeps sessions until logout.
        secure: Set the ``Secure`` cookie flag.
    """

    def __init__(
        self,
        db_path: str,
        secret: str,
        *,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        max_age: int | None = 3600,
        secure: bool = False,
    ) -> None:
        super().__init__(
            cookie_name=cookie_name,
            max_age=max_age,
            secure=secure,
            httponly=True,
            samesite="Lax",
        )
        self._secret = secret
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)

    def _new(self) -> Session:
        return Session(None, data=None, new=True, max_age=self.max_age)

    async def load_session(self, request: web.Request) -> Session:
        cookie = self.load_cookie(request)
        if not cookie:
            return self._new()

        sid = tokens.verify_session_token(cookie, self._secret)
        if sid is None:
            logger.debug("Rejected session cookie with bad signature or expiry")
            return self._new()

        row = self._conn.execute(
            "SELECT sess FROM sessions WHERE sid = ? AND (expires IS NULL OR expires > ?)",
            (sid, int(time.time())),
        ).fetchone()
        if row is None:
            return self._new()

        try:
            data = self._decoder(row["sess"])
        except ValueError:
            data = None
        return Session(sid, data=data, new=False, max_age=self.max_age)

    async def save_session(
        self, request: web.Request, response: web.StreamResponse, session: Session
    ) -> None:
        sid = session.identity
        if session.empty:
            if sid is not None:
                self.destroy(sid)
            self.save_cookie(response, "", max_age=session.max_age)
            return

        if sid is None:
            sid = uuid.uuid4().hex
        expires = None
        if session.max_age is not None:
            expires = int(time.time()) + session.max_age

        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO sessions (sid, sess, expires) VALUES (?, ?, ?)",
                (sid, self._encoder(self._get_session_data(session)), expires),
            )
        token = tokens.create_session_token(sid, self._secret, session.max_age)
        self.save_cookie(response, token, max_age=session.max_age)

    def destroy(self, sid: str) -> bool:
        """Delete the stored session. Returns True if a row was removed."""
        with self._conn:
            cur = self._conn.execute("DELETE FROM sessions WHERE sid = ?", (sid,))
        return cur.rowcount > 0

    def clear_expired(self) -> int:
        """Delete expired rows and return how many were removed."""
        with self._conn:
            cur = self._conn.execute(
                "DELETE FROM sessions WHERE expires IS NOT NULL AND expires <= ?",
                (int(time.time()),),
            )
        return cur.rowcount

    def close(self) -> None:
        self._conn.close()


def purge_user_sessions(db_path: str, username: str) -> int:
    """Delete every stored session logged in as ``username``.

    Used when an account is removed, so its live sessions stop
    authenticating immediately. Returns the number of rows removed.
    """
    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(_SCHEMA)
        with conn:
            cur = conn.execute(
                "DELETE FROM sessions"
                " WHERE CAST(json_extract(sess, '$.session.username') AS TEXT) = ?",
                (username,),
            )
        return cur.rowcount
    finally:
        conn.close()


async def clear_expired_loop(storage: SqliteSessionStorage, interval: float) -> None:
    """Background task: periodically purge expired sessions."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = storage.clear_expired()
            if removed:
                logger.info(f"Cleared {removed} expired session(s)")
        except sqlite3.Error as e:
            logger.error(f"Session sweep failed: {e}")
