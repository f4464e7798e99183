"""Signed session-id cookie values.

Uses PyJWT with HS256 algorithm for signing.
Tokens carry only the session id and an expiry timestamp; the session
contents stay server-side.
"""

from datetime import datetime, timedelta, timezone

import jwt


def create_session_token(session_id: str, secret: str, max_age: int | None = None) -> str:
    """Create a signed token wrapping a session id.

    Args:
        session_id: Server-side session identifier.
        secret: Secret key used for HS256 signing.
        max_age: Token validity in seconds. ``None`` means no expiry.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(timezone.utc)
    payload = {"sid": session_id, "iat": now}
    if max_age is not None:
        payload["exp"] = now + timedelta(seconds=max_age)
    return jwt.encode(payload, secret, algorithm="HS256")


def verify_session_token(token: str, secret: str) -> str | None:
    """Verify a session token and extract the session id.

    Returns:
        The session id, or ``None`` if the token is expired, malformed,
        or has an invalid signature.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=["HS256"])
        return str(payload["sid"])
    except (jwt.InvalidTokenError, KeyError):
        return None
