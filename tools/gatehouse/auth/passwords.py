"""bcrypt password hashing helpers.

Hashing is deliberately slow; callers on the event loop should run these
through ``asyncio.to_thread``.
"""

import bcrypt

# bcrypt cost factor used when the configuration does not override it.
DEFAULT_ROUNDS = 14

_DUMMY_HASH = bcrypt.hashpw(b"dummy", bcrypt.gensalt(4)).decode("utf-8")


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of ``password``.

    Raises:
        TypeError: ``password`` is not a string.
        ValueError: ``rounds`` is out of range, or bcrypt rejects the input.
    """
    if not isinstance(password, str):
        raise TypeError("password must be a string")
    return bcrypt.hashpw(
        password.encode("utf-8"), bcrypt.gensalt(rounds)
    ).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    """Compare a plaintext password with a stored bcrypt hash."""
    if not isinstance(password, str) or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def burn_dummy_check(password) -> None:
    """Run a comparison against a throwaway hash.

    Used for unknown usernames so the response time does not reveal
    whether the account exists.
    """
    candidate = password if isinstance(password, str) else ""
    try:
        bcrypt.checkpw(candidate.encode("utf-8"), _DUMMY_HASH.encode("utf-8"))
    except ValueError:
        pass
