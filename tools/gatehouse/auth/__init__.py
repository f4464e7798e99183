"""
Gatehouse Auth — credential storage, password hashing and session tokens.

Usage:
    from gatehouse.auth.store import CredentialStore
    from gatehouse.auth.passwords import hash_password, check_password

    store = CredentialStore(db_path=".gatehouse/auth.db")
    ids = store.add_new_user({"username": "owl", "password": hash_password("pw")})
    user = store.auth_user({"username": "owl"})
    check_password("pw", user.password)  # True
"""

from .passwords import DEFAULT_ROUNDS, check_password, hash_password
from .store import CredentialStore, User

__all__ = [
    "CredentialStore",
    "User",
    "DEFAULT_ROUNDS",
    "hash_password",
    "check_password",
]
