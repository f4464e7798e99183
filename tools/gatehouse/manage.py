#!/usr/bin/env python3
"""CLI management tool for gateway user accounts.

Provides commands to:
- Add users with bcrypt-hashed passwords
- List all users
- Remove users by username (and revoke their sessions)
- Show recent authentication events
"""

import argparse
import getpass
import sqlite3
import sys

from gatehouse.auth.passwords import DEFAULT_ROUNDS, hash_password
from gatehouse.auth.store import DEFAULT_DB_PATH, CredentialStore
from gatehouse.events import DEFAULT_EVENT_LOG, read_events
from gatehouse.sessions import purge_user_sessions


def add_user(args, store: CredentialStore) -> int:
    """Add a new user with optional password prompt."""
    username = args.username

    if args.password is not None:
        password = args.password
    else:
        password = getpass.getpass(f"Password for {username}: ")
        if not password:
            print("Error: Password cannot be empty", file=sys.stderr)
            return 1

    try:
        ids = store.add_new_user(
            {"username": username, "password": hash_password(password, args.rounds)}
        )
    except sqlite3.IntegrityError:
        print(f"Error: Username '{username}' already exists", file=sys.stderr)
        return 1

    print(f"✓ User created: {ids[0]} ({username})")
    return 0


def list_users(args, store: CredentialStore) -> int:
    """List all users."""
    users = store.find()

    if not users:
        print("No users found")
        return 0

    print(f"{'ID':<10} {'Username':<20}")
    print("-" * 30)
    for user in users:
        print(f"{user['id']:<10} {user['username']:<20}")

    return 0


def remove_user(args, store: CredentialStore) -> int:
    """Remove a user by username."""
    username = args.username

    user = store.get_by_username(username)
    if user is None:
        print(f"Error: User '{username}' not found", file=sys.stderr)
        return 1

    if not store.delete_user(user.id):
        print(f"Error: Failed to delete user '{username}'", file=sys.stderr)
        return 1

    revoked = purge_user_sessions(store.db_path, user.username)
    print(f"✓ Removed user {user.id} ({username}), revoked {revoked} session(s)")
    return 0


def show_events(args, store: CredentialStore) -> int:
    """Print the most recent authentication events."""
    events = read_events(args.events_path)
    if args.type:
        events = [e for e in events if e.get("event_type") == args.type]
    events = events[-args.limit:] if args.limit > 0 else events

    if not events:
        print("No events found")
        return 0

    for event in events:
        who = event.get("username") or "-"
        print(f"{event.get('timestamp', '?'):<34} {event.get('event_type', '?'):<18} {who}")
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Manage Gatehouse user accounts")
    parser.add_argument(
        "--db-path",
        default=DEFAULT_DB_PATH,
        help=f"Path to SQLite database (default: {DEFAULT_DB_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    add_parser = subparsers.add_parser("add-user", help="Add a new user")
    add_parser.add_argument("--username", required=True, help="Username")
    add_parser.add_argument("--password", help="Password (prompted if omitted)")
    add_parser.add_argument(
        "--rounds",
        type=int,
        default=DEFAULT_ROUNDS,
        help=f"bcrypt cost factor (default: {DEFAULT_ROUNDS})",
    )

    subparsers.add_parser("list-users", help="List all users")

    remove_parser = subparsers.add_parser("remove-user", help="Remove a user")
    remove_parser.add_argument("--username", required=True, help="Username")

    events_parser = subparsers.add_parser("events", help="Show recent auth events")
    events_parser.add_argument(
        "--events-path",
        default=DEFAULT_EVENT_LOG,
        help=f"Path to the JSONL event log (default: {DEFAULT_EVENT_LOG})",
    )
    events_parser.add_argument("--type", help="Only show this event type")
    events_parser.add_argument("--limit", type=int, default=20, help="Max events (0 = all)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    store = CredentialStore(db_path=args.db_path)

    try:
        if args.command == "add-user":
            return add_user(args, store)
        elif args.command == "list-users":
            return list_users(args, store)
        elif args.command == "remove-user":
            return remove_user(args, store)
        elif args.command == "events":
            return show_events(args, store)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
