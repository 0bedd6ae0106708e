#!/usr/bin/env python3
"""
User management -- command-line administration.

The HTTP API only lets an admin create accounts, so the very first admin has
to come from somewhere. This CLI writes directly to the configured database.

Usage:
  python main.py create-user --email root@example.com --first-name Root --last-name Admin --role super_admin
  python main.py create-user --email ada@example.com --first-name Ada --last-name Lovelace --org-id 3

Environment variables (see core/config.py):
  DATABASE_URL   SQLAlchemy URL of the database (default: ./usermgmt.db)
  SECRET_KEY     Required unless DEBUG=true
  BCRYPT_ROUNDS  bcrypt work factor for the new password hash (default: 12)
"""

import argparse
import getpass
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import Role, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from core.config import get_settings
from orgs.store import OrganizationStore

_MIN_PASSWORD_LENGTH = 8


def _read_password(given: Optional[str]) -> Optional[str]:
    """Return the password from --password or an interactive prompt (typed twice)."""
    if given is not None:
        return given
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    return first


def create_user(args: argparse.Namespace) -> int:
    """Create an account and print its id. Returns the process exit code."""
    password = _read_password(args.password)
    if password is None:
        return 1
    if len(password) < _MIN_PASSWORD_LENGTH:
        print(f"  [!] Password must be at least {_MIN_PASSWORD_LENGTH} characters.")
        return 1

    settings = get_settings()
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    try:
        hashed = hasher.hash(password)
    except ValueError as e:
        print(f"  [!] {e}")
        return 1

    user_store = UserStore(settings.database_url)
    try:
        if args.org_id is not None:
            org_store = OrganizationStore(settings.database_url)
            try:
                if org_store.get_by_id(args.org_id) is None:
                    print(f"  [!] Organization {args.org_id} does not exist.")
                    return 1
            finally:
                org_store.close()

        user = User(
            email=args.email,
            first_name=args.first_name,
            last_name=args.last_name,
            role=Role(args.role),
            hashed_password=hashed,
            organization_id=args.org_id,
        )
        try:
            user_id = user_store.create_user(user)
        except IntegrityError:
            print(f"  [!] A user with email '{args.email}' already exists.")
            return 1
    finally:
        user_store.close()

    print(f"  Created {args.role} '{args.email}' (id {user_id}).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usermgmt",
        description="Administer the user management database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-user --email root@example.com --first-name Root --last-name Admin --role super_admin
  DEBUG=true python main.py create-user --email dev@example.com --first-name Dev --last-name User
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create a user account")
    create.add_argument("--email", required=True, help="Login email (stored and matched exactly)")
    create.add_argument("--first-name", required=True)
    create.add_argument("--last-name", required=True)
    create.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.USER.value,
        help="Account role (default: user)",
    )
    create.add_argument("--org-id", type=int, default=None, metavar="ID", help="Existing organization to join")
    create.add_argument(
        "--password",
        default=None,
        help="Password (prompted for when omitted; avoid passing it on the command line)",
    )
    create.set_defaults(handler=create_user)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
