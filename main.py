#!/usr/bin/env python3
"""
Edonis -- management commands for the learning portal.

Usage:
  python main.py migrate
  python main.py migrate --revision 002
  python main.py rollback --revision 002
  python main.py seed-roles
  python main.py create-user --email ada@edonis.io --full-name "Ada Lovelace" --role teacher

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the portal database (default: edonis.db beside the code).
  SECRET_KEY    Required unless DEBUG=true. Not used by these commands, but
                settings validation runs on import.
"""

import argparse
import getpass
import sys

from auth.accounts import DuplicateAccountError, register_account
from auth.roles import DEFAULT_ROLE, SYSTEM_ROLES
from auth.schema import create_db_engine, current_revision, downgrade_schema, upgrade_schema
from auth.store import UserStore
from auth.validators import ValidationFailure, validate_registration
from core.config import get_settings

_ROLE_SLUGS = [r["slug"] for r in SYSTEM_ROLES]


def _cmd_migrate(args: argparse.Namespace) -> int:
    engine = create_db_engine(get_settings().database_url)
    try:
        upgrade_schema(engine, args.revision)
        print(f"  Schema at revision {current_revision(engine)}.")
    finally:
        engine.dispose()
    return 0


def _cmd_rollback(args: argparse.Namespace) -> int:
    engine = create_db_engine(get_settings().database_url)
    try:
        downgrade_schema(engine, args.revision)
        print(f"  Schema at revision {current_revision(engine) or 'base'}.")
    finally:
        engine.dispose()
    return 0


def _cmd_seed_roles(args: argparse.Namespace) -> int:
    store = UserStore()
    try:
        count = store.seed_roles()
    finally:
        store.close()
    print(f"  {count} system roles written.")
    return 0


def _cmd_create_user(args: argparse.Namespace) -> int:
    """Create an account through the same validation as the registration form."""
    password = getpass.getpass("Password: ")
    confirmation = getpass.getpass("Confirm password: ")
    try:
        registration = validate_registration(
            {
                "fullName": args.full_name,
                "email": args.email,
                "password": password,
                "passwordConfirmation": confirmation,
            }
        )
    except ValidationFailure as exc:
        for field, messages in exc.messages_by_field().items():
            for message in messages:
                print(f"  [!] {field}: {message}")
        return 1

    store = UserStore()
    try:
        store.seed_roles()
        user = register_account(store, registration)
        if args.role != DEFAULT_ROLE:
            store.assign_role(user.id, args.role)
    except DuplicateAccountError:
        print(f"  [!] An account for {registration.email} already exists.")
        return 1
    finally:
        store.close()
    print(f"  Created user {user.id} <{user.email}> with role {args.role}.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="edonis",
        description="Management commands for the Edonis learning portal.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py migrate
  python main.py rollback --revision 002
  python main.py create-user --email ada@edonis.io --full-name "Ada Lovelace" --role admin
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_migrate = sub.add_parser("migrate", help="Apply pending schema revisions")
    p_migrate.add_argument("--revision", default="head", help="Target revision (default: head)")
    p_migrate.set_defaults(func=_cmd_migrate)

    p_rollback = sub.add_parser("rollback", help="Revert schema revisions")
    p_rollback.add_argument(
        "--revision",
        required=True,
        help='Revision to step back to, e.g. "002" or "base" to drop everything',
    )
    p_rollback.set_defaults(func=_cmd_rollback)

    p_seed = sub.add_parser("seed-roles", help="Create or update the system roles")
    p_seed.set_defaults(func=_cmd_seed_roles)

    p_user = sub.add_parser("create-user", help="Create an account (password is prompted)")
    p_user.add_argument("--email", required=True)
    p_user.add_argument("--full-name", required=True)
    p_user.add_argument("--role", choices=_ROLE_SLUGS, default=DEFAULT_ROLE)
    p_user.set_defaults(func=_cmd_create_user)

    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
