#!/usr/bin/env python3
"""
POS Auth -- staff account administration for the point-of-sale terminal.

Usage:
  python main.py init
  python main.py login alice
  python main.py create-user bob --role cashier --as admin
  python main.py change-password alice
  python main.py check alice view_reports
  python main.py list-users

Passwords are always prompted for, never taken from the command line.

Environment variables (see core/config.py):
  DATABASE_URL              Async SQLAlchemy URL (default: SQLite file in auth/)
  BCRYPT_ROUNDS             bcrypt cost factor (default: 12)
  DEFAULT_ADMIN_USERNAME    Bootstrap admin username (default: admin)
  DEFAULT_ADMIN_PASSWORD    Bootstrap admin password (default: admin123)
"""

import argparse
import asyncio
import getpass
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.passwords import BcryptHasher
from auth.permissions import Permission, Role, permissions_for
from auth.repository import AuthRepository
from auth.results import Failure, LoginSuccess, PasswordChanged, UserCreated
from auth.store import UserStore
from core.config import get_settings

logger = logging.getLogger("posauth.cli")


def _read_password(prompt: str) -> str:
    return getpass.getpass(prompt)


async def _authenticate(repo: AuthRepository, username: str) -> Optional[int]:
    """Prompt for username's password and return the user id, or None on failure."""
    result = await repo.login(username, _read_password(f"Password for {username}: "))
    if isinstance(result, Failure):
        print(f"  [!] {result.message}")
        return None
    return result.user.id


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        await store.init()
        repo = AuthRepository(store, BcryptHasher(settings.bcrypt_rounds))

        if args.command == "init":
            try:
                await repo.initialize_default_user()
            except IntegrityError:
                print(
                    f"  [!] No active admin exists and the username {settings.default_admin_username!r} is taken. "
                    "Set DEFAULT_ADMIN_USERNAME to a free username and run init again."
                )
                return 1
            print("Database ready.")
            return 0

        if args.command == "login":
            result = await repo.login(args.username, _read_password("Password: "))
            if isinstance(result, LoginSuccess):
                print(f"Welcome, {result.user.username} ({result.user.role.value}).")
                return 0
            print(f"  [!] {result.message}")
            return 1

        if args.command == "create-user":
            actor_id = await _authenticate(repo, args.acting_user)
            if actor_id is None:
                return 1
            created = await repo.create_user(
                actor_id, args.username, _read_password(f"New password for {args.username}: "), Role(args.role)
            )
            if isinstance(created, UserCreated):
                print(f"Created user {args.username!r} (id={created.user_id}).")
                return 0
            print(f"  [!] {created.message}")
            return 1

        if args.command == "change-password":
            user_id = await _authenticate(repo, args.username)
            if user_id is None:
                return 1
            changed = await repo.change_password(
                user_id, _read_password("Current password: "), _read_password("New password: ")
            )
            if isinstance(changed, PasswordChanged):
                print("Password changed.")
                return 0
            print(f"  [!] {changed.message}")
            return 1

        if args.command == "check":
            user = await store.get_by_username(args.username)
            allowed = await repo.has_permission(user.id if user else None, Permission(args.permission))
            print("yes" if allowed else "no")
            return 0 if allowed else 1

        if args.command == "list-users":
            for user in await store.list_users():
                status = "active" if user.is_active else "inactive"
                last = user.last_login_at.isoformat() if user.last_login_at else "never"
                perms = ", ".join(sorted(p.value for p in permissions_for(user.role)))
                print(f"  {user.id:>4}  {user.username:<20} {user.role.value:<8} {status:<8} last login: {last}")
                print(f"        {perms}")
            return 0
    finally:
        await store.close()

    return 2


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="pos-auth",
        description="Staff account administration for the POS terminal.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py init
  python main.py create-user bob --role cashier --as admin
  python main.py check bob view_reports
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    sub.add_parser("init", help="Create the schema and the default admin account if none exists")

    login = sub.add_parser("login", help="Verify a username and password")
    login.add_argument("username")

    create = sub.add_parser("create-user", help="Create a staff account (admin only)")
    create.add_argument("username")
    create.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.CASHIER.value,
        help="Role for the new account (default: cashier)",
    )
    create.add_argument(
        "--as",
        dest="acting_user",
        required=True,
        metavar="ADMIN",
        help="Username of the administrator performing the change",
    )

    change = sub.add_parser("change-password", help="Change your own password")
    change.add_argument("username")

    check = sub.add_parser("check", help="Check whether a user holds a permission")
    check.add_argument("username")
    check.add_argument("permission", choices=[p.value for p in Permission])

    sub.add_parser("list-users", help="List all accounts with their permissions")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else settings.log_level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.debug("Using database %s", settings.database_url)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
