#!/usr/bin/env python3
"""Provision an admin account.

Creates the first super-admin for a fresh deployment, or any further
account when --force is given. Afterwards, accounts are managed through
the /api/admins routes.

Usage:
    python scripts/create_admin.py --username campadmin --display-name "Store Owner"
    python scripts/create_admin.py --username editor01 --role editor --force

The password is read from ADMIN_PASSWORD or prompted for.
DATABASE_URL and JWT_SECRET_KEY are read from the environment / .env.
"""

import argparse
import asyncio
import getpass
import os
import sys

MIN_PASSWORD_LENGTH = 8


def _read_password() -> str:
    password = os.environ.get("ADMIN_PASSWORD")
    if password:
        return password
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        print("ERROR: passwords do not match.")
        sys.exit(1)
    return password


async def create_admin(
    username: str,
    password: str,
    display_name: str,
    role: str,
    force: bool,
) -> int:
    # Imported late so --help works without a configured environment
    from campadmin.core import async_session_maker
    from campadmin.models.admin_user import AdminRole
    from campadmin.services.admin import AdminService, UsernameTakenError

    async with async_session_maker() as session:
        service = AdminService(session)

        existing = await service.count()
        if existing and not force:
            print(f"ERROR: {existing} admin account(s) already exist. Use --force to add another.")
            return 1

        try:
            user = await service.create(
                username=username,
                password=password,
                display_name=display_name,
                role=AdminRole(role),
            )
        except UsernameTakenError as e:
            print(f"ERROR: {e}")
            return 1

    print(f"Created {user.role} '{user.username}' (id: {user.id})")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Create a campadmin admin account")
    parser.add_argument("--username", required=True, help="Login name (6-50 chars)")
    parser.add_argument("--display-name", help="Name shown in the back office")
    parser.add_argument(
        "--role",
        default="super-admin",
        choices=["super-admin", "admin", "editor"],
        help="Role of the new account (default: super-admin)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Create the account even if other admins already exist",
    )
    args = parser.parse_args()

    if len(args.username) < 6:
        print("ERROR: username must be at least 6 characters.")
        sys.exit(1)

    password = _read_password()
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"ERROR: password must be at least {MIN_PASSWORD_LENGTH} characters.")
        sys.exit(1)

    sys.exit(
        asyncio.run(
            create_admin(
                username=args.username,
                password=password,
                display_name=args.display_name or args.username,
                role=args.role,
                force=args.force,
            )
        )
    )


if __name__ == "__main__":
    main()
