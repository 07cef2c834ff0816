#!/usr/bin/env python3
"""
User management CLI for the Course Marketplace.

Usage:
    python scripts/manage_users.py create <email> <password> <name> [--admin] [--language es]
    python scripts/manage_users.py list
    python scripts/manage_users.py set-role <email> <user|admin>
    python scripts/manage_users.py delete <email> [--yes]
"""
import argparse
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.application.services import AuthService  # noqa: E402
from app.database import get_db, init_db  # noqa: E402
from app.errors import AppError  # noqa: E402
from app.infrastructure.repositories import SessionRepository, UserRepository  # noqa: E402

ROLES = ("user", "admin")


def cmd_create(args, users: UserRepository) -> int:
    service = AuthService(users, SessionRepository(get_db()))
    try:
        user = service.register(args.email, args.password, args.name, args.language)
    except AppError as e:
        print(f"Error: {e.message}")
        for field, message in (getattr(e, "fields", None) or {}).items():
            print(f"  {field}: {message}")
        return 1

    if args.admin:
        users.set_role(user["id"], "admin")
    role = "admin" if args.admin else "user"
    print(f"User '{user['email']}' created successfully (ID: {user['id']}, role: {role})")
    return 0


def cmd_list(args, users: UserRepository) -> int:
    rows = users.list_all()
    if not rows:
        print("No users found. Create one with: python scripts/manage_users.py create <email> <password> <name>")
        return 0

    print(f"{'ID':<5} {'Email':<32} {'Name':<25} {'Role':<6} {'Lang':<5} {'Created'}")
    print("-" * 100)
    for user in rows:
        print(
            f"{user['id']:<5} {user['email']:<32} {user['name']:<25} "
            f"{user['role']:<6} {user['preferred_language']:<5} {user['created_at']}"
        )
    return 0


def cmd_set_role(args, users: UserRepository) -> int:
    user = users.get_by_email(args.email)
    if not user:
        print(f"Error: User '{args.email}' not found")
        return 1

    users.set_role(user["id"], args.role)
    print(f"User '{user['email']}' is now {args.role}")
    return 0


def cmd_delete(args, users: UserRepository) -> int:
    user = users.get_by_email(args.email)
    if not user:
        print(f"Error: User '{args.email}' not found")
        return 1

    if not args.yes:
        confirm = input(f"Delete user '{user['email']}' ({user['name']})? [y/N]: ")
        if confirm.lower() != "y":
            print("Cancelled")
            return 0

    users.delete(user["id"])
    print(f"User '{user['email']}' deleted")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage marketplace users")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="create a user")
    create.add_argument("email")
    create.add_argument("password")
    create.add_argument("name")
    create.add_argument("--admin", action="store_true", help="grant admin rights")
    create.add_argument("--language", default="en", choices=("en", "es"))
    create.set_defaults(handler=cmd_create)

    listing = commands.add_parser("list", help="list all users")
    listing.set_defaults(handler=cmd_list)

    set_role = commands.add_parser("set-role", help="change a user's role")
    set_role.add_argument("email")
    set_role.add_argument("role", choices=ROLES)
    set_role.set_defaults(handler=cmd_set_role)

    delete = commands.add_parser("delete", help="delete a user")
    delete.add_argument("email")
    delete.add_argument("--yes", action="store_true", help="skip confirmation")
    delete.set_defaults(handler=cmd_delete)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    init_db()
    return args.handler(args, UserRepository(get_db()))


if __name__ == "__main__":
    sys.exit(main())
