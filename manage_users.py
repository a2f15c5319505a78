#!/usr/bin/env python3
"""
User Management Utility

Operator tasks the API does not expose:
- List users
- Create a user (e.g. the first Admin)
- Delete a user by email
"""

import asyncio
import sys
from typing import List

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import DuplicateKeyError

from api.config import config
from api.database import APIDatabaseService
from api.models import Role
from api.security import hash_password
from api.validation import run_rules, signup_rules
from utilities.logger import setup_logging

USAGE = """Usage: python manage_users.py [list|create|delete] [args]

Commands:
  list                                  - List all users
  create <email> <password> <name> <role> - Create a user (role: Admin, Author, Reader)
  delete <email>                        - Delete a user

Examples:
  python manage_users.py list
  python manage_users.py create admin@example.com 'Abcdef1!' 'Site Admin' Admin
  python manage_users.py delete reader@example.com"""


async def list_users(db_service: APIDatabaseService) -> int:
    """List all users."""
    users = await db_service.list_users()
    if not users:
        print("No users found in database")
        return 0

    print(f"Found {len(users)} users:")
    for i, user in enumerate(users, 1):
        print(f"{i:3d}. {user.email}  name={user.name!r}  role={user.role.value}  id={user.id}")
    return 0


async def create_user(db_service: APIDatabaseService, args: List[str]) -> int:
    """Create a user after applying the registration rules."""
    if len(args) != 4:
        print("Error: create needs <email> <password> <name> <role>")
        return 1

    email, password, name, role = args
    errors = run_rules(signup_rules, {"email": email, "password": password, "name": name, "role": role})
    if errors:
        for error in errors:
            print(f"Error: {error.field}: {error.message}")
        return 1

    try:
        user = await db_service.create_user(
            email=email,
            password_hash=hash_password(password),
            name=name,
            role=Role(role)
        )
    except DuplicateKeyError:
        print(f"Error: user '{email}' already exists")
        return 1

    print(f"Created user '{user.email}' with role '{user.role.value}' (id={user.id})")
    return 0


async def delete_user(db_service: APIDatabaseService, args: List[str]) -> int:
    """Delete a user by email."""
    if len(args) != 1:
        print("Error: delete needs <email>")
        return 1

    if await db_service.delete_user_by_email(args[0]):
        print(f"Deleted user '{args[0]}'")
        return 0
    print(f"No user with email '{args[0]}'")
    return 1


async def main() -> int:
    """Main function."""
    if len(sys.argv) < 2:
        print(USAGE)
        return 1

    command = sys.argv[1].lower()
    if command not in ("list", "create", "delete"):
        print(f"Unknown command: {command}")
        print("Available commands: list, create, delete")
        return 1

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )

    client = AsyncIOMotorClient(config.mongodb_url)
    try:
        db_service = APIDatabaseService(client[config.mongodb_database])
        await db_service.ensure_indexes()

        if command == "list":
            return await list_users(db_service)
        if command == "create":
            return await create_user(db_service, sys.argv[2:])
        return await delete_user(db_service, sys.argv[2:])
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
