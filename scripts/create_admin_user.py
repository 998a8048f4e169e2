#!/usr/bin/env python3
"""
Create Admin User Script
Creates the first admin account so the admin panel can be used.

Usage:
    python -m scripts.create_admin_user admin@example.com 'Secret1!' --name "Site Admin"
"""

import argparse
import asyncio
import sys

from sqlalchemy import select

from beenaround.database import AsyncSessionLocal
from beenaround.exceptions import APIError
from beenaround.models import AdminUser
from beenaround.services import admin_service


async def create_admin_user(session_factory, email: str, password: str, full_name: str = "Administrator"):
    """Create an admin, or return the existing one with the same email."""
    async with session_factory() as db:
        existing = (await db.execute(
            select(AdminUser).where(AdminUser.email == email.strip().lower())
        )).scalar_one_or_none()
        if existing:
            print(f"Admin already exists: id={existing.id} email={existing.email}")
            return existing, False

        admin = await admin_service.create_admin(db, full_name, email.strip(), password)
        print(f"Admin created: id={admin.id} email={admin.email}")
        return admin, True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args(argv)

    try:
        asyncio.run(create_admin_user(AsyncSessionLocal, args.email, args.password, args.name))
    except APIError as e:
        print(f"Failed to create admin: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
