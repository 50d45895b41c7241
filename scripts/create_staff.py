#!/usr/bin/env python3
"""Create (or promote) an admin or validator profile and print a bearer token for it."""

import asyncio
from uuid import uuid4

from sqlalchemy import select

from app.core.permissions import Role
from app.core.security import create_principal_token
from app.database import close_db, get_db_context
from app.models.profile import Profile


async def create_staff(
    email: str,
    full_name: str,
    role: Role = Role.ADMIN,
    phone: str | None = None,
) -> None:
    """Create a staff profile if it doesn't exist, otherwise update its role."""
    email = email.strip().lower()
    async with get_db_context() as session:
        result = await session.execute(select(Profile).where(Profile.email == email))
        profile = result.scalar_one_or_none()

        if profile:
            profile.role = role.value
            profile.full_name = full_name
            print(f"Updated existing profile: {email}")
        else:
            profile = Profile(
                id=uuid4(),
                email=email,
                phone=phone,
                full_name=full_name,
                role=role.value,
            )
            session.add(profile)
            print(f"Created {role.value} profile: {email}")
        await session.flush()
        profile_id = profile.id

    await close_db()

    print(f"ID: {profile_id}")
    print(f"Role: {role.value}")
    print(f"Token: {create_principal_token(profile_id, role)}")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Create an admin or validator profile")
    parser.add_argument("--email", default="admin@napps.org", help="Staff email")
    parser.add_argument("--full-name", default="Summit Admin", help="Full name")
    parser.add_argument("--phone", default=None, help="Phone (+234XXXXXXXXXX)")
    parser.add_argument(
        "--role",
        choices=[Role.ADMIN.value, Role.VALIDATOR.value],
        default=Role.ADMIN.value,
        help="Staff role",
    )

    args = parser.parse_args()

    asyncio.run(
        create_staff(
            email=args.email,
            full_name=args.full_name,
            role=Role(args.role),
            phone=args.phone,
        )
    )
