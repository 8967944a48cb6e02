"""
Database seeding script for initial users.

Creates an ADMIN (the platform account), a STAR and a FAN for development,
and prints a bearer token for each.
Run this script after database is set up but before first use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.core.jwt import issue_token
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.app.services.identifiers import generate_account_id
from backend.app.services.user_service import UserService
from backend.app.main import app  # noqa: F401  registers every model
from sqlalchemy import select


SEED_USERS = [
    ("admin@starbooking.com", "Platform", UserRole.ADMIN),
    ("star@starbooking.com", "Demo Star", UserRole.STAR),
    ("fan@starbooking.com", "Demo Fan", UserRole.FAN),
]


async def seed_users():
    """
    Seed initial users with different roles.

    Creates:
    - 1 ADMIN user (receives hosting and become-star payments)
    - 1 STAR user with a public account id
    - 1 FAN user
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting user seeding...")

        existing_admin = await db.scalar(select(User.id).where(User.email == SEED_USERS[0][0]))
        if existing_admin:
            print("ℹ️  ADMIN user already exists, skipping seeding")
            return

        for email, name, role in SEED_USERS:
            user = await UserService.create_user(db, email=email, name=name, role=role)
            if role == UserRole.STAR:
                user.account_id = await generate_account_id(db)
                await db.commit()

            token = issue_token(user.id, email)
            print(f"✅ Created {role.value} user {email} (id={user.id}, coins={user.wallet_balance})")
            print(f"   token: {token}")

        print("\n🎉 User seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed_users())
