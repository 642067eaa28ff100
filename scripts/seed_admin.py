"""
Create (or promote) an administrator account.
Run: python -m scripts.seed_admin admin@example.gov.bd 'password'   (from project root, with DB running)
Without arguments, ADMIN_EMAIL / ADMIN_PASSWORD are read from the environment.
"""
import asyncio
import os
import sys
import uuid

# Add parent so we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import AsyncSessionLocal, init_db
import models  # noqa: F401
from models import User
from services.auth import Role, find_user_by_email, hash_password, normalize_email


async def seed(email: str, password: str):
    await init_db()
    async with AsyncSessionLocal() as session:
        user = await find_user_by_email(session, email)
        if user:
            if user.role == Role.ADMIN.value:
                print(f"{user.email} is already an administrator, skipping")
                return
            user.role = Role.ADMIN.value
            print(f"Promoted {user.email} to administrator")
        else:
            session.add(User(
                id=str(uuid.uuid4()),
                email=normalize_email(email),
                password_hash=hash_password(password),
                role=Role.ADMIN.value,
            ))
            print(f"Created administrator {normalize_email(email)}")
        await session.commit()
    print("Seed complete.")


if __name__ == "__main__":
    args = sys.argv[1:]
    email = args[0] if args else os.environ.get("ADMIN_EMAIL")
    password = args[1] if len(args) > 1 else os.environ.get("ADMIN_PASSWORD")
    if not email or not password:
        sys.exit("usage: python -m scripts.seed_admin EMAIL PASSWORD")
    asyncio.run(seed(email, password))
