#!/usr/bin/env python3
"""
Create (or promote) an admin account for Insighta.

Reads credentials from .env:
    ADMIN_EMAIL      — admin account email (required)
    ADMIN_PASSWORD   — admin account password (required)
    ADMIN_USERNAME   — display name (optional, defaults to "admin")

The account is created active and already verified, so it can log in
straight away.

Usage:
    cd insighta-backend
    python -m scripts.create_admin
"""
from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

# Add backend root to path so imports resolve
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "services" / "identity"))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "shared"))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.auth.constants import UserRole
from app.auth.models import User
from app.auth.utils import configure_hashing, hash_password
from app.config import get_settings


async def main() -> None:
    email = os.getenv("ADMIN_EMAIL")
    password = os.getenv("ADMIN_PASSWORD")
    if not email or not password:
        print("Error: ADMIN_EMAIL and ADMIN_PASSWORD must be set in .env")
        sys.exit(1)
    username = os.getenv("ADMIN_USERNAME", "admin")

    settings = get_settings()
    configure_hashing(settings.password_hash_rounds)
    engine = create_async_engine(settings.identity_database_url, echo=False)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with session_factory() as session:
        result = await session.execute(select(User).where(User.email == email))
        existing = result.scalar_one_or_none()

        if existing is not None:
            print(f"User {email} already exists (id={existing.id}).")
            if existing.role != UserRole.ADMIN or not existing.is_active:
                existing.role = UserRole.ADMIN
                existing.is_active = True
                existing.is_account_verified = True
                await session.commit()
                print("  -> Promoted to admin.")
            else:
                print("  -> Already an admin. Nothing to do.")
        else:
            user = User(
                email=email,
                username=username,
                password_hash=hash_password(password),
                role=UserRole.ADMIN,
                is_active=True,
                is_account_verified=True,
            )
            session.add(user)
            await session.commit()
            print(f"Admin created: {email} (id={user.id})")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
