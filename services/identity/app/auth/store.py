"""
Identity service — credential store over the ``users`` table.

Thin persistence seam used by the auth, profile and admin services. Every
mutation is a single statement; ``update_by_id`` optionally carries
compare-and-swap conditions so consuming transitions cannot interleave.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.constants import UserRole
from app.auth.models import User
from app.exceptions import UserAlreadyExists

logger = logging.getLogger(__name__)


class UserStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def find_one(self, **filters: Any) -> User | None:
        stmt = select(User).filter_by(**filters).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: uuid.UUID) -> User | None:
        return await self.session.get(User, user_id, populate_existing=True)

    async def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(User).filter_by(**filters)
        return (await self.session.execute(stmt)).scalar_one()

    async def list_users(
        self,
        *,
        offset: int,
        limit: int,
        role: UserRole | None = None,
        is_account_verified: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[User], int]:
        """Return one page of users (newest first) and the filtered total."""
        conditions = []
        if role is not None:
            conditions.append(User.role == role)
        if is_account_verified is not None:
            conditions.append(User.is_account_verified == is_account_verified)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(
                or_(
                    func.lower(User.username).like(pattern),
                    func.lower(User.email).like(pattern),
                )
            )

        total = (
            await self.session.execute(
                select(func.count()).select_from(User).where(*conditions)
            )
        ).scalar_one()
        result = await self.session.execute(
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc(), User.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    # ── Writes ────────────────────────────────────────────────────────────────

    async def insert(self, user: User) -> User:
        """
        Insert a new user.

        The unique index on ``email`` is the source of truth for uniqueness;
        a violation surfaces as UserAlreadyExists.
        """
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            raise UserAlreadyExists()
        return user

    async def update_by_id(
        self,
        user_id: uuid.UUID,
        patch: dict[str, Any],
        *,
        expected: dict[str, Any] | None = None,
    ) -> User | None:
        """
        Apply ``patch`` in one UPDATE and return the refreshed user.

        ``expected`` adds ``column == value`` conditions to the WHERE clause.
        Returns None when no row matched (user gone, or a concurrent writer
        changed one of the expected columns first).
        """
        conditions = [User.id == user_id]
        for column, value in (expected or {}).items():
            attr = getattr(User, column)
            conditions.append(attr.is_(None) if value is None else attr == value)

        result = await self.session.execute(
            update(User)
            .where(*conditions)
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return await self.session.get(User, user_id, populate_existing=True)

    async def delete_by_id(self, user_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            delete(User)
            .where(User.id == user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("Deleted user %s", user_id)
        return bool(result.rowcount)
