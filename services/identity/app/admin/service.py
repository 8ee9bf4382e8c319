"""
Admin domain — pure business logic (zero FastAPI imports).
"""
from __future__ import annotations

import logging
import uuid

import redis.asyncio as aioredis

from app.auth.constants import UserRole
from app.auth.models import User
from app.auth.service import revoke_user_tokens
from app.auth.store import UserStore
from app.exceptions import CannotModifySelf, LastAdmin, UserNotFound

logger = logging.getLogger(__name__)


async def ensure_not_last_admin(store: UserStore, user: User) -> None:
    """Raise LastAdmin if removing ``user``'s admin rights would leave no active admin."""
    if user.role != UserRole.ADMIN or not user.is_active:
        return
    if await store.count(role=UserRole.ADMIN, is_active=True) <= 1:
        raise LastAdmin()


async def list_users(
    store: UserStore,
    *,
    page: int,
    size: int,
    role: UserRole | None = None,
    is_account_verified: bool | None = None,
    search: str | None = None,
) -> tuple[list[User], int]:
    """
    Paginated user listing with optional filters.

    Returns (users, total_count).
    """
    return await store.list_users(
        offset=(page - 1) * size,
        limit=size,
        role=role,
        is_account_verified=is_account_verified,
        search=search,
    )


async def get_user_detail(store: UserStore, user_id: uuid.UUID) -> User:
    """Load a single user by PK for admin viewing."""
    user = await store.find_by_id(user_id)
    if user is None:
        raise UserNotFound()
    return user


async def change_role(
    store: UserStore,
    user_id: uuid.UUID,
    role: UserRole,
    *,
    actor_id: uuid.UUID,
) -> User:
    """
    Promote or demote a user. Takes effect on the admin guard immediately;
    the target's access-token snapshot catches up on its next refresh.
    """
    user = await get_user_detail(store, user_id)
    if user.role == role:
        return user
    if role != UserRole.ADMIN:
        await ensure_not_last_admin(store, user)

    updated = await store.update_by_id(user.id, {"role": role})
    if updated is None:
        raise UserNotFound()
    logger.info("Admin %s changed role of %s to %s", actor_id, user.id, role.value)
    return updated


async def set_active(
    store: UserStore,
    redis: aioredis.Redis,
    user_id: uuid.UUID,
    is_active: bool,
    *,
    actor_id: uuid.UUID,
    refresh_expire_seconds: int,
) -> User:
    """Activate or deactivate an account; deactivation revokes refresh tokens."""
    user = await get_user_detail(store, user_id)
    if not is_active:
        if user.id == actor_id:
            raise CannotModifySelf()
        await ensure_not_last_admin(store, user)

    updated = await store.update_by_id(user.id, {"is_active": is_active})
    if updated is None:
        raise UserNotFound()
    if not is_active:
        await revoke_user_tokens(redis, user.id, refresh_expire_seconds)
    logger.info(
        "Admin %s %s user %s",
        actor_id, "activated" if is_active else "deactivated", user.id,
    )
    return updated


async def delete_user(
    store: UserStore,
    redis: aioredis.Redis,
    user_id: uuid.UUID,
    *,
    actor_id: uuid.UUID,
    refresh_expire_seconds: int,
) -> None:
    """Delete another user's account. Admins remove themselves via /users/me."""
    user = await get_user_detail(store, user_id)
    if user.id == actor_id:
        raise CannotModifySelf()
    await ensure_not_last_admin(store, user)

    if not await store.delete_by_id(user.id):
        raise UserNotFound()
    await revoke_user_tokens(redis, user.id, refresh_expire_seconds)
    logger.info("Admin %s deleted user %s", actor_id, user.id)
