"""
Profile domain — pure business logic (zero FastAPI imports).
"""
from __future__ import annotations

import logging
import uuid

import redis.asyncio as aioredis

from app.admin.service import ensure_not_last_admin
from app.auth.models import User
from app.auth.service import revoke_user_tokens
from app.auth.store import UserStore
from app.auth.utils import verify_password
from app.exceptions import IncorrectPassword, UserNotFound

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset({"username", "bio"})


async def get_profile(store: UserStore, user_id: uuid.UUID) -> User:
    """Load a user by PK; raise 404 if not found."""
    user = await store.find_by_id(user_id)
    if user is None:
        raise UserNotFound()
    return user


async def update_profile(
    store: UserStore,
    user_id: uuid.UUID,
    fields: dict,
) -> User:
    """Write the provided, non-null editable fields in one UPDATE."""
    patch = {
        key: value
        for key, value in fields.items()
        if key in _EDITABLE_FIELDS and value is not None
    }
    if not patch:
        return await get_profile(store, user_id)

    user = await store.update_by_id(user_id, patch)
    if user is None:
        raise UserNotFound()
    return user


async def reset_avatar(
    store: UserStore, user_id: uuid.UUID, default_avatar: str | None
) -> User:
    """Drop the user's own image and fall back to the configured default."""
    user = await store.update_by_id(user_id, {"profile_avatar": default_avatar})
    if user is None:
        raise UserNotFound()
    return user


async def delete_account(
    store: UserStore,
    redis: aioredis.Redis,
    user_id: uuid.UUID,
    *,
    password: str,
    refresh_expire_seconds: int,
) -> None:
    """Delete the caller's own account after re-checking their password."""
    user = await get_profile(store, user_id)
    if not verify_password(password, user.password_hash):
        raise IncorrectPassword()
    await ensure_not_last_admin(store, user)

    if not await store.delete_by_id(user.id):
        raise UserNotFound()
    await revoke_user_tokens(redis, user.id, refresh_expire_seconds)
    logger.info("User %s deleted their account", user.id)
