"""
Admin domain — request orchestration layer.
"""
from __future__ import annotations

import uuid

import redis.asyncio as aioredis

from app.admin.schemas import AdminUserListResponse, AdminUserResponse
from app.admin.service import (
    change_role as change_role_svc,
    delete_user as delete_user_svc,
    get_user_detail as get_user_detail_svc,
    list_users as list_users_svc,
    set_active as set_active_svc,
)
from app.auth.constants import UserRole
from app.auth.models import User
from app.auth.schemas import MessageResponse
from app.auth.store import UserStore
from app.config import Settings
from shared.models.pagination import PaginationParams


async def list_users(
    store: UserStore,
    pagination: PaginationParams,
    *,
    role: UserRole | None = None,
    is_account_verified: bool | None = None,
    search: str | None = None,
) -> AdminUserListResponse:
    users, total = await list_users_svc(
        store,
        page=pagination.page,
        size=pagination.size,
        role=role,
        is_account_verified=is_account_verified,
        search=search,
    )
    return AdminUserListResponse(
        items=[AdminUserResponse.from_user(u) for u in users],
        total=total,
        page=pagination.page,
        size=pagination.size,
    )


async def get_user_detail(
    store: UserStore,
    user_id: uuid.UUID,
) -> AdminUserResponse:
    user = await get_user_detail_svc(store, user_id)
    return AdminUserResponse.from_user(user)


async def change_role(
    store: UserStore,
    admin: User,
    user_id: uuid.UUID,
    role: UserRole,
) -> AdminUserResponse:
    user = await change_role_svc(store, user_id, role, actor_id=admin.id)
    return AdminUserResponse.from_user(user)


async def set_active(
    store: UserStore,
    redis: aioredis.Redis,
    admin: User,
    user_id: uuid.UUID,
    is_active: bool,
    settings: Settings,
) -> AdminUserResponse:
    user = await set_active_svc(
        store,
        redis,
        user_id,
        is_active,
        actor_id=admin.id,
        refresh_expire_seconds=settings.jwt_refresh_expire_seconds,
    )
    return AdminUserResponse.from_user(user)


async def delete_user(
    store: UserStore,
    redis: aioredis.Redis,
    admin: User,
    user_id: uuid.UUID,
    settings: Settings,
) -> MessageResponse:
    await delete_user_svc(
        store,
        redis,
        user_id,
        actor_id=admin.id,
        refresh_expire_seconds=settings.jwt_refresh_expire_seconds,
    )
    return MessageResponse(message="User deleted.")
