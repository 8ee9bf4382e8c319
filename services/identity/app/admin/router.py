"""
Admin domain — user management routes.

Routes:
  GET    /api/v1/admin/users                     List users (filters + pagination)
  GET    /api/v1/admin/users/{user_id}           Get single user detail
  PATCH  /api/v1/admin/users/{user_id}/role      Promote / demote
  PATCH  /api/v1/admin/users/{user_id}/active    Activate / deactivate
  DELETE /api/v1/admin/users/{user_id}           Delete a user

Every route requires a caller whose *stored* role is admin.
Zero business logic. Zero DB queries.
"""
from __future__ import annotations

import uuid

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query

from app.admin import controller as ctrl
from app.admin.schemas import (
    AdminActiveUpdateRequest,
    AdminRoleUpdateRequest,
    AdminUserListResponse,
    AdminUserResponse,
)
from app.auth.constants import UserRole
from app.auth.dependencies import get_user_store, require_admin
from app.auth.models import User
from app.auth.schemas import MessageResponse
from app.auth.store import UserStore
from app.config import Settings, get_settings
from app.redis_client import get_redis
from shared.models.pagination import PaginationParams

router = APIRouter(prefix="/admin/users", tags=["admin-users"])


@router.get(
    "",
    response_model=AdminUserListResponse,
    summary="[Admin] List all users with filters and pagination",
)
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(20, ge=1, le=100, description="Items per page"),
    role: UserRole | None = Query(None, description="Filter by role"),
    verified: bool | None = Query(None, description="Filter by account verification"),
    search: str | None = Query(None, max_length=200, description="Search by username or email"),
    admin: User = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
) -> AdminUserListResponse:
    return await ctrl.list_users(
        store,
        PaginationParams(page=page, size=size),
        role=role,
        is_account_verified=verified,
        search=search,
    )


@router.get(
    "/{user_id}",
    response_model=AdminUserResponse,
    summary="[Admin] Get a single user's full details",
)
async def get_user_detail(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
) -> AdminUserResponse:
    return await ctrl.get_user_detail(store, user_id)


@router.patch(
    "/{user_id}/role",
    response_model=AdminUserResponse,
    summary="[Admin] Change a user's role",
    description="Raises 409 when the change would leave no active admin.",
)
async def change_role(
    user_id: uuid.UUID,
    body: AdminRoleUpdateRequest,
    admin: User = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
) -> AdminUserResponse:
    return await ctrl.change_role(store, admin, user_id, body.role)


@router.patch(
    "/{user_id}/active",
    response_model=AdminUserResponse,
    summary="[Admin] Activate or deactivate an account",
    description="Deactivation blocks login and revokes outstanding refresh tokens.",
)
async def set_active(
    user_id: uuid.UUID,
    body: AdminActiveUpdateRequest,
    admin: User = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
    redis: aioredis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> AdminUserResponse:
    return await ctrl.set_active(store, redis, admin, user_id, body.is_active, settings)


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    summary="[Admin] Delete a user account",
)
async def delete_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
    redis: aioredis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    return await ctrl.delete_user(store, redis, admin, user_id, settings)
