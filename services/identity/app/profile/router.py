"""
Profile domain — router.

Routes:
  GET    /api/v1/users/me          Get own full profile
  PATCH  /api/v1/users/me          Update own profile (partial)
  DELETE /api/v1/users/me          Delete own account (password required)
  DELETE /api/v1/users/me/avatar   Reset own avatar to the default image

All routes require a valid access token (cookie or Bearer header).
"""
from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Response

from app.auth.dependencies import get_current_user, get_user_store
from app.auth.schemas import MessageResponse
from app.auth.store import UserStore
from app.config import Settings, get_settings
from app.profile import controller as ctrl
from app.profile.schemas import DeleteAccountRequest, ProfileResponse, UpdateProfileRequest
from app.redis_client import get_redis
from shared.models.user import CurrentUser

router = APIRouter(prefix="/users", tags=["profile"])


@router.get("/me", response_model=ProfileResponse, summary="Get own profile")
async def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
) -> ProfileResponse:
    return await ctrl.get_me(store, current_user.id)


@router.patch(
    "/me",
    response_model=ProfileResponse,
    summary="Update own profile (partial — only provided fields are written)",
)
async def update_me(
    body: UpdateProfileRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
) -> ProfileResponse:
    return await ctrl.update_me(store, current_user.id, body)


@router.delete(
    "/me/avatar",
    response_model=ProfileResponse,
    summary="Remove own avatar (falls back to the default image)",
)
async def delete_avatar(
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
) -> ProfileResponse:
    return await ctrl.delete_avatar(store, current_user.id, settings)


# DELETE with a body: FastAPI accepts it; clients must send JSON explicitly.
@router.delete(
    "/me",
    response_model=MessageResponse,
    summary="Delete own account",
)
async def delete_me(
    response: Response,
    body: DeleteAccountRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
    redis: aioredis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    return await ctrl.delete_me(store, redis, current_user.id, body, settings, response)
