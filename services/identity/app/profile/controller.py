"""
Profile domain — request orchestration (thin glue between router and service).
"""
from __future__ import annotations

import uuid

import redis.asyncio as aioredis
from fastapi import Response

from app.auth.cookies import clear_auth_cookies
from app.auth.schemas import MessageResponse
from app.auth.store import UserStore
from app.config import Settings
from app.profile.schemas import DeleteAccountRequest, ProfileResponse, UpdateProfileRequest
from app.profile.service import delete_account, get_profile, reset_avatar, update_profile


async def get_me(store: UserStore, user_id: uuid.UUID) -> ProfileResponse:
    user = await get_profile(store, user_id)
    return ProfileResponse.model_validate(user)


async def update_me(
    store: UserStore,
    user_id: uuid.UUID,
    body: UpdateProfileRequest,
) -> ProfileResponse:
    fields = body.model_dump(exclude_unset=True)
    user = await update_profile(store, user_id, fields)
    return ProfileResponse.model_validate(user)


async def delete_avatar(
    store: UserStore, user_id: uuid.UUID, settings: Settings
) -> ProfileResponse:
    user = await reset_avatar(store, user_id, settings.default_avatar)
    return ProfileResponse.model_validate(user)


async def delete_me(
    store: UserStore,
    redis: aioredis.Redis,
    user_id: uuid.UUID,
    body: DeleteAccountRequest,
    settings: Settings,
    response: Response,
) -> MessageResponse:
    await delete_account(
        store,
        redis,
        user_id,
        password=body.password,
        refresh_expire_seconds=settings.jwt_refresh_expire_seconds,
    )
    clear_auth_cookies(response, settings)
    return MessageResponse(message="Account deleted.")
