"""
Admin domain — Pydantic V2 request/response schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.auth.constants import UserRole
from shared.models.pagination import PaginatedResponse


class _Base(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ── Requests ─────────────────────────────────────────────────────────────────

class AdminRoleUpdateRequest(_Base):
    """Body for PATCH /admin/users/{user_id}/role."""

    role: UserRole


class AdminActiveUpdateRequest(_Base):
    """Body for PATCH /admin/users/{user_id}/active."""

    is_active: bool


# ── Responses ────────────────────────────────────────────────────────────────

class AdminUserResponse(BaseModel):
    """Single user record returned to the admin panel."""

    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: uuid.UUID
    username: str
    email: str
    bio: str
    profile_avatar: str | None
    role: UserRole
    is_active: bool
    is_account_verified: bool
    has_pending_verification_code: bool = False
    has_pending_password_reset: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user) -> AdminUserResponse:
        response = cls.model_validate(user)
        return response.model_copy(
            update={
                "has_pending_verification_code": user.verify_otp is not None,
                "has_pending_password_reset": user.reset_token is not None,
            }
        )


AdminUserListResponse = PaginatedResponse[AdminUserResponse]
