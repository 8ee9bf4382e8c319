"""
Profile domain — Pydantic V2 request/response schemas.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from app.auth.schemas import TrimmedStr, UserResponse


class _Base(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ── Request ───────────────────────────────────────────────────────────────────

class UpdateProfileRequest(_Base):
    """PATCH /users/me — all fields optional; only provided fields are written."""

    username: TrimmedStr | None = Field(None, min_length=2, max_length=50)
    bio: TrimmedStr | None = Field(None, max_length=1000)


class DeleteAccountRequest(_Base):
    """DELETE /users/me — the current password confirms the deletion."""

    password: str = Field(max_length=128)


# ── Response ──────────────────────────────────────────────────────────────────

# The owner sees the same fields the auth endpoints return.
ProfileResponse = UserResponse
