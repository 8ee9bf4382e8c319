"""
Identity service — Pydantic V2 request/response schemas for the auth domain.

Separation of concerns:
  - *Request  models:  input from the client (strict extra="forbid")
  - *Response models:  output to the client (no write-only fields exposed)
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, StringConstraints

from app.auth.constants import UserRole, VERIFY_OTP_DIGITS


# ── Shared base ───────────────────────────────────────────────────────────────

def _strip(value):
    return value.strip() if isinstance(value, str) else value


# Identifiers are trimmed; passwords are taken exactly as typed.
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]
TrimmedEmail = Annotated[EmailStr, BeforeValidator(_strip)]


class _Base(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ── Email + Password flow ─────────────────────────────────────────────────────

class RegisterRequest(_Base):
    """Body for POST /auth/register."""

    username: TrimmedStr = Field(min_length=2, max_length=50)
    email: TrimmedEmail
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(_Base):
    """Body for POST /auth/login."""

    email: TrimmedEmail
    password: str = Field(max_length=128)


class RefreshRequest(_Base):
    """
    Optional body for POST /auth/refresh-token and /auth/logout.

    Browser clients send the refresh token as a cookie and omit the body.
    """

    refresh_token: str | None = None


# ── Account verification ──────────────────────────────────────────────────────

class SendVerificationCodeRequest(_Base):
    """Body for POST /auth/send-verification-code."""

    email: TrimmedEmail


class VerifyAccountRequest(_Base):
    """Body for POST /auth/verify-account."""

    email: TrimmedEmail
    code: TrimmedStr = Field(
        pattern=rf"^\d{{{VERIFY_OTP_DIGITS}}}$",
        description="The 6-digit code from the verification email",
    )


# ── Password reset / change ───────────────────────────────────────────────────

class PasswordResetRequestSchema(_Base):
    """Body for POST /auth/password-reset/request."""

    email: TrimmedEmail


class PasswordResetConfirmSchema(_Base):
    """Body for POST /auth/password-reset/confirm."""

    token: TrimmedStr = Field(min_length=1, max_length=2048)
    new_password: str = Field(min_length=8, max_length=128)


class ChangePasswordRequest(_Base):
    """Body for POST /auth/change-password."""

    current_password: str = Field(max_length=128)
    new_password: str = Field(min_length=8, max_length=128)


# ── Responses ─────────────────────────────────────────────────────────────────

class UserResponse(BaseModel):
    """Public user representation — never exposes hashes or pending secrets."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    bio: str
    profile_avatar: str | None = None
    role: UserRole
    is_active: bool
    is_account_verified: bool
    created_at: datetime
    updated_at: datetime


class TokenResponse(BaseModel):
    """
    Returned by login and refresh. The same access token is also set as an
    HTTP-only cookie; the refresh token travels only in its cookie.
    """

    model_config = ConfigDict(extra="forbid")

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class RegisterResponse(BaseModel):
    """Returned by POST /auth/register (201)."""

    model_config = ConfigDict(extra="forbid")

    user: UserResponse
    welcome_email_sent: bool


class MeResponse(BaseModel):
    """Snapshot carried by the access token (may lag the stored user)."""

    id: uuid.UUID
    username: str
    email: str
    role: UserRole
    is_account_verified: bool


class MessageResponse(BaseModel):
    """Simple acknowledgement body."""

    model_config = ConfigDict(extra="forbid")

    message: str
