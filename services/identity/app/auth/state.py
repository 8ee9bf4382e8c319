"""
Identity service — typed views over the two persisted side-channel pairs.

A user record carries two nullable field pairs:
  - (verify_otp, verify_otp_expires)      account verification code
  - (reset_token, reset_token_expires)    pending password reset

Reading a record through ``verification_state`` / ``reset_state`` turns the
raw columns into exactly one tagged variant, so callers match on a state
instead of re-checking nullable fields. The ``*_patch`` builders produce the
column dict for a single UPDATE and always write both halves of a pair.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Union

from app.auth.models import User


# ── Verification: Unverified → CodePending → Verified ─────────────────────────

@dataclass(frozen=True, slots=True)
class Unverified:
    pass


@dataclass(frozen=True, slots=True)
class CodePending:
    code_hash: str
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return _as_utc(self.expires_at) <= (now or _utcnow())


@dataclass(frozen=True, slots=True)
class Verified:
    pass


VerificationState = Union[Unverified, CodePending, Verified]


# ── Password reset: Normal → ResetPending → Normal ────────────────────────────

@dataclass(frozen=True, slots=True)
class Normal:
    pass


@dataclass(frozen=True, slots=True)
class ResetPending:
    token_digest: str
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return _as_utc(self.expires_at) <= (now or _utcnow())


ResetState = Union[Normal, ResetPending]


# ── Readers ───────────────────────────────────────────────────────────────────

def verification_state(user: User) -> VerificationState:
    if user.is_account_verified:
        return Verified()
    if user.verify_otp is not None and user.verify_otp_expires is not None:
        return CodePending(user.verify_otp, user.verify_otp_expires)
    return Unverified()


def reset_state(user: User) -> ResetState:
    if user.reset_token is not None and user.reset_token_expires is not None:
        return ResetPending(user.reset_token, user.reset_token_expires)
    return Normal()


# ── Patch builders (one UPDATE each) ──────────────────────────────────────────

def code_pending_patch(code_hash: str, expires_at: datetime) -> dict[str, Any]:
    return {"verify_otp": code_hash, "verify_otp_expires": expires_at}


def verified_patch() -> dict[str, Any]:
    return {
        "is_account_verified": True,
        "verify_otp": None,
        "verify_otp_expires": None,
    }


def reset_pending_patch(token_digest: str, expires_at: datetime) -> dict[str, Any]:
    return {"reset_token": token_digest, "reset_token_expires": expires_at}


def reset_consumed_patch(new_password_hash: str) -> dict[str, Any]:
    return {
        "password_hash": new_password_hash,
        "reset_token": None,
        "reset_token_expires": None,
    }


# ── Helpers ───────────────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
