"""
Identity service — pure business logic for authentication.

Rules:
  - Zero FastAPI imports.
  - Persistence only through UserStore; every user mutation is one UPDATE.
  - Consuming transitions (verify account, confirm reset) are compare-and-swap
    on the value that was read, so concurrent attempts cannot both succeed.
  - All I/O functions are async def.
  - Never log passwords, verification codes or tokens.
"""
from __future__ import annotations

import hashlib
import logging
import random
import secrets
import time
import uuid
from datetime import datetime, timedelta, timezone

import redis.asyncio as aioredis

from app.auth.constants import DEFAULT_BIO, TokenPurpose, UserRole, VERIFY_OTP_DIGITS
from app.auth.models import User
from app.auth.state import (
    CodePending,
    ResetPending,
    Verified,
    code_pending_patch,
    reset_consumed_patch,
    reset_pending_patch,
    reset_state,
    verification_state,
    verified_patch,
)
from app.auth.store import UserStore
from app.auth.tokens import TokenIssuer
from app.auth.utils import dummy_password_hash, hash_password, verify_password
from app.exceptions import (
    AccountNotVerified,
    AlreadyVerified,
    IncorrectPassword,
    InvalidCredentials,
    InvalidOTP,
    InvalidResetToken,
    OTPExpired,
    ResetTokenExpired,
    SessionNotFound,
    TokenExpired,
    TokenInvalid,
    UserAlreadyExists,
    UserInactive,
    UserNotFound,
)

logger = logging.getLogger(__name__)

_rng = random.SystemRandom()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _subject(claims: dict, error: type[Exception]) -> uuid.UUID:
    try:
        return uuid.UUID(str(claims["sub"]))
    except (KeyError, ValueError):
        raise error()


# ── Registration ──────────────────────────────────────────────────────────────

async def register_user(
    store: UserStore,
    *,
    username: str,
    email: str,
    password: str,
    profile_avatar: str | None = None,
) -> User:
    """
    Create an unverified account.

    The lookup is only a fast path; the unique index on email decides races
    and the store maps the violation to UserAlreadyExists.
    """
    if await store.find_one(email=email) is not None:
        raise UserAlreadyExists()

    user = await store.insert(
        User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            bio=DEFAULT_BIO,
            profile_avatar=profile_avatar,
            role=UserRole.USER,
            is_active=True,
            is_account_verified=False,
        )
    )
    logger.info("Registered user %s", user.id)
    return user


# ── Authentication ────────────────────────────────────────────────────────────

async def authenticate_user(store: UserStore, email: str, password: str) -> User:
    """
    Verify credentials and every login gate, in this order:

      unknown email / wrong password → InvalidCredentials (same message)
      deactivated                    → UserInactive
      unverified                     → AccountNotVerified

    Tokens must only be minted after this returns.
    """
    user = await store.find_one(email=email)
    if user is None:
        # Same argon2 cost as a real check so response time does not reveal the email
        verify_password(password, dummy_password_hash())
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", email)
        raise InvalidCredentials()
    if not user.is_active:
        raise UserInactive()
    if not user.is_account_verified:
        raise AccountNotVerified()
    return user


def issue_token_pair(issuer: TokenIssuer, user: User) -> tuple[str, str]:
    """Return (access_token, refresh_token)."""
    access_token = issuer.issue(TokenPurpose.ACCESS, issuer.access_claims(user))
    refresh_token = issuer.issue(TokenPurpose.REFRESH, issuer.subject_claims(user))
    return access_token, refresh_token


# ── Refresh-token revocation (Redis) ──────────────────────────────────────────

_REVOKED_JTI_PREFIX = "revoked_jti:"
_NOT_BEFORE_PREFIX = "tokens_nbf:"


async def revoke_jti(redis: aioredis.Redis, jti: str, expires_at: float) -> None:
    """Deny a token id until the token would have expired anyway."""
    ttl = int(expires_at - time.time()) + 1
    if ttl <= 0:
        return
    await redis.setex(f"{_REVOKED_JTI_PREFIX}{jti}", ttl, "1")


async def is_jti_revoked(redis: aioredis.Redis, jti: str) -> bool:
    return bool(await redis.exists(f"{_REVOKED_JTI_PREFIX}{jti}"))


async def revoke_user_tokens(
    redis: aioredis.Redis, user_id: uuid.UUID, ttl: int
) -> None:
    """
    Reject every refresh token of ``user_id`` issued before now.

    ``ttl`` is the refresh-token lifetime; older tokens are expired by then.
    """
    await redis.setex(f"{_NOT_BEFORE_PREFIX}{user_id}", ttl, repr(time.time()))


async def tokens_not_before(redis: aioredis.Redis, user_id: uuid.UUID) -> float | None:
    value = await redis.get(f"{_NOT_BEFORE_PREFIX}{user_id}")
    return float(value) if value is not None else None


# ── Refresh / logout ──────────────────────────────────────────────────────────

async def refresh_access_token(
    store: UserStore,
    issuer: TokenIssuer,
    redis: aioredis.Redis,
    refresh_token: str,
) -> tuple[str, User]:
    """
    Mint a new access token from a valid refresh token.

    The snapshot comes from the stored user, so profile and role changes are
    picked up here. The refresh token itself is not rotated.
    """
    claims = issuer.verify(TokenPurpose.REFRESH, refresh_token)
    jti = claims.get("jti")
    if not jti or await is_jti_revoked(redis, jti):
        logger.info("Rejected refresh token: revoked")
        raise TokenInvalid()

    user_id = _subject(claims, TokenInvalid)
    not_before = await tokens_not_before(redis, user_id)
    if not_before is not None and float(claims.get("iat", 0)) < not_before:
        logger.info("Rejected refresh token for %s: issued before revocation", user_id)
        raise TokenInvalid()

    user = await store.find_by_id(user_id)
    if user is None:
        raise SessionNotFound()
    if not user.is_active:
        raise UserInactive()
    return issuer.issue(TokenPurpose.ACCESS, issuer.access_claims(user)), user


async def revoke_refresh_token(
    issuer: TokenIssuer, redis: aioredis.Redis, refresh_token: str
) -> None:
    """Deny a refresh token on logout; unusable tokens need no revocation."""
    try:
        claims = issuer.verify(TokenPurpose.REFRESH, refresh_token)
    except (TokenExpired, TokenInvalid):
        return
    jti = claims.get("jti")
    if jti:
        await revoke_jti(redis, jti, float(claims["exp"]))


# ── Account verification (OTP) ────────────────────────────────────────────────

def generate_verification_code() -> str:
    return f"{_rng.randint(0, 10**VERIFY_OTP_DIGITS - 1):0{VERIFY_OTP_DIGITS}d}"


async def send_verification_code(
    store: UserStore,
    user_id: uuid.UUID,
    *,
    expire_seconds: int,
) -> tuple[User, str]:
    """
    Store a fresh code hash + expiry (replacing any pending code) and return
    the plain code. The caller mails it after committing.
    """
    user = await store.find_by_id(user_id)
    if user is None:
        raise UserNotFound()
    if isinstance(verification_state(user), Verified):
        raise AlreadyVerified()

    code = generate_verification_code()
    updated = await store.update_by_id(
        user.id,
        code_pending_patch(hash_password(code), _utcnow() + timedelta(seconds=expire_seconds)),
        expected={"is_account_verified": False},
    )
    if updated is None:
        # Verified (or deleted) between the read and the write
        if await store.find_by_id(user_id) is None:
            raise UserNotFound()
        raise AlreadyVerified()

    logger.info("Issued verification code for user %s", user.id)
    return updated, code


async def verify_account(store: UserStore, user_id: uuid.UUID, code: str) -> User:
    """
    Consume the pending code. Checks run in a fixed order:

      AlreadyVerified → InvalidOTP (nothing pending) → OTPExpired → InvalidOTP
      (mismatch) → compare-and-swap UPDATE that sets verified and clears
      the code pair in one write.

    An expired code leaves the pair in place; the next send replaces it.
    """
    user = await store.find_by_id(user_id)
    if user is None:
        raise UserNotFound()

    state = verification_state(user)
    if isinstance(state, Verified):
        raise AlreadyVerified()
    if not isinstance(state, CodePending):
        raise InvalidOTP()
    if state.is_expired():
        raise OTPExpired()
    if not verify_password(code, state.code_hash):
        raise InvalidOTP()

    updated = await store.update_by_id(
        user.id,
        verified_patch(),
        expected={"verify_otp": state.code_hash, "is_account_verified": False},
    )
    if updated is None:
        # Lost the race: either a concurrent verify won or a resend replaced the code
        current = await store.find_by_id(user_id)
        if current is not None and current.is_account_verified:
            raise AlreadyVerified()
        raise InvalidOTP()

    logger.info("Verified account %s", user.id)
    return updated


# ── Password reset ────────────────────────────────────────────────────────────

def token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def request_password_reset(
    store: UserStore, issuer: TokenIssuer, email: str
) -> tuple[User, str]:
    """
    Issue a reset token and store its digest + expiry, superseding any earlier
    pending reset. Returns the plain token for mailing.
    """
    user = await store.find_one(email=email)
    if user is None:
        raise UserNotFound()

    token = issuer.issue(TokenPurpose.RESET, issuer.subject_claims(user))
    expires_at = _utcnow() + timedelta(seconds=issuer.expire_seconds(TokenPurpose.RESET))
    updated = await store.update_by_id(
        user.id, reset_pending_patch(token_digest(token), expires_at)
    )
    if updated is None:
        raise UserNotFound()

    logger.info("Issued password reset token for user %s", user.id)
    return updated, token


async def confirm_password_reset(
    store: UserStore,
    issuer: TokenIssuer,
    redis: aioredis.Redis,
    token: str,
    new_password: str,
) -> User:
    """
    Consume a reset token and replace the password hash.

    Raises:
      ResetTokenExpired  — the JWT or the stored pending reset has expired
      InvalidResetToken  — bad signature, unknown user, nothing pending,
                           digest mismatch, or already consumed
    """
    try:
        claims = issuer.verify(TokenPurpose.RESET, token)
    except TokenExpired:
        raise ResetTokenExpired()
    except TokenInvalid:
        raise InvalidResetToken()

    user = await store.find_by_id(_subject(claims, InvalidResetToken))
    if user is None:
        raise InvalidResetToken()

    digest = token_digest(token)
    state = reset_state(user)
    if not isinstance(state, ResetPending) or not secrets.compare_digest(
        state.token_digest, digest
    ):
        raise InvalidResetToken()
    if state.is_expired():
        raise ResetTokenExpired()

    updated = await store.update_by_id(
        user.id,
        reset_consumed_patch(hash_password(new_password)),
        expected={"reset_token": digest},
    )
    if updated is None:
        raise InvalidResetToken()

    await revoke_user_tokens(redis, user.id, issuer.expire_seconds(TokenPurpose.REFRESH))
    logger.info("Password reset completed for user %s", user.id)
    return updated


# ── Change password ───────────────────────────────────────────────────────────

async def change_password(
    store: UserStore,
    issuer: TokenIssuer,
    redis: aioredis.Redis,
    user_id: uuid.UUID,
    *,
    current_password: str,
    new_password: str,
) -> User:
    """
    Replace the password hash and revoke every earlier refresh token.

    A deactivated account is refused before anything is written, so the
    fresh token pair the caller mints afterwards never reaches it.
    """
    user = await store.find_by_id(user_id)
    if user is None:
        raise UserNotFound()
    if not user.is_active:
        raise UserInactive()
    if not verify_password(current_password, user.password_hash):
        raise IncorrectPassword()

    updated = await store.update_by_id(
        user.id, {"password_hash": hash_password(new_password)}
    )
    if updated is None:
        raise UserNotFound()

    await revoke_user_tokens(redis, user.id, issuer.expire_seconds(TokenPurpose.REFRESH))
    logger.info("Password changed for user %s", user.id)
    return updated
