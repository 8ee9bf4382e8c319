"""
Identity service — auth controller (request orchestration layer).

Responsibilities:
  - Receive validated input from the router.
  - Call service functions (which own business logic).
  - Commit state before any email goes out, so a delivery failure never
    rolls back a code or reset token the user may already be holding.
  - Set / clear token cookies and compose the response model.

No framework validation logic here — that belongs in schemas.py.
No business logic here — that belongs in service.py.
"""
from __future__ import annotations

import logging

import redis.asyncio as aioredis
from fastapi import Response

from shared.models.user import CurrentUser

from app.auth.constants import TokenPurpose
from app.auth.cookies import (
    clear_auth_cookies,
    set_access_cookie,
    set_auth_cookies,
)
from app.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    MeResponse,
    MessageResponse,
    PasswordResetConfirmSchema,
    PasswordResetRequestSchema,
    RegisterRequest,
    RegisterResponse,
    SendVerificationCodeRequest,
    TokenResponse,
    UserResponse,
    VerifyAccountRequest,
)
from app.auth.service import (
    authenticate_user,
    change_password as change_user_password,
    confirm_password_reset,
    issue_token_pair,
    refresh_access_token,
    register_user,
    request_password_reset,
    revoke_refresh_token,
    send_verification_code as issue_verification_code,
    verify_account as consume_verification_code,
)
from app.auth.store import UserStore
from app.auth.tokens import TokenIssuer
from app.config import Settings
from app.email.send import Mailer
from app.exceptions import EmailDeliveryFailed, NotAuthenticated, UserNotFound

logger = logging.getLogger(__name__)


def _token_response(access_token: str, user, settings: Settings) -> TokenResponse:
    return TokenResponse(
        access_token=access_token,
        expires_in=settings.jwt_access_expire_seconds,
        user=UserResponse.model_validate(user),
    )


# ── Register ──────────────────────────────────────────────────────────────────

async def register(
    store: UserStore,
    body: RegisterRequest,
    settings: Settings,
    mailer: Mailer,
) -> RegisterResponse:
    user = await register_user(
        store,
        username=body.username,
        email=body.email,
        password=body.password,
        profile_avatar=settings.default_avatar,
    )
    # The account must survive a mail outage
    await store.session.commit()

    welcome_sent = True
    try:
        await mailer.send_welcome(user.email, user.username)
    except EmailDeliveryFailed:
        logger.warning("Welcome email not delivered to user %s", user.id)
        welcome_sent = False

    return RegisterResponse(
        user=UserResponse.model_validate(user),
        welcome_email_sent=welcome_sent,
    )


# ── Login / logout / refresh ──────────────────────────────────────────────────

async def login(
    store: UserStore,
    body: LoginRequest,
    settings: Settings,
    issuer: TokenIssuer,
    response: Response,
) -> TokenResponse:
    # Raises before any token exists; no cookie is ever set on failure
    user = await authenticate_user(store, body.email, body.password)

    access_token, refresh_token = issue_token_pair(issuer, user)
    set_auth_cookies(response, access_token, refresh_token, settings)
    logger.info("User %s logged in", user.id)
    return _token_response(access_token, user, settings)


async def refresh_token(
    store: UserStore,
    token: str | None,
    settings: Settings,
    issuer: TokenIssuer,
    redis: aioredis.Redis,
    response: Response,
) -> TokenResponse:
    if not token:
        raise NotAuthenticated()
    access_token, user = await refresh_access_token(store, issuer, redis, token)
    set_access_cookie(response, access_token, settings)
    return _token_response(access_token, user, settings)


async def logout(
    token: str | None,
    settings: Settings,
    issuer: TokenIssuer,
    redis: aioredis.Redis,
    response: Response,
) -> MessageResponse:
    """Clear both cookies; revoke the refresh token when one is presented."""
    if token:
        await revoke_refresh_token(issuer, redis, token)
    clear_auth_cookies(response, settings)
    return MessageResponse(message="Logged out successfully.")


def me(current_user: CurrentUser) -> MeResponse:
    return MeResponse(
        id=current_user.id,
        username=current_user.username,
        email=current_user.email,
        role=current_user.role.value,
        is_account_verified=current_user.is_account_verified,
    )


# ── Account verification ──────────────────────────────────────────────────────

async def send_verification_code(
    store: UserStore,
    body: SendVerificationCodeRequest,
    settings: Settings,
    mailer: Mailer,
) -> MessageResponse:
    user = await store.find_one(email=body.email)
    if user is None:
        raise UserNotFound()

    user, code = await issue_verification_code(
        store, user.id, expire_seconds=settings.verify_otp_expire_seconds
    )
    await store.session.commit()

    await mailer.send_verification_code(
        user.email, user.username, code, settings.verify_otp_expire_seconds
    )
    return MessageResponse(message="Verification code sent.")


async def verify_account(
    store: UserStore,
    body: VerifyAccountRequest,
) -> UserResponse:
    user = await store.find_one(email=body.email)
    if user is None:
        raise UserNotFound()

    user = await consume_verification_code(store, user.id, body.code)
    return UserResponse.model_validate(user)


# ── Password reset / change ───────────────────────────────────────────────────

async def password_reset_request(
    store: UserStore,
    body: PasswordResetRequestSchema,
    issuer: TokenIssuer,
    mailer: Mailer,
) -> MessageResponse:
    user, token = await request_password_reset(store, issuer, body.email)
    await store.session.commit()

    await mailer.send_password_reset(
        user.email, user.username, token, issuer.expire_seconds(TokenPurpose.RESET)
    )
    return MessageResponse(message="Password reset link sent.")


async def password_reset_confirm(
    store: UserStore,
    body: PasswordResetConfirmSchema,
    issuer: TokenIssuer,
    redis: aioredis.Redis,
    settings: Settings,
    response: Response,
) -> MessageResponse:
    await confirm_password_reset(store, issuer, redis, body.token, body.new_password)
    # Any session on this browser predates the reset
    clear_auth_cookies(response, settings)
    return MessageResponse(message="Password has been reset. Please log in.")


async def change_password(
    store: UserStore,
    current_user: CurrentUser,
    body: ChangePasswordRequest,
    settings: Settings,
    issuer: TokenIssuer,
    redis: aioredis.Redis,
    mailer: Mailer,
    response: Response,
) -> TokenResponse:
    """
    Replace the password, then hand this client a fresh token pair; every
    refresh token minted before the change is revoked.
    """
    user = await change_user_password(
        store,
        issuer,
        redis,
        current_user.id,
        current_password=body.current_password,
        new_password=body.new_password,
    )
    await store.session.commit()

    access_token, refresh_token = issue_token_pair(issuer, user)
    set_auth_cookies(response, access_token, refresh_token, settings)

    try:
        await mailer.send_password_changed(user.email, user.username)
    except EmailDeliveryFailed:
        logger.warning("Password-changed notice not delivered to user %s", user.id)

    return _token_response(access_token, user, settings)
