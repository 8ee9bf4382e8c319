"""
Identity service — auth router.

Only HTTP concerns live here:
  - Route declarations, HTTP methods, status codes, response_model
  - Dependency injection (store, settings, token issuer, redis, mailer)
  - Reading the refresh token from its cookie or the JSON body
  - Forwarding to the controller

Zero business logic. Zero DB queries.
"""
from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Cookie, Depends, Request, Response, status

from shared.models.user import CurrentUser

from app.rate_limit import limiter
from app.auth.constants import REFRESH_COOKIE_NAME
from app.auth.controller import (
    change_password as change_password_controller,
    login as login_controller,
    logout as logout_controller,
    me as me_controller,
    password_reset_confirm as password_reset_confirm_controller,
    password_reset_request as password_reset_request_controller,
    refresh_token as refresh_token_controller,
    register as register_controller,
    send_verification_code as send_verification_code_controller,
    verify_account as verify_account_controller,
)
from app.auth.dependencies import get_current_user, get_token_issuer, get_user_store
from app.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    MeResponse,
    MessageResponse,
    PasswordResetConfirmSchema,
    PasswordResetRequestSchema,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    SendVerificationCodeRequest,
    TokenResponse,
    UserResponse,
    VerifyAccountRequest,
)
from app.auth.store import UserStore
from app.auth.tokens import TokenIssuer
from app.config import Settings, get_settings
from app.email.send import Mailer, get_mailer
from app.redis_client import get_redis

router = APIRouter(prefix="/auth", tags=["auth"])


def _refresh_token(
    body: RefreshRequest | None,
    cookie_value: str | None,
) -> str | None:
    """An explicit JSON body token wins; browser clients fall back to the cookie."""
    return (body.refresh_token if body else None) or cookie_value


# ── Email + Password ──────────────────────────────────────────────────────────

@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account (email + password)",
)
@limiter.limit("3/hour")
async def register(
    request: Request,
    body: RegisterRequest,
    store: UserStore = Depends(get_user_store),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
) -> RegisterResponse:
    return await register_controller(store, body, settings, mailer)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with email + password; sets the token cookies",
)
@limiter.limit("5/15minutes")
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    store: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenResponse:
    return await login_controller(store, body, settings, issuer, response)


# ── Token management ──────────────────────────────────────────────────────────

@router.post(
    "/refresh-token",
    response_model=TokenResponse,
    summary="Issue a new access token from the refresh token",
)
async def refresh(
    response: Response,
    body: RefreshRequest | None = None,
    refresh_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE_NAME),
    store: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
    issuer: TokenIssuer = Depends(get_token_issuer),
    redis: aioredis.Redis = Depends(get_redis),
) -> TokenResponse:
    return await refresh_token_controller(
        store,
        _refresh_token(body, refresh_cookie),
        settings,
        issuer,
        redis,
        response,
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Clear the token cookies and revoke the refresh token",
)
async def logout(
    response: Response,
    body: RefreshRequest | None = None,
    refresh_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE_NAME),
    settings: Settings = Depends(get_settings),
    issuer: TokenIssuer = Depends(get_token_issuer),
    redis: aioredis.Redis = Depends(get_redis),
) -> MessageResponse:
    return await logout_controller(
        _refresh_token(body, refresh_cookie), settings, issuer, redis, response
    )


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Return the user snapshot carried by the access token",
)
async def me(
    current_user: CurrentUser = Depends(get_current_user),
) -> MeResponse:
    return me_controller(current_user)


# ── Account verification ──────────────────────────────────────────────────────

@router.post(
    "/send-verification-code",
    response_model=MessageResponse,
    summary="Email a 6-digit account verification code",
)
@limiter.limit("3/10minutes")
async def send_verification_code(
    request: Request,
    body: SendVerificationCodeRequest,
    store: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
) -> MessageResponse:
    return await send_verification_code_controller(store, body, settings, mailer)


@router.post(
    "/verify-account",
    response_model=UserResponse,
    summary="Verify the account with the emailed code",
)
async def verify_account(
    body: VerifyAccountRequest,
    store: UserStore = Depends(get_user_store),
) -> UserResponse:
    return await verify_account_controller(store, body)


# ── Password reset ────────────────────────────────────────────────────────────

@router.post(
    "/password-reset/request",
    response_model=MessageResponse,
    summary="Email a single-use password reset link",
)
@limiter.limit("3/10minutes")
async def password_reset_request(
    request: Request,
    body: PasswordResetRequestSchema,
    store: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    mailer: Mailer = Depends(get_mailer),
) -> MessageResponse:
    return await password_reset_request_controller(store, body, issuer, mailer)


@router.post(
    "/password-reset/confirm",
    response_model=MessageResponse,
    summary="Set a new password using the reset token",
)
async def password_reset_confirm(
    response: Response,
    body: PasswordResetConfirmSchema,
    store: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    redis: aioredis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    return await password_reset_confirm_controller(
        store, body, issuer, redis, settings, response
    )


# ── Change password (authenticated) ───────────────────────────────────────────

@router.post(
    "/change-password",
    response_model=TokenResponse,
    summary="Change password; other sessions must log in again",
)
async def change_password(
    response: Response,
    body: ChangePasswordRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
    issuer: TokenIssuer = Depends(get_token_issuer),
    redis: aioredis.Redis = Depends(get_redis),
    mailer: Mailer = Depends(get_mailer),
) -> TokenResponse:
    return await change_password_controller(
        store, current_user, body, settings, issuer, redis, mailer, response
    )
