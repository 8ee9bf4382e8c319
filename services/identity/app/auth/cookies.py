"""
Identity service — token cookies.

Both tokens travel as HTTP-only cookies. Production serves the frontend from
another origin, so cookies there are ``Secure`` + ``SameSite=None``; every
other environment uses ``SameSite=Strict``.
"""
from __future__ import annotations

from fastapi import Response

from app.auth.constants import ACCESS_COOKIE_NAME, REFRESH_COOKIE_NAME
from app.config import Settings


def _cookie_policy(settings: Settings) -> dict:
    if settings.is_production:
        return {"httponly": True, "secure": True, "samesite": "none", "path": "/"}
    return {"httponly": True, "secure": False, "samesite": "strict", "path": "/"}


def set_access_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        ACCESS_COOKIE_NAME,
        token,
        max_age=settings.jwt_access_expire_seconds,
        **_cookie_policy(settings),
    )


def set_refresh_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        token,
        max_age=settings.jwt_refresh_expire_seconds,
        **_cookie_policy(settings),
    )


def set_auth_cookies(
    response: Response, access_token: str, refresh_token: str, settings: Settings
) -> None:
    set_access_cookie(response, access_token, settings)
    set_refresh_cookie(response, refresh_token, settings)


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    policy = _cookie_policy(settings)
    for name in (ACCESS_COOKIE_NAME, REFRESH_COOKIE_NAME):
        response.delete_cookie(
            name,
            path=policy["path"],
            secure=policy["secure"],
            httponly=policy["httponly"],
            samesite=policy["samesite"],
        )
