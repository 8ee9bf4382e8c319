import logging
from uuid import UUID

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from shared.auth.config import AuthSettings
from shared.constants import Role
from shared.models.user import CurrentUser

logger = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)

ACCESS_COOKIE_NAME = "access_token"


def _decode_token(token: str, settings: AuthSettings) -> dict:
    payload = jwt.decode(
        token,
        settings.access_secret,
        algorithms=[settings.algorithm],
        issuer=settings.issuer,
        audience=settings.audience,
    )
    if payload.get("typ") != "access":
        raise ValueError("Not an access token")
    return payload


def _payload_to_user(payload: dict) -> CurrentUser:
    user_id = payload.get("sub")
    if not user_id:
        raise ValueError("Missing sub in token")
    snapshot = payload.get("user") or {}
    return CurrentUser(
        id=UUID(user_id),
        email=snapshot.get("email") or "",
        username=snapshot.get("username") or "",
        role=Role(snapshot.get("role") or Role.USER.value),
        is_account_verified=bool(snapshot.get("is_account_verified")),
    )


def get_auth_settings() -> AuthSettings:
    return AuthSettings()


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    access_cookie: str | None = Cookie(default=None, alias=ACCESS_COOKIE_NAME),
    settings: AuthSettings = Depends(get_auth_settings),
) -> CurrentUser | None:
    # Cookie first (browser clients), then Authorization header
    token = access_cookie or (credentials.credentials if credentials else None)
    if not token:
        return None
    try:
        payload = _decode_token(token, settings)
        return _payload_to_user(payload)
    except ExpiredSignatureError:
        logger.info("Rejected access token: expired")
        return None
    except (JWTError, ValueError, KeyError) as exc:
        logger.info("Rejected access token: %s", exc)
        return None


async def get_current_user_required(
    user: CurrentUser | None = Depends(get_current_user_optional),
) -> CurrentUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
