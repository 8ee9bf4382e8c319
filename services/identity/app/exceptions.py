"""
Identity service — domain-specific HTTP exceptions.

All exceptions use preset status codes and detail messages so that callers
never need to specify these at the call site.  The shared http_error_handler
renders them as ``{"detail": ..., "request_id": ...}``.
"""
from fastapi import HTTPException, status


# ── Authentication ────────────────────────────────────────────────────────────

class InvalidCredentials(HTTPException):
    """Unknown email and wrong password share this error (no enumeration)."""

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )


class NotAuthenticated(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated.",
            headers={"WWW-Authenticate": "Bearer"},
        )


class TokenExpired(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired.",
        )


class TokenInvalid(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is invalid.",
        )


class SessionNotFound(HTTPException):
    """Refresh token is valid but its user no longer exists."""

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session not found. Please log in again.",
        )


class IncorrectPassword(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect.",
        )


# ── Registration / conflict ───────────────────────────────────────────────────

class UserAlreadyExists(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists.",
        )


# ── Account state ─────────────────────────────────────────────────────────────

class UserNotFound(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found.",
        )


class UserInactive(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account has been deactivated.",
        )


class AccountNotVerified(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Please verify your account before logging in.",
        )


class AdminRequired(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. This action is restricted to admins only.",
        )


class LastAdmin(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="The last remaining admin cannot be demoted or deleted.",
        )


class CannotModifySelf(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="Admins cannot deactivate or delete their own account here.",
        )


# ── Account verification (OTP) ────────────────────────────────────────────────

class AlreadyVerified(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="This account is already verified.",
        )


class InvalidOTP(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid verification code.",
        )


class OTPExpired(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_410_GONE,
            detail="Verification code has expired. Please request a new code.",
        )


# ── Password reset ────────────────────────────────────────────────────────────

class InvalidResetToken(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password reset link is invalid or has already been used.",
        )


class ResetTokenExpired(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_410_GONE,
            detail="Password reset link has expired. Please request a new one.",
        )


# ── Email delivery ────────────────────────────────────────────────────────────

class EmailDeliveryFailed(HTTPException):
    """Every configured mail provider failed; persisted state is kept."""

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Email delivery is temporarily unavailable. Please try again shortly.",
        )
