from functools import lru_cache

from passlib.context import CryptContext

from app.auth.constants import MAX_PASSWORD_BYTES

context = CryptContext(schemes=["argon2"], deprecated="auto")


def configure_hashing(rounds: int) -> None:
    """Set the argon2 time cost used for new hashes (existing hashes still verify)."""
    context.update(argon2__rounds=rounds)
    dummy_password_hash.cache_clear()


def _check_length(password: str) -> None:
    if not password:
        raise ValueError("Password must not be empty")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def hash_password(password: str) -> str:
    _check_length(password)
    return context.hash(password)


@lru_cache
def dummy_password_hash() -> str:
    """A hash no password matches, verified against when the account is unknown."""
    return context.hash("insighta-dummy-password")


def verify_password(plain: str, hashed: str) -> bool:
    """
    Constant-time check of ``plain`` against ``hashed``.

    Returns False on mismatch; raises ValueError only when ``hashed`` is not a
    recognisable hash.
    """
    try:
        _check_length(plain)
    except ValueError:
        return False
    return context.verify(plain, hashed)
