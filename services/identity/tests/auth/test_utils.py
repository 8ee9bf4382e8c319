import pytest

from app.auth.constants import MAX_PASSWORD_BYTES
from app.auth.utils import hash_password, verify_password


def test_hash_is_salted_and_verifies() -> None:
    first = hash_password("s3cret-password")
    second = hash_password("s3cret-password")
    assert first != second
    assert first.startswith("$argon2")
    assert verify_password("s3cret-password", first)
    assert verify_password("s3cret-password", second)


def test_wrong_password_returns_false() -> None:
    hashed = hash_password("s3cret-password")
    assert verify_password("not-the-password", hashed) is False


@pytest.mark.parametrize("password", ["", "x" * (MAX_PASSWORD_BYTES + 1)])
def test_hash_rejects_empty_and_oversized(password: str) -> None:
    with pytest.raises(ValueError):
        hash_password(password)


def test_verify_rejects_empty_and_oversized_candidates() -> None:
    hashed = hash_password("s3cret-password")
    assert verify_password("", hashed) is False
    assert verify_password("x" * (MAX_PASSWORD_BYTES + 1), hashed) is False


def test_length_limit_counts_bytes() -> None:
    # 4 bytes per character in UTF-8
    with pytest.raises(ValueError):
        hash_password("\U0001F600" * (MAX_PASSWORD_BYTES // 4 + 1))


def test_malformed_hash_raises() -> None:
    with pytest.raises(ValueError):
        verify_password("s3cret-password", "not-a-hash")
