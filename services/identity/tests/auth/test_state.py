from datetime import datetime, timedelta, timezone

from app.auth.models import User
from app.auth.state import (
    CodePending,
    Normal,
    ResetPending,
    Unverified,
    Verified,
    code_pending_patch,
    reset_consumed_patch,
    reset_state,
    verification_state,
    verified_patch,
)


def _user(**fields) -> User:
    return User(username="ada", email="ada@example.com", password_hash="x", **fields)


def test_verification_state_variants() -> None:
    expires = datetime.now(timezone.utc) + timedelta(minutes=5)
    assert isinstance(verification_state(_user(is_account_verified=False)), Unverified)
    assert isinstance(verification_state(_user(is_account_verified=True)), Verified)

    pending = verification_state(
        _user(is_account_verified=False, verify_otp="hash", verify_otp_expires=expires)
    )
    assert pending == CodePending("hash", expires)
    assert not pending.is_expired()


def test_naive_expiry_is_treated_as_utc() -> None:
    past = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(seconds=1)
    assert CodePending("hash", past).is_expired()


def test_reset_state_variants() -> None:
    expires = datetime.now(timezone.utc) - timedelta(seconds=1)
    assert isinstance(reset_state(_user()), Normal)
    pending = reset_state(_user(reset_token="digest", reset_token_expires=expires))
    assert isinstance(pending, ResetPending)
    assert pending.is_expired()


def test_patches_write_both_halves_of_a_pair() -> None:
    expires = datetime.now(timezone.utc)
    assert code_pending_patch("h", expires).keys() == {"verify_otp", "verify_otp_expires"}
    assert verified_patch() == {
        "is_account_verified": True,
        "verify_otp": None,
        "verify_otp_expires": None,
    }
    consumed = reset_consumed_patch("new-hash")
    assert consumed["reset_token"] is None
    assert consumed["reset_token_expires"] is None
    assert consumed["password_hash"] == "new-hash"
