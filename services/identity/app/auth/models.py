"""
Identity service — SQLAlchemy ORM model for the auth domain.

Tables owned by this module:
  - users    Accounts, profile fields, role, and the two persisted
             side-channel pairs (verification code, password reset token)

Column types are dialect-neutral so the same model runs on PostgreSQL in
production and SQLite in tests.
"""
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from shared.database.postgres import Base

from app.auth.constants import DEFAULT_BIO, UserRole


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        # Pair invariants: code and its expiry, reset digest and its expiry,
        # are always set or cleared together.
        sa.CheckConstraint(
            "(verify_otp IS NULL) = (verify_otp_expires IS NULL)",
            name="verify_otp_pair",
        ),
        sa.CheckConstraint(
            "(reset_token IS NULL) = (reset_token_expires IS NULL)",
            name="reset_token_pair",
        ),
    )
    # Fetch server-side timestamps on INSERT; async sessions cannot lazy-load.
    __mapper_args__ = {"eager_defaults": True}

    # ── Primary key ──────────────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Authentication identifiers ────────────────────────────────────────────
    # Stored exactly as submitted; lookups are case-sensitive.
    email: Mapped[str] = mapped_column(
        sa.String(255), unique=True, nullable=False, index=True
    )
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)

    # ── Profile fields ────────────────────────────────────────────────────────
    username: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    bio: Mapped[str] = mapped_column(
        sa.Text(), nullable=False, default=DEFAULT_BIO
    )
    profile_avatar: Mapped[str | None] = mapped_column(
        sa.String(500), nullable=True
    )

    role: Mapped[UserRole] = mapped_column(
        sa.Enum(
            UserRole,
            name="userrole",
            native_enum=False,
            length=16,
            values_callable=lambda e: [x.value for x in e],
        ),
        nullable=False,
        default=UserRole.USER,
        index=True,
    )

    # ── Account flags ─────────────────────────────────────────────────────────
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean(), nullable=False, default=True
    )
    is_account_verified: Mapped[bool] = mapped_column(
        sa.Boolean(), nullable=False, default=False
    )

    # ── Verification code pair (argon2 hash of the 6-digit code) ─────────────
    verify_otp: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    verify_otp_expires: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # ── Password reset pair (SHA-256 digest of the issued reset token) ───────
    reset_token: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
    reset_token_expires: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # ── Timestamps ────────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role.value}>"
