"""Identity schema: users

Revision ID: 001
Revises:
Create Date: 2026-10-18

Tables created:
  - users    Accounts, profile fields, role, verification code pair and
             password reset pair

The role column is a VARCHAR (non-native enum) so the same model also runs
against SQLite in tests. Constraint names follow the naming convention on
shared.database.Base.

Downgrade: drops the users table.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# ─────────────────────────────────────────────────────────────────────────────
#  UPGRADE
# ─────────────────────────────────────────────────────────────────────────────

def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        # ── Profile ──────────────────────────────────────────────────────────
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("bio", sa.Text(), nullable=False),
        sa.Column("profile_avatar", sa.String(500), nullable=True),
        sa.Column(
            "role",
            sa.Enum(
                "user",
                "admin",
                name="userrole",
                native_enum=False,
                length=16,
            ),
            nullable=False,
            server_default="user",
        ),
        # ── Flags ────────────────────────────────────────────────────────────
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "is_account_verified", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        # ── Verification code pair ───────────────────────────────────────────
        sa.Column("verify_otp", sa.String(255), nullable=True),
        sa.Column("verify_otp_expires", sa.DateTime(timezone=True), nullable=True),
        # ── Password reset pair ──────────────────────────────────────────────
        sa.Column("reset_token", sa.String(64), nullable=True),
        sa.Column("reset_token_expires", sa.DateTime(timezone=True), nullable=True),
        # ── Timestamps ───────────────────────────────────────────────────────
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.CheckConstraint(
            "(verify_otp IS NULL) = (verify_otp_expires IS NULL)",
            name="ck_users_verify_otp_pair",
        ),
        sa.CheckConstraint(
            "(reset_token IS NULL) = (reset_token_expires IS NULL)",
            name="ck_users_reset_token_pair",
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])


# ─────────────────────────────────────────────────────────────────────────────
#  DOWNGRADE
# ─────────────────────────────────────────────────────────────────────────────

def downgrade() -> None:
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
