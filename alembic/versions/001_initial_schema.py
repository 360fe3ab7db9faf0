"""Create users, account links, profiles and national id registry

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    ]


def _profile_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("dni", sa.String(8), nullable=True),
        *_timestamps(),
    )
    op.create_index(f"ix_{name}_user_id", name, ["user_id"], unique=True)
    op.create_index(f"ix_{name}_dni", name, ["dni"], unique=True)


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("username", sa.Text(), nullable=True),
        sa.Column("email_verified", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("password", sa.Text(), nullable=True),
        sa.Column(
            "identity_provider", sa.String(20), nullable=False, server_default=sa.text("'LOCAL'")
        ),
        sa.Column("identity_provider_id", sa.Text(), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'USER'")),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("country", sa.String(2), nullable=True),
        sa.Column(
            "time_zone", sa.Text(), nullable=False, server_default=sa.text("'America/Lima'")
        ),
        sa.Column("locale", sa.String(10), nullable=True),
        sa.Column("theme", sa.String(20), nullable=True),
        sa.Column("week_start", sa.String(10), nullable=False, server_default=sa.text("'Sunday'")),
        sa.Column("time_format", sa.Integer(), nullable=True, server_default=sa.text("12")),
        sa.Column(
            "brand_color", sa.String(10), nullable=False, server_default=sa.text("'#292929'")
        ),
        sa.Column(
            "dark_brand_color", sa.String(10), nullable=False, server_default=sa.text("'#fafafa'")
        ),
        sa.Column("hide_branding", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "allow_dynamic_booking", sa.Boolean(), nullable=True, server_default=sa.text("true")
        ),
        sa.Column(
            "disable_impersonation", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column(
            "completed_onboarding", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        *_timestamps(),
        sa.Column("last_login_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "identity_provider",
            "identity_provider_id",
            name="uq_users_identity_provider_id",
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("provider_account_id", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.Integer(), nullable=True),
        sa.Column("token_type", sa.String(50), nullable=True),
        sa.Column("scope", sa.Text(), nullable=True),
        sa.Column("id_token", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.UniqueConstraint(
            "provider", "provider_account_id", name="uq_accounts_provider_account"
        ),
    )
    op.create_index("ix_accounts_user_id", "accounts", ["user_id"])

    _profile_table("patient_profiles")
    _profile_table("doctor_profiles")

    op.create_table(
        "national_ids",
        sa.Column("dni", sa.String(8), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("national_ids")
    op.drop_table("doctor_profiles")
    op.drop_table("patient_profiles")
    op.drop_index("ix_accounts_user_id", table_name="accounts")
    op.drop_table("accounts")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
