"""User model definition using SQLAlchemy Core."""

import enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)

from app.models.base import metadata


class UserRole(str, enum.Enum):
    """Permission role. ADMIN users are doctors, USER users are patients."""

    USER = "USER"
    ADMIN = "ADMIN"


class IdentityProvider(str, enum.Enum):
    """How a user authenticated."""

    LOCAL = "LOCAL"
    GOOGLE = "GOOGLE"
    FACEBOOK = "FACEBOOK"
    MAGIC = "MAGIC"


users = Table(
    "users",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    # Identity
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("username", Text, unique=True, index=True),
    Column("email_verified", DateTime(timezone=True)),
    Column("password", Text),
    Column(
        "identity_provider",
        String(20),
        nullable=False,
        server_default=text("'LOCAL'"),
    ),
    Column("identity_provider_id", Text),
    Column("role", String(20), nullable=False, server_default=text("'USER'")),
    # Profile info (mutable)
    Column("name", Text),
    Column("first_name", Text),
    Column("last_name", Text),
    Column("bio", Text),
    Column("avatar", Text),
    Column("phone_number", String(20)),
    Column("country", String(2)),
    # Preferences
    Column("time_zone", Text, nullable=False, server_default=text("'America/Lima'")),
    Column("locale", String(10)),
    Column("theme", String(20)),
    Column("week_start", String(10), nullable=False, server_default=text("'Sunday'")),
    Column("time_format", Integer, server_default=text("12")),
    Column("brand_color", String(10), nullable=False, server_default=text("'#292929'")),
    Column("dark_brand_color", String(10), nullable=False, server_default=text("'#fafafa'")),
    Column("hide_branding", Boolean, nullable=False, server_default=text("false")),
    Column("allow_dynamic_booking", Boolean, server_default=text("true")),
    Column("disable_impersonation", Boolean, nullable=False, server_default=text("false")),
    # Account state
    Column("completed_onboarding", Boolean, nullable=False, server_default=text("false")),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("last_login_at", DateTime(timezone=True)),
    # One user per external identity
    UniqueConstraint(
        "identity_provider",
        "identity_provider_id",
        name="uq_users_identity_provider_id",
    ),
)
