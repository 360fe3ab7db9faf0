"""National ID registry using SQLAlchemy Core.

A DNI lives in either ``patient_profiles`` or ``doctor_profiles``. Neither
table can see the other's unique index, so every accepted DNI is also claimed
here. The primary key makes the claim race free across both profile kinds.
"""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    String,
    Table,
    Uuid,
    func,
)

from app.models.base import metadata

national_ids = Table(
    "national_ids",
    metadata,
    Column("dni", String(8), primary_key=True),
    Column(
        "user_id",
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
