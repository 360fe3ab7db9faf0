"""Per-role profile tables.

A user owns at most one patient profile and one doctor profile. Both carry the
DNI, which is unique within each table; uniqueness across the two tables is
held by ``national_ids``.
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, Table, Uuid, func

from app.models.base import metadata


def _profile_table(name: str) -> Table:
    return Table(
        name,
        metadata,
        Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
        Column(
            "user_id",
            Uuid(as_uuid=True),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
            index=True,
        ),
        # 8 ASCII digits, leading zeros kept
        Column("dni", String(8), unique=True, index=True),
        Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
        Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    )


patient_profiles = _profile_table("patient_profiles")
doctor_profiles = _profile_table("doctor_profiles")
