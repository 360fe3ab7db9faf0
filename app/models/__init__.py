"""Database models."""

from app.models.accounts import accounts
from app.models.base import metadata
from app.models.national_ids import national_ids
from app.models.profiles import doctor_profiles, patient_profiles
from app.models.users import IdentityProvider, UserRole, users

__all__ = [
    "IdentityProvider",
    "UserRole",
    "accounts",
    "doctor_profiles",
    "metadata",
    "national_ids",
    "patient_profiles",
    "users",
]
