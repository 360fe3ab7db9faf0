"""User schemas for request/response validation."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from app.models.users import IdentityProvider, UserRole
from app.schemas.validators import (
    require_digit_string,
    validate_dni,
    validate_min_length,
    validate_phone_number,
)

PERU = "pe"


class ProfileUpdate(BaseModel):
    """
    Partial profile update, shared by the settings page and onboarding.

    DNI rules depend on the submitted country: Peruvian users must send a
    valid DNI, everyone else never stores one.
    """

    model_config = ConfigDict(populate_by_name=True)

    username: str | None = None
    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    phone_number: str | None = None
    country: str | None = Field(None, min_length=2, max_length=2)
    dni: str | None = Field(None, alias="DNI")
    bio: str | None = None
    avatar: str | None = None
    time_zone: str | None = None
    week_start: str | None = None
    time_format: Literal[12, 24] | None = None
    locale: str | None = None
    theme: str | None = None
    brand_color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    dark_brand_color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    hide_branding: bool | None = None
    allow_dynamic_booking: bool | None = None
    disable_impersonation: bool | None = None
    completed_onboarding: bool | None = None

    @model_validator(mode="before")
    @classmethod
    def apply_country_rules(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "country" not in data:
            return data
        country = data["country"]
        if country is not None and not isinstance(country, str):
            return data
        data = dict(data)
        country = (country or "").lower()
        data["country"] = country or None
        if country == PERU:
            # Missing DNI must fail on the DNI field itself
            if data.get("DNI") is None and data.get("dni") is None:
                data["DNI"] = ""
        else:
            data.pop("DNI", None)
            data.pop("dni", None)
        return data

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str | None) -> str | None:
        return None if value is None else validate_min_length(value, 4)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str | None) -> str | None:
        return None if value is None else validate_min_length(value, 5)

    @field_validator("first_name", "last_name")
    @classmethod
    def check_name_part(cls, value: str | None) -> str | None:
        return None if value is None else validate_min_length(value, 2)

    @field_validator("phone_number", "dni", mode="before")
    @classmethod
    def check_digit_string(cls, value: Any) -> Any:
        return require_digit_string(value)

    @field_validator("phone_number")
    @classmethod
    def check_phone_number(cls, value: str | None) -> str | None:
        return None if value is None else validate_phone_number(value)

    @field_validator("dni")
    @classmethod
    def check_dni(cls, value: str | None) -> str | None:
        return None if value is None else validate_dni(value)

    @model_validator(mode="after")
    def compose_name(self) -> "ProfileUpdate":
        if self.name is None and self.first_name and self.last_name:
            self.name = f"{self.first_name} {self.last_name}"
        return self

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually sent, DNI excluded (it lives on the profile)."""
        data = self.model_dump(exclude_unset=True, exclude={"dni"})
        if "name" not in data and self.name is not None:
            data["name"] = self.name
        return data


class ProfileDNI(BaseModel):
    """Patient or doctor profile as exposed on the user."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    dni: str | None = Field(None, serialization_alias="DNI")


class UserResponse(BaseModel):
    """User schema for API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: EmailStr
    username: str | None = None
    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole
    identity_provider: IdentityProvider
    email_verified: datetime | None = None
    completed_onboarding: bool
    phone_number: str | None = None
    country: str | None = None
    bio: str | None = None
    avatar: str | None = None
    time_zone: str
    week_start: str
    time_format: int | None = None
    locale: str | None = None
    theme: str | None = None
    brand_color: str
    dark_brand_color: str
    hide_branding: bool
    allow_dynamic_booking: bool | None = None
    disable_impersonation: bool
    patient_profile: ProfileDNI | None = None
    doctor_profile: ProfileDNI | None = None
    created_at: datetime
    updated_at: datetime


class UserInvite(BaseModel):
    """Invitation of a user who has not signed in yet."""

    email: EmailStr
    role: UserRole = UserRole.USER
