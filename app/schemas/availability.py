"""Availability check schemas (DNI and username)."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.validators import require_digit_string, validate_dni


class DNIAvailabilityRequest(BaseModel):
    """Body of ``POST /api/dni``."""

    model_config = ConfigDict(populate_by_name=True)

    dni: str = Field(..., alias="DNI")

    @field_validator("dni", mode="before")
    @classmethod
    def check_digit_string(cls, value: object) -> object:
        return require_digit_string(value)

    @field_validator("dni")
    @classmethod
    def check_dni(cls, value: str) -> str:
        return validate_dni(value)


class DNIAvailabilityResponse(BaseModel):
    available: bool


class UsernameAvailabilityRequest(BaseModel):
    username: str = Field(..., min_length=1)


class UsernameAvailabilityResponse(BaseModel):
    available: bool
    premium: bool
    message: str | None = None
