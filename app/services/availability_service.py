"""DNI and username availability checks."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.config import settings
from app.core.slugify import slugify
from app.models.profiles import doctor_profiles, patient_profiles
from app.models.users import users
from app.schemas.availability import DNIAvailabilityResponse, UsernameAvailabilityResponse

logger = get_logger(__name__)


class AvailabilityService:
    """Read-only uniqueness checks backing the interactive form feedback."""

    def __init__(self, premium_usernames: set[str] | None = None):
        """Initialize with the usernames reserved for the premium tier."""
        self.premium_usernames = (
            settings.premium_usernames if premium_usernames is None else premium_usernames
        )

    async def is_dni_taken(
        self, db: AsyncSession, dni: str, exclude_user_id: UUID | None = None
    ) -> bool:
        """
        Look the DNI up in patient_profiles, then doctor_profiles.

        Two point lookups rather than a union; a hit in either table means the
        DNI is taken.
        """
        for table in (patient_profiles, doctor_profiles):
            query = select(table.c.user_id).where(table.c.dni == dni)
            if exclude_user_id is not None:
                query = query.where(table.c.user_id != exclude_user_id)
            result = await db.execute(query)
            if result.first() is not None:
                return True
        return False

    async def check_dni(self, db: AsyncSession, dni: str) -> DNIAvailabilityResponse:
        """Report whether a well-formed DNI is still free."""
        available = not await self.is_dni_taken(db, dni)
        logger.info("dni_checked", available=available)
        return DNIAvailabilityResponse(available=available)

    async def check_username(self, db: AsyncSession, username: str) -> UsernameAvailabilityResponse:
        """Report whether the slug of ``username`` is free and whether it is premium."""
        slug = slugify(username)
        premium = slug in self.premium_usernames

        result = await db.execute(select(users.c.username).where(users.c.username == slug))
        if result.first() is not None:
            return UsernameAvailabilityResponse(
                available=False,
                premium=premium,
                message="A user exists with that username",
            )
        return UsernameAvailabilityResponse(available=True, premium=premium)
