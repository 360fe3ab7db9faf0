"""User service for business logic."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.core.exceptions import ConflictException, NotFoundException
from app.core.redis_client import CacheManager
from app.core.slugify import slugify
from app.models.accounts import accounts
from app.models.national_ids import national_ids
from app.models.profiles import doctor_profiles, patient_profiles
from app.models.users import IdentityProvider, UserRole, users
from app.schemas.auth import ProviderAccount
from app.schemas.users import ProfileUpdate, UserInvite
from app.services.availability_service import AvailabilityService

logger = get_logger(__name__)


def profile_table_for(role: str):
    """Doctors (ADMIN) keep their DNI on doctor_profiles, patients on patient_profiles."""
    return doctor_profiles if role == UserRole.ADMIN.value else patient_profiles


def _conflict_code(error: IntegrityError) -> str:
    detail = str(error.orig).lower()
    if "national_ids" in detail or "dni" in detail:
        return "dni_taken"
    if "username" in detail:
        return "username_taken"
    if "email" in detail:
        return "email_taken"
    return "conflict"


class UserService:
    """Service for user operations."""

    # Cache TTL in seconds (30 minutes for the current user query)
    USER_CACHE_TTL = 1800

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def user_cache_key(user_id: UUID | str) -> str:
        """Cache key of the "current user" query."""
        return f"user:{user_id}"

    def invalidate(self, user_id: UUID | str) -> None:
        if self.cache:
            self.cache.delete(self.user_cache_key(user_id))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _first(self, db: AsyncSession, query) -> dict | None:
        result = await db.execute(query)
        row = result.mappings().first()
        return dict(row) if row else None

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Get user by internal ID."""
        return await self._first(db, select(users).where(users.c.id == user_id))

    async def get_user_by_email(self, db: AsyncSession, email: str) -> dict | None:
        """Get user by email."""
        return await self._first(db, select(users).where(users.c.email == email))

    async def get_user_by_username(self, db: AsyncSession, username: str) -> dict | None:
        """Get user by username."""
        return await self._first(db, select(users).where(users.c.username == username))

    async def get_user_by_identity(
        self, db: AsyncSession, identity_provider: IdentityProvider, identity_provider_id: str
    ) -> dict | None:
        """Get the user owning an external identity."""
        query = select(users).where(
            users.c.identity_provider == identity_provider.value,
            users.c.identity_provider_id == identity_provider_id,
        )
        return await self._first(db, query)

    async def get_user_with_profiles(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Get user together with the DNI carrying profiles."""
        user = await self.get_user_by_id(db, user_id)
        if not user:
            return None

        for key, table in (("patient_profile", patient_profiles), ("doctor_profile", doctor_profiles)):
            user[key] = await self._first(
                db, select(table.c.id, table.c.dni).where(table.c.user_id == user_id)
            )
        return user

    async def has_account(self, db: AsyncSession, user_id: UUID, provider: str) -> bool:
        """Whether the user already has an account link for ``provider``."""
        query = select(accounts.c.id).where(
            accounts.c.user_id == user_id,
            accounts.c.provider == provider,
        )
        result = await db.execute(query)
        return result.first() is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_user(self, db: AsyncSession, values: dict[str, Any], commit: bool = True) -> dict:
        """Create a new user."""
        result = await db.execute(insert(users).values(**values).returning(*users.c))
        user = result.mappings().first()
        if not user:
            raise ValueError("Failed to create user")
        if commit:
            await db.commit()
        return dict(user)

    async def update_user_fields(
        self, db: AsyncSession, user_id: UUID, values: dict[str, Any], commit: bool = True
    ) -> dict | None:
        """Update columns of a user and invalidate its cached copy."""
        values = {**values, "updated_at": datetime.now(UTC)}
        query = update(users).where(users.c.id == user_id).values(**values).returning(*users.c)
        result = await db.execute(query)
        user = result.mappings().first()
        if commit:
            await db.commit()
        self.invalidate(user_id)
        return dict(user) if user else None

    async def link_account(
        self, db: AsyncSession, user_id: UUID, account: ProviderAccount, commit: bool = True
    ) -> None:
        """Record the provider account a user signed in with."""
        await db.execute(
            insert(accounts).values(
                user_id=user_id,
                type=account.type,
                provider=account.provider,
                provider_account_id=account.provider_account_id,
                access_token=account.access_token,
                refresh_token=account.refresh_token,
                id_token=account.id_token,
                expires_at=account.expires_at,
                token_type=account.token_type,
                scope=account.scope,
            )
        )
        if commit:
            await db.commit()

    async def update_last_login(self, db: AsyncSession, user_id: UUID) -> None:
        """Update user's last login timestamp."""
        query = update(users).where(users.c.id == user_id).values(last_login_at=datetime.now(UTC))
        await db.execute(query)
        await db.commit()
        self.invalidate(user_id)

    async def invite_user(self, db: AsyncSession, invite: UserInvite) -> dict:
        """
        Create an invitation placeholder.

        The placeholder has no password, username or verified email; the first
        external sign-in with the same email fills it in.
        """
        if await self.get_user_by_email(db, invite.email):
            raise ConflictException("A user with this email already exists", code="email_taken")

        user = await self.create_user(db, {"email": invite.email, "role": invite.role.value})
        logger.info("user_invited", user_id=str(user["id"]), role=invite.role.value)
        return user

    async def mark_onboarded(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Mark user as having completed onboarding."""
        return await self.update_user_fields(db, user_id, {"completed_onboarding": True})

    async def delete_user(self, db: AsyncSession, user_id: UUID) -> bool:
        """Delete a user; accounts, profiles and national ID claims cascade."""
        result = await db.execute(delete(users).where(users.c.id == user_id))
        await db.commit()
        self.invalidate(user_id)
        return result.rowcount > 0  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def update_profile(self, db: AsyncSession, user: dict, data: ProfileUpdate) -> dict:
        """
        Validate uniqueness and persist a profile update.

        Username and DNI availability is re-checked here even though the client
        already asked the availability endpoints; the unique indexes catch the
        remaining race between two concurrent submissions.

        Args:
            db: Database session
            user: Current user row
            data: Validated update

        Returns:
            Updated user with profiles

        Raises:
            ConflictException: username, email or DNI already in use
        """
        user_id = user["id"]
        values = data.changes()

        if "username" in values:
            values["username"] = slugify(values["username"])
            if values["username"] != user.get("username"):
                owner = await self.get_user_by_username(db, values["username"])
                if owner and owner["id"] != user_id:
                    raise ConflictException("Username already taken", code="username_taken")

        if "email" in values and values["email"] != user["email"]:
            if await self.get_user_by_email(db, values["email"]):
                raise ConflictException("Email already registered", code="email_taken")
            # A new address is unverified until the user signs in with it
            values["email_verified"] = None

        try:
            if data.dni is not None:
                await self._save_dni(db, user, data.dni)
            if values:
                await self.update_user_fields(db, user_id, values, commit=False)
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            code = _conflict_code(e)
            logger.warning("profile_update_conflict", user_id=str(user_id), code=code)
            raise ConflictException("Profile data already in use", code=code) from e

        self.invalidate(user_id)
        updated = await self.get_user_with_profiles(db, user_id)
        if not updated:
            raise NotFoundException("User not found")
        logger.info("profile_updated", user_id=str(user_id), fields=sorted(values))
        return updated

    async def _save_dni(self, db: AsyncSession, user: dict, dni: str) -> None:
        table = profile_table_for(user["role"])
        user_id = user["id"]

        current = await self._first(db, select(table).where(table.c.user_id == user_id))
        if current and current["dni"] == dni:
            return

        if await AvailabilityService().is_dni_taken(db, dni, exclude_user_id=user_id):
            raise ConflictException("DNI already registered", code="dni_taken")

        # Move the user's claim in the cross-profile registry to the new DNI
        await db.execute(delete(national_ids).where(national_ids.c.user_id == user_id))
        await db.execute(insert(national_ids).values(dni=dni, user_id=user_id))

        now = datetime.now(UTC)
        if current:
            await db.execute(
                update(table).where(table.c.user_id == user_id).values(dni=dni, updated_at=now)
            )
        else:
            # Profiles are created lazily on the first saved DNI
            await db.execute(insert(table).values(user_id=user_id, dni=dni))
