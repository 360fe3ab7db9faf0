"""Sign-in identity reconciliation.

Matches an incoming external identity assertion to zero or one local user and
decides whether the sign in may proceed. The checks run in a fixed order:

1. Passwordless e-mail sign in is allowed outright; possessing the link proves
   ownership of the address.
2. Anything other than an OAuth provider is denied.
3. Assertions without an e-mail or a display name are denied.
4. The provider must be a known one; Google assertions must carry a verified
   e-mail.
5. A user already bound to this (provider, provider id) pair signs in, following
   an e-mail change when the new address is free.
6. Otherwise an existing user with the same e-mail is merged (self-hosted and
   verified only), filled in (invitation placeholder) or refused.
7. Otherwise a new user is created and linked.
"""

import enum
from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.config import settings
from app.core.redirects import auth_error_path
from app.core.slugify import username_slug
from app.models.users import IdentityProvider
from app.schemas.auth import IdentityAssertion, ProviderAccount
from app.services.user_service import UserService

logger = get_logger(__name__)

EMAIL_PROVIDER = "email"
OAUTH_ACCOUNT_TYPE = "oauth"

# Exhaustive: an OAuth provider missing here is refused
OAUTH_PROVIDERS: dict[str, IdentityProvider] = {
    "google": IdentityProvider.GOOGLE,
    "facebook": IdentityProvider.FACEBOOK,
}


class SignInErrorCode(str, enum.Enum):
    """Error codes sent to the sign-in error screen."""

    UNVERIFIED_EMAIL = "unverified-email"
    NEW_EMAIL_CONFLICT = "new-email-conflict"
    USE_IDENTITY_LOGIN = "use-identity-login"
    ACCESS_DENIED = "AccessDenied"


class SignInOutcome(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"
    REDIRECT = "redirect"


class SignInDecision(BaseModel):
    """Result of reconciling one sign-in attempt."""

    model_config = {"frozen": True}

    outcome: SignInOutcome
    reason: str
    error_code: SignInErrorCode | None = None
    user_id: UUID | None = None

    @classmethod
    def allow(cls, reason: str, user_id: UUID | None = None) -> "SignInDecision":
        return cls(outcome=SignInOutcome.ALLOW, reason=reason, user_id=user_id)

    @classmethod
    def deny(cls, reason: str) -> "SignInDecision":
        return cls(outcome=SignInOutcome.DENY, reason=reason, error_code=SignInErrorCode.ACCESS_DENIED)

    @classmethod
    def redirect(cls, error_code: SignInErrorCode, reason: str) -> "SignInDecision":
        return cls(outcome=SignInOutcome.REDIRECT, reason=reason, error_code=error_code)

    @property
    def allowed(self) -> bool:
        return self.outcome is SignInOutcome.ALLOW

    @property
    def redirect_path(self) -> str | None:
        """Error screen path for refused attempts, denied ones included."""
        if self.error_code is None:
            return None
        return auth_error_path(self.error_code.value)


class ReconciliationService:
    """Decides how an external identity maps onto local users."""

    def __init__(self, user_service: UserService | None = None, self_hosted: bool | None = None):
        """Initialize with the user service and the deployment mode."""
        self.users = user_service or UserService()
        self.self_hosted = settings.self_hosted if self_hosted is None else self_hosted

    async def sign_in(
        self,
        db: AsyncSession,
        assertion: IdentityAssertion,
        account: ProviderAccount,
    ) -> SignInDecision:
        """
        Reconcile a sign-in attempt.

        Args:
            db: Database session
            assertion: Identity asserted by the provider
            account: Provider account the assertion came from

        Returns:
            The decision; writes (new user, e-mail change, account link) are
            already committed when it is ``allow``
        """
        decision = await self._decide(db, assertion, account)
        logger.info(
            "sign_in_decision",
            provider=account.provider,
            outcome=decision.outcome.value,
            reason=decision.reason,
            error_code=decision.error_code.value if decision.error_code else None,
        )
        return decision

    async def _decide(
        self,
        db: AsyncSession,
        assertion: IdentityAssertion,
        account: ProviderAccount,
    ) -> SignInDecision:
        if account.provider == EMAIL_PROVIDER:
            return SignInDecision.allow("passwordless_email")

        if account.type != OAUTH_ACCOUNT_TYPE:
            return SignInDecision.deny("not_oauth")

        if not assertion.email or not assertion.name:
            return SignInDecision.deny("missing_email_or_name")

        identity_provider = OAUTH_PROVIDERS.get(account.provider)
        if identity_provider is None:
            return SignInDecision.deny("unknown_provider")

        if identity_provider is IdentityProvider.GOOGLE and not assertion.email_verified:
            return SignInDecision.redirect(SignInErrorCode.UNVERIFIED_EMAIL, "google_email_unverified")

        existing = await self.users.get_user_by_identity(
            db, identity_provider, account.provider_account_id
        )
        if existing:
            return await self._sign_in_linked_user(db, existing, assertion, account)

        return await self._sign_in_by_email(db, identity_provider, assertion, account)

    async def _sign_in_linked_user(
        self,
        db: AsyncSession,
        existing: dict,
        assertion: IdentityAssertion,
        account: ProviderAccount,
    ) -> SignInDecision:
        if existing["email"] == assertion.email:
            await self._ensure_account_link(db, existing["id"], account)
            return SignInDecision.allow("existing_identity", existing["id"])

        # The provider reports a new address for this identity
        user_with_new_email = await self.users.get_user_by_email(db, assertion.email)
        if user_with_new_email:
            return SignInDecision.redirect(SignInErrorCode.NEW_EMAIL_CONFLICT, "new_email_taken")

        try:
            await self.users.update_user_fields(db, existing["id"], {"email": assertion.email})
        except IntegrityError:
            await db.rollback()
            return SignInDecision.redirect(SignInErrorCode.NEW_EMAIL_CONFLICT, "new_email_taken")
        return SignInDecision.allow("email_updated", existing["id"])

    async def _sign_in_by_email(
        self,
        db: AsyncSession,
        identity_provider: IdentityProvider,
        assertion: IdentityAssertion,
        account: ProviderAccount,
    ) -> SignInDecision:
        now = datetime.now(UTC)
        existing = await self.users.get_user_by_email(db, assertion.email)

        if existing:
            if self.self_hosted and existing["email_verified"]:
                await self._ensure_account_link(db, existing["id"], account)
                return SignInDecision.allow("merged_verified_email", existing["id"])

            if not existing["password"] and not existing["email_verified"] and not existing["username"]:
                values = {
                    "username": username_slug(assertion.name),
                    "email_verified": now,
                    "name": assertion.name,
                    "identity_provider": identity_provider.value,
                    "identity_provider_id": account.provider_account_id,
                }
                try:
                    await self.users.update_user_fields(db, existing["id"], values)
                except IntegrityError:
                    await db.rollback()
                    return SignInDecision.redirect(
                        SignInErrorCode.USE_IDENTITY_LOGIN, "invitation_race"
                    )
                return SignInDecision.allow("invitation_accepted", existing["id"])

            return SignInDecision.redirect(SignInErrorCode.USE_IDENTITY_LOGIN, "email_registered")

        try:
            user = await self.users.create_user(
                db,
                {
                    "username": username_slug(assertion.name),
                    "email_verified": now,
                    "name": assertion.name,
                    "email": assertion.email,
                    "identity_provider": identity_provider.value,
                    "identity_provider_id": account.provider_account_id,
                },
                commit=False,
            )
            await self.users.link_account(db, user["id"], account, commit=False)
            await db.commit()
        except IntegrityError:
            # A concurrent sign-in claimed the email or identity first
            await db.rollback()
            return SignInDecision.redirect(SignInErrorCode.USE_IDENTITY_LOGIN, "concurrent_sign_up")

        logger.info("user_created", user_id=str(user["id"]), identity_provider=identity_provider.value)
        return SignInDecision.allow("user_created", user["id"])

    async def _ensure_account_link(
        self, db: AsyncSession, user_id: UUID, account: ProviderAccount
    ) -> None:
        """Link the provider account unless the user already has one for it."""
        if await self.users.has_account(db, user_id, account.provider):
            return
        try:
            await self.users.link_account(db, user_id, account)
        except IntegrityError as e:
            # The link is bookkeeping; failing it must not block the sign in
            await db.rollback()
            logger.error("account_link_failed", user_id=str(user_id), error=str(e))
