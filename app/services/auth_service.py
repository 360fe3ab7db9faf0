"""Authentication service: Firebase assertions, sign in and session tokens."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.config import settings
from app.core.exceptions import UnauthorizedException
from app.core.firebase import sign_in_provider, verify_firebase_token
from app.core.redirects import safe_redirect_url
from app.core.redis_client import CacheManager
from app.core.security import (
    IDENTITY_CLAIMS,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    user_claims,
)
from app.models.users import IdentityProvider
from app.schemas.auth import (
    IdentityAssertion,
    ProviderAccount,
    SessionResponse,
    SessionUserResponse,
    Token,
)
from app.services.reconciliation_service import (
    EMAIL_PROVIDER,
    ReconciliationService,
    SignInDecision,
)
from app.services.user_service import UserService

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again and contact us if the problem persists."
INCORRECT_PROVIDER_MESSAGE = "This email is already registered with a different sign-in provider."

# Login screen messages keyed by the error code of the redirect
ERROR_MESSAGES: dict[str, str] = {
    "unverified-email": "Your provider has not verified this email address. Verify it and try again.",
    "new-email-conflict": "The new email address of your account already belongs to another user.",
    "use-identity-login": "An account with this email already exists. Sign in the way you signed up.",
    "AccessDenied": "This sign-in method is not allowed.",
    "IncorrectProvider": INCORRECT_PROVIDER_MESSAGE,
    "OAuthCallback": INCORRECT_PROVIDER_MESSAGE,
    "OAuthAccountNotLinked": INCORRECT_PROVIDER_MESSAGE,
    "Verification": "The sign-in link is no longer valid. It may have been used already or expired.",
}


def error_message(code: str | None) -> str:
    """Message for the login screen; unknown codes get the generic one."""
    return ERROR_MESSAGES.get(code or "", GENERIC_ERROR_MESSAGE)


class SignInResult(BaseModel):
    """Outcome of a sign in: the decision, plus tokens when allowed."""

    decision: SignInDecision
    user: dict[str, Any] | None = None
    tokens: Token | None = None
    redirect_url: str | None = None


class AuthService:
    """Authentication service for handling Firebase and JWT operations."""

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize auth service with cache manager."""
        self.cache = cache_manager
        self.users = UserService(cache_manager)

    async def verify_firebase_id_token(self, id_token: str) -> dict:
        """
        Verify Firebase ID token and extract user information.

        Raises:
            UnauthorizedException: If token verification fails
        """
        try:
            return await verify_firebase_token(id_token)
        except ValueError as e:
            raise UnauthorizedException(str(e), code="invalid_id_token") from e

    @staticmethod
    def assertion_from_firebase(
        decoded_token: dict[str, Any], id_token: str | None = None
    ) -> tuple[IdentityAssertion, ProviderAccount]:
        """Split a decoded Firebase token into identity assertion and provider account."""
        provider, account_type, provider_account_id = sign_in_provider(decoded_token)

        assertion = IdentityAssertion(
            id=provider_account_id,
            email=decoded_token.get("email"),
            name=decoded_token.get("name"),
            email_verified=bool(decoded_token.get("email_verified", False)),
        )
        account = ProviderAccount(
            provider=provider,
            provider_account_id=provider_account_id,
            type=account_type,
            id_token=id_token,
            expires_at=decoded_token.get("exp"),
        )
        return assertion, account

    async def handle_sign_in(
        self,
        db: AsyncSession,
        assertion: IdentityAssertion,
        account: ProviderAccount,
        callback_url: str | None = None,
    ) -> SignInResult:
        """
        Reconcile the identity and issue session tokens when allowed.

        Args:
            db: Database session
            assertion: Identity asserted by the provider
            account: Provider account of the assertion
            callback_url: Requested post sign-in destination

        Returns:
            The sign-in result
        """
        reconciliation = ReconciliationService(self.users)
        decision = await reconciliation.sign_in(db, assertion, account)
        if not decision.allowed:
            return SignInResult(decision=decision)

        user = await self._signed_in_user(db, decision, assertion, account)
        await self.users.update_last_login(db, user["id"])

        return SignInResult(
            decision=decision,
            user=user,
            tokens=self.create_tokens(user),
            redirect_url=safe_redirect_url(callback_url),
        )

    async def _signed_in_user(
        self,
        db: AsyncSession,
        decision: SignInDecision,
        assertion: IdentityAssertion,
        account: ProviderAccount,
    ) -> dict:
        """Canonical user behind an allowed sign in."""
        user = None
        if decision.user_id is not None:
            user = await self.users.get_user_by_id(db, decision.user_id)
        if user is None and assertion.email:
            user = await self.users.get_user_by_email(db, assertion.email)

        if user is None and account.provider == EMAIL_PROVIDER and assertion.email:
            # First magic link sign in creates the user, as the email adapter would
            user = await self.users.create_user(
                db,
                {
                    "email": assertion.email,
                    "name": assertion.name,
                    "email_verified": datetime.now(UTC),
                    "identity_provider": IdentityProvider.MAGIC.value,
                },
            )
            logger.info("magic_link_user_created", user_id=str(user["id"]))

        if user is None:
            raise UnauthorizedException("Signed in identity has no user", code="user-not-found")
        return user

    def create_tokens(self, user: dict, impersonated_by: UUID | None = None) -> Token:
        """
        Create access and refresh tokens carrying the user's identity claims.

        Args:
            user: User row
            impersonated_by: Id of the admin impersonating the user, if any

        Returns:
            Token pair (access and refresh)
        """
        claims = user_claims(user)
        if impersonated_by is not None:
            claims["impersonatedByUID"] = str(impersonated_by)
        return self._tokens_from_claims(claims)

    @staticmethod
    def _tokens_from_claims(claims: dict[str, Any]) -> Token:
        return Token(
            access_token=create_access_token(
                data=claims,
                expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
            ),
            refresh_token=create_refresh_token(
                data=claims,
                expires_delta=timedelta(days=settings.refresh_token_expire_days),
            ),
            token_type="bearer",
        )

    async def refresh_access_token(self, db: AsyncSession, refresh_token: str) -> Token:
        """
        Create new tokens from a refresh token.

        The identity claims are re-read from the database, by user id and then by
        e-mail, so role and username changes reach an active session without
        signing in again. If the user is gone the claims are carried over unchanged.

        Raises:
            UnauthorizedException: If refresh token is invalid or revoked
        """
        payload = decode_refresh_token(refresh_token)
        if payload is None or payload.get("sub") is None:
            raise UnauthorizedException("Invalid refresh token")

        if self.cache and self.cache.exists(f"blacklist:{refresh_token}"):
            raise UnauthorizedException("Token has been revoked")

        claims = {key: payload.get(key) for key in ("sub", *IDENTITY_CLAIMS)}
        if payload.get("impersonatedByUID"):
            claims["impersonatedByUID"] = payload["impersonatedByUID"]

        user = await self._user_by_subject(db, payload["sub"])
        if user is None and payload.get("email"):
            user = await self.users.get_user_by_email(db, payload["email"])
        if user:
            claims.update(user_claims(user))
        else:
            logger.warning("refresh_user_not_found", sub=payload.get("sub"))

        return self._tokens_from_claims(claims)

    async def _user_by_subject(self, db: AsyncSession, subject: str) -> dict | None:
        try:
            user_id = UUID(str(subject))
        except ValueError:
            return None
        return await self.users.get_user_by_id(db, user_id)

    def revoke_token(self, token: str, ttl: int | None = None) -> None:
        """Revoke a refresh token by adding it to the blacklist."""
        if self.cache:
            self.cache.set(
                f"blacklist:{token}",
                "1",
                ttl=ttl or settings.refresh_token_expire_days * 86400,
            )

    @staticmethod
    def build_session(claims: dict[str, Any], has_valid_license: bool) -> SessionResponse:
        """Shape the session exposed to server rendered pages from access token claims."""
        return SessionResponse(
            user=SessionUserResponse(
                id=claims["id"],
                email=claims["email"],
                name=claims.get("name"),
                username=claims.get("username"),
                role=claims["role"],
                impersonated_by_uid=claims.get("impersonatedByUID"),
            ),
            has_valid_license=has_valid_license,
            expires=datetime.fromtimestamp(claims["exp"], tz=UTC),
        )
