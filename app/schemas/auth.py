"""Authentication schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.users import UserRole


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Token refresh request schema."""

    refresh_token: str


class FirebaseSignInRequest(BaseModel):
    """Firebase ID token authentication request."""

    id_token: str = Field(..., description="Firebase ID token from the web or mobile client")
    callback_url: str | None = Field(
        None,
        description="Where to send the user after sign in; must be on the web app origin",
    )


class IdentityAssertion(BaseModel):
    """What the external provider says about the person signing in."""

    id: str
    email: EmailStr | None = None
    name: str | None = None
    email_verified: bool = False


class ProviderAccount(BaseModel):
    """The provider account the assertion came from."""

    provider: str
    provider_account_id: str
    type: str
    access_token: str | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    expires_at: int | None = None
    token_type: str | None = None
    scope: str | None = None


class SessionUserResponse(BaseModel):
    """Signed in user as exposed on the session and login responses."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    email: EmailStr
    name: str | None = None
    username: str | None = None
    role: UserRole
    impersonated_by_uid: UUID | None = Field(None, serialization_alias="impersonatedByUID")


class LoginResponse(BaseModel):
    """Login response with tokens and user info."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    redirect_url: str
    user: SessionUserResponse


class SessionResponse(BaseModel):
    """Server exposed session."""

    user: SessionUserResponse
    has_valid_license: bool = Field(..., serialization_alias="hasValidLicense")
    expires: datetime


class AuthErrorResponse(BaseModel):
    """Message the login screen shows for an error code."""

    error: str
    message: str


class SignInRedirectResponse(BaseModel):
    """Body of a refused sign in; the Location header carries the same path."""

    error: str
    redirect: str


class ProviderInfo(BaseModel):
    """Sign-in option offered on the login screen."""

    id: str
    name: str
    type: str
