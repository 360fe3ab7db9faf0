"""Authentication endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.license import check_license
from app.dependencies import CacheManagerDep, DatabaseSession, TokenClaims
from app.schemas.auth import (
    AuthErrorResponse,
    FirebaseSignInRequest,
    LoginResponse,
    ProviderInfo,
    SessionResponse,
    SessionUserResponse,
    SignInRedirectResponse,
    Token,
    TokenRefresh,
)
from app.services.auth_service import AuthService, error_message

router = APIRouter()


@router.post(
    "/firebase/verify",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    responses={status.HTTP_303_SEE_OTHER: {"model": SignInRedirectResponse}},
    tags=["Authentication"],
    summary="Sign in with a Firebase ID token",
)
async def firebase_verify(
    request: FirebaseSignInRequest,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
):
    """
    Verify a Firebase ID token, reconcile the identity and issue session tokens.

    A refused sign in answers ``303 See Other`` pointing at the error screen
    (``/auth/error?error=<code>``); the body repeats the code so API clients
    do not need to follow the redirect.
    """
    auth_service = AuthService(cache_manager)

    decoded_token = await auth_service.verify_firebase_id_token(request.id_token)
    assertion, account = auth_service.assertion_from_firebase(decoded_token, request.id_token)

    result = await auth_service.handle_sign_in(db, assertion, account, request.callback_url)

    if not result.decision.allowed:
        redirect = result.decision.redirect_path
        body = SignInRedirectResponse(
            error=result.decision.error_code.value,  # type: ignore[union-attr]
            redirect=redirect,  # type: ignore[arg-type]
        )
        return JSONResponse(
            status_code=status.HTTP_303_SEE_OTHER,
            content=body.model_dump(),
            headers={"Location": redirect},  # type: ignore[dict-item]
        )

    user = result.user
    return LoginResponse(
        access_token=result.tokens.access_token,  # type: ignore[union-attr]
        refresh_token=result.tokens.refresh_token,  # type: ignore[union-attr]
        token_type=result.tokens.token_type,  # type: ignore[union-attr]
        redirect_url=result.redirect_url,  # type: ignore[arg-type]
        user=SessionUserResponse.model_validate(user),
    )


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Refresh access token",
)
async def refresh_token(
    request: TokenRefresh,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> Token:
    """
    Refresh tokens; identity claims are re-read from the database.

    Raises:
        UnauthorizedException: If refresh token is invalid or revoked
    """
    auth_service = AuthService(cache_manager)
    return await auth_service.refresh_access_token(db, request.refresh_token)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Authentication"],
    summary="Logout and revoke tokens",
)
async def logout(
    request: TokenRefresh,
    cache_manager: CacheManagerDep,
) -> None:
    """Logout user by revoking refresh token."""
    AuthService(cache_manager).revoke_token(request.refresh_token)


@router.get(
    "/session",
    response_model=SessionResponse,
    response_model_by_alias=True,
    tags=["Authentication"],
    summary="Current session",
)
async def get_session(claims: TokenClaims, cache_manager: CacheManagerDep) -> SessionResponse:
    """Session exposed to server rendered pages, with the license flag."""
    has_valid_license = await check_license(settings.license_key, cache_manager)
    return AuthService.build_session(claims, has_valid_license)


@router.get(
    "/error",
    response_model=AuthErrorResponse,
    tags=["Authentication"],
    summary="Message for a sign-in error code",
)
async def auth_error(error: str | None = None) -> AuthErrorResponse:
    """Resolve the ``?error=`` code of a refused sign in to the login screen message."""
    return AuthErrorResponse(error=error or "", message=error_message(error))


@router.get(
    "/providers",
    response_model=list[ProviderInfo],
    tags=["Authentication"],
    summary="Available sign-in methods",
)
async def providers() -> list[ProviderInfo]:
    """Sign-in methods the login screen offers; OAuth ones need a configured client id."""
    options = []
    if settings.google_client_id:
        options.append(ProviderInfo(id="google", name="Google", type="oauth"))
    if settings.facebook_client_id:
        options.append(ProviderInfo(id="facebook", name="Facebook", type="oauth"))
    options.append(ProviderInfo(id="email", name="Email", type="email"))
    return options
