"""FastAPI dependencies."""

from typing import Annotated, Any
from uuid import UUID

import redis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.core.exceptions import ForbiddenException, SessionUserNotFoundException
from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import decode_access_token
from app.database import get_db
from app.models.users import UserRole
from app.services.user_service import UserService

logger = get_logger(__name__)

# Security
security = HTTPBearer()


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_claims(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> dict[str, Any]:
    """
    Decode and validate the access token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_error()

    user_id = payload.get("sub")
    if user_id is None or not isinstance(user_id, str):
        raise _credentials_error()

    return payload


async def get_current_user_id(
    claims: Annotated[dict[str, Any], Depends(get_token_claims)],
) -> UUID:
    """Extract the user ID from the access token."""
    try:
        return UUID(claims["sub"])
    except ValueError:
        raise _credentials_error("Invalid user ID format")


def get_cache_manager(
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> CacheManager:
    """Cache manager over the shared Redis client."""
    return CacheManager(redis_client)


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """
    Get current user from database.

    Raises:
        SessionUserNotFoundException: The token is valid but its user is gone;
            session and database are out of sync.
    """
    user = await UserService().get_user_with_profiles(db, user_id)

    if not user:
        logger.error("session_user_not_found", user_id=str(user_id))
        raise SessionUserNotFoundException(user_id)

    return user


async def require_admin(
    current_user: Annotated[dict, Depends(get_current_user)],
) -> dict:
    """Only doctors (ADMIN role) pass."""
    if current_user["role"] != UserRole.ADMIN.value:
        raise ForbiddenException("Admin role required")
    return current_user


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
AdminUser = Annotated[dict, Depends(require_admin)]
TokenClaims = Annotated[dict[str, Any], Depends(get_token_claims)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
RedisClient = Annotated[redis.Redis, Depends(get_redis_client)]
