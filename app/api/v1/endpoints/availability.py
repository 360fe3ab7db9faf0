"""Availability endpoints for interactive form feedback."""

from fastapi import APIRouter, Request, status

from app.config import settings
from app.core.exceptions import RateLimitException
from app.core.redis_client import RateLimiter
from app.dependencies import DatabaseSession, RedisClient
from app.schemas.availability import (
    DNIAvailabilityRequest,
    DNIAvailabilityResponse,
    UsernameAvailabilityRequest,
    UsernameAvailabilityResponse,
)
from app.services.availability_service import AvailabilityService

router = APIRouter(tags=["Availability"])


def _enforce_rate_limit(request: Request, redis_client, scope: str) -> None:
    # These endpoints are public, so throttle per client address
    client = request.client.host if request.client else "unknown"
    limiter = RateLimiter(redis_client, limit=settings.rate_limit_per_minute)
    if not limiter.hit(f"ratelimit:{scope}:{client}"):
        raise RateLimitException()


@router.post(
    "/dni",
    response_model=DNIAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Check whether a DNI is still free",
)
async def check_dni(
    body: DNIAvailabilityRequest,
    request: Request,
    db: DatabaseSession,
    redis_client: RedisClient,
) -> DNIAvailabilityResponse:
    """
    Report whether no patient or doctor profile holds the DNI yet.

    Malformed DNIs are rejected with their specific error code
    (``not_empty``, ``not_number``, ``required_length_8``).
    """
    _enforce_rate_limit(request, redis_client, "dni")
    return await AvailabilityService().check_dni(db, body.dni)


@router.post(
    "/username",
    response_model=UsernameAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Check whether a username is still free",
)
async def check_username(
    body: UsernameAvailabilityRequest,
    request: Request,
    db: DatabaseSession,
    redis_client: RedisClient,
) -> UsernameAvailabilityResponse:
    """Report whether the slugified username is free and whether it is premium."""
    _enforce_rate_limit(request, redis_client, "username")
    return await AvailabilityService().check_username(db, body.username)
