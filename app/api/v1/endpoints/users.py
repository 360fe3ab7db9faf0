"""User endpoints."""

from fastapi import APIRouter, HTTPException, status
from structlog import get_logger

from app.dependencies import AdminUser, CacheManagerDep, CurrentUser, DatabaseSession
from app.schemas.users import ProfileUpdate, UserInvite, UserResponse
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])
logger = get_logger(__name__)


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    cache_manager: CacheManagerDep,
    current_user: CurrentUser,
):
    """Get current user's profile (the cached "current user" query)."""
    cache_key = UserService.user_cache_key(current_user["id"])
    cached = cache_manager.get_json(cache_key)
    if cached:
        return UserResponse.model_validate(cached)

    response = UserResponse.model_validate(current_user)
    cache_manager.set_json(
        cache_key,
        response.model_dump(mode="json"),
        ttl=UserService.USER_CACHE_TTL,
    )
    return response


@router.patch("/me", response_model=UserResponse)
async def update_current_user_profile(
    user_data: ProfileUpdate,
    cache_manager: CacheManagerDep,
    db: DatabaseSession,
    current_user: CurrentUser,
):
    """
    Update current user's profile.

    The updated user is returned directly so the caller can move on (for
    example to the next onboarding step) from the response itself.
    """
    user_service = UserService(cache_manager)
    user = await user_service.update_profile(db, current_user, user_data)
    return UserResponse.model_validate(user)


@router.post("/me/onboard", response_model=UserResponse)
async def complete_onboarding(
    cache_manager: CacheManagerDep,
    db: DatabaseSession,
    current_user: CurrentUser,
):
    """Mark user as having completed onboarding."""
    user_service = UserService(cache_manager)
    await user_service.mark_onboarded(db, current_user["id"])

    user = await user_service.get_user_with_profiles(db, current_user["id"])
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    logger.info("onboarding_completed", user_id=str(current_user["id"]))
    return UserResponse.model_validate(user)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_current_user(
    cache_manager: CacheManagerDep,
    db: DatabaseSession,
    current_user: CurrentUser,
):
    """Delete current user's account. The client signs out afterwards."""
    user_service = UserService(cache_manager)
    deleted = await user_service.delete_user(db, current_user["id"])

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    logger.info("user_deleted", user_id=str(current_user["id"]))


@router.post("/invite", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def invite_user(
    invite: UserInvite,
    cache_manager: CacheManagerDep,
    db: DatabaseSession,
    admin: AdminUser,
):
    """Invite someone by email; their first external sign in completes the account."""
    user = await UserService(cache_manager).invite_user(db, invite)
    return UserResponse.model_validate(user)
