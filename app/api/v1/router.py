"""Route tables."""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, availability, health, onboarding, users

# Served under API_V1_PREFIX
api_router = APIRouter()
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, tags=["Users"])
api_router.include_router(onboarding.router, tags=["Onboarding"])

# Served under /api, outside the versioned prefix
public_router = APIRouter()
public_router.include_router(availability.router)
