"""Onboarding wizard endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import RedirectResponse

from app.config import settings
from app.dependencies import CurrentUser
from app.services.onboarding_service import OnboardingState, go_to_index, onboarding_state

router = APIRouter(prefix="/onboarding", tags=["Onboarding"])


def _leave_onboarding() -> RedirectResponse:
    return RedirectResponse(url=settings.main_app_path, status_code=status.HTTP_303_SEE_OTHER)


@router.get("", response_model=OnboardingState)
async def get_onboarding(current_user: CurrentUser):
    """Wizard state at its first step."""
    if current_user["completed_onboarding"]:
        return _leave_onboarding()
    return onboarding_state(current_user["role"], None)


@router.get("/index/{index}", response_model=OnboardingState)
async def go_to_step_index(index: int, current_user: CurrentUser):
    """Wizard state at a step position; used by both "next" and "skip"."""
    if current_user["completed_onboarding"]:
        return _leave_onboarding()
    role = current_user["role"]
    return onboarding_state(role, go_to_index(role, index))


@router.get("/{step}", response_model=OnboardingState)
async def get_onboarding_step(step: str, current_user: CurrentUser):
    """
    Wizard state at a named step.

    Unknown steps, or steps the user's role does not have, resolve to the
    first step. Users who already completed onboarding are sent to the app.
    """
    if current_user["completed_onboarding"]:
        return _leave_onboarding()
    return onboarding_state(current_user["role"], step)
