"""Onboarding wizard steps."""

from pydantic import BaseModel

from app.models.users import UserRole

INITIAL_STEP = "user-settings"

ADMIN_STEPS: tuple[str, ...] = (
    "user-settings",
    "connected-calendar",
    "setup-availability",
    "user-profile",
)
USER_STEPS: tuple[str, ...] = ("user-settings", "user-profile")


class StepHeader(BaseModel):
    """Translation keys for the header shown above a step."""

    title: str
    subtitle: list[str]
    skip_text: str | None = None


STEP_HEADERS: dict[str, StepHeader] = {
    "user-settings": StepHeader(
        title="welcome_to_osteocenter",
        subtitle=["we_just_need_basic_info", "edit_form_later_subtitle"],
    ),
    "connected-calendar": StepHeader(
        title="connect_your_calendar",
        subtitle=["connect_your_calendar_instructions"],
        skip_text="connect_calendar_later",
    ),
    "setup-availability": StepHeader(
        title="set_availability",
        subtitle=[
            "set_availability_getting_started_subtitle_1",
            "set_availability_getting_started_subtitle_2",
        ],
        skip_text="set_my_availability_later",
    ),
    "user-profile": StepHeader(
        title="nearly_there",
        subtitle=["nearly_there_instructions"],
    ),
}


class OnboardingState(BaseModel):
    """Where a user stands in the wizard."""

    steps: list[str]
    current_step: str
    current_index: int
    path: str
    header: StepHeader
    next_step: str | None = None
    skip_step: str | None = None


def steps_for_role(role: str) -> tuple[str, ...]:
    """Doctors walk through calendar and availability setup, patients do not."""
    return ADMIN_STEPS if role == UserRole.ADMIN.value else USER_STEPS


def resolve_step(role: str, step: str | None) -> str:
    """Step named in the URL, or the first step when absent or not allowed for the role."""
    if step in steps_for_role(role):
        return step  # type: ignore[return-value]
    return INITIAL_STEP


def go_to_index(role: str, index: int) -> str:
    """Step at ``index``; any step is reachable, out of range goes back to the start."""
    steps = steps_for_role(role)
    if 0 <= index < len(steps):
        return steps[index]
    return INITIAL_STEP


def step_path(step: str) -> str:
    return f"/getting-started/{step}"


def header_for(role: str, step: str) -> StepHeader:
    header = STEP_HEADERS[step]
    if step == "user-profile" and role != UserRole.ADMIN.value:
        return header.model_copy(update={"subtitle": ["nearly_there_instructions_user"]})
    return header


def onboarding_state(role: str, step: str | None) -> OnboardingState:
    """
    Build the wizard state for a role and a requested step.

    ``next_step`` is what submitting the current step leads to; ``skip_step``
    is only set for steps that may be skipped.
    """
    steps = steps_for_role(role)
    current = resolve_step(role, step)
    index = steps.index(current)
    header = header_for(role, current)
    next_step = steps[index + 1] if index + 1 < len(steps) else None

    return OnboardingState(
        steps=list(steps),
        current_step=current,
        current_index=index,
        path=step_path(current),
        header=header,
        next_step=next_step,
        skip_step=next_step if header.skip_text else None,
    )
