"""Debounced availability checks for interactive forms.

Form inputs ask the server whether a DNI or username is still free while the
user types. Each keystroke restarts a short timer; only the value that is still
current when its answer arrives updates the state, so a slow response for an
old value can never overwrite the answer for the newer one.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx
from pydantic_core import PydanticCustomError
from structlog import get_logger

from app.schemas.validators import validate_dni

logger = get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

Fetch = Callable[[str], Awaitable[bool]]
Validate = Callable[[str], str | None]


class AvailabilityClient:
    """HTTP client for the public availability endpoints."""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=5.0)
        self._owns_client = client is None

    async def dni_available(self, dni: str) -> bool:
        response = await self._client.post(f"{self.base_url}/api/dni", json={"DNI": dni.strip()})
        response.raise_for_status()
        return bool(response.json()["available"])

    async def username_available(self, username: str) -> bool:
        response = await self._client.post(
            f"{self.base_url}/api/username", json={"username": username}
        )
        response.raise_for_status()
        return bool(response.json()["available"])

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def dni_error(value: str) -> str | None:
    """Error code for a malformed DNI, or None when it may be checked remotely."""
    try:
        validate_dni(value.strip())
    except PydanticCustomError as e:
        return e.type
    return None


def username_error(value: str) -> str | None:
    return None if value.strip() else "not_empty"


@dataclass
class AvailabilityState:
    value: str = ""
    available: bool | None = None
    error: str | None = None
    checking: bool = False


class DebouncedAvailabilityCheck:
    """
    Debounce remote availability checks for a single input.

    ``submit`` records the value and (re)starts the timer. Values that fail
    ``validate`` get their error code at once and never reach ``fetch``. When
    the timer fires, ``fetch`` runs and its answer is applied only if no newer
    value was submitted in the meantime.

    Args:
        fetch: Coroutine returning True when the value is available
        validate: Returns an error code for malformed values, None otherwise
        delay: Debounce delay in seconds
    """

    def __init__(
        self,
        fetch: Fetch,
        validate: Validate | None = None,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self._fetch = fetch
        self._validate = validate
        self._delay = delay
        self._generation = 0
        self._task: asyncio.Task | None = None
        self.state = AvailabilityState()

    @property
    def generation(self) -> int:
        return self._generation

    def submit(self, value: str) -> None:
        """Record a new input value."""
        self._generation += 1
        self._cancel_pending()
        self.state = AvailabilityState(value=value)

        error = self._validate(value) if self._validate else None
        if error:
            self.state.error = error
            return

        self.state.checking = True
        self._task = asyncio.create_task(self._run(value, self._generation))

    async def wait(self) -> AvailabilityState:
        """Wait for the pending check, if any, and return the state."""
        # A newer submit replaces the task, so keep waiting on the latest one
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        return self.state

    def cancel(self) -> None:
        """Drop the pending check, e.g. when the form is closed."""
        self._generation += 1
        self._cancel_pending()
        self.state.checking = False

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, value: str, generation: int) -> None:
        await asyncio.sleep(self._delay)
        try:
            available = await self._fetch(value)
        except httpx.HTTPError as e:
            logger.warning("availability_check_failed", error=str(e))
            if generation == self._generation:
                self.state.checking = False
                self.state.error = "something_went_wrong"
            return

        if generation != self._generation:
            logger.debug("availability_result_discarded", value=value)
            return

        self.state.available = available
        self.state.checking = False
