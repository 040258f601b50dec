"""
Device location access, modelled as a small state machine.

The platform exposes four independent failure axes (service switched off, permission
denied, permission denied permanently, fetch failing or hanging). The UI reacts to
each differently, so `LocationGateway` resolves them one at a time and reports exactly
one terminal outcome per attempt:

    service check -> permission check -> (one permission request) -> position fetch

The gateway is the only code that talks to a `LocationPlatform`; everything above it
works with `LocationSample` values and `LocationUnavailableError` subclasses.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Protocol, TypeVar

from heritagetrail.domain.models import LocationSample

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0

T = TypeVar("T")


class LocationState(str, Enum):
    SERVICE_DISABLED = "service_disabled"
    PERMISSION_DENIED = "permission_denied"
    PERMISSION_DENIED_FOREVER = "permission_denied_forever"
    READY = "ready"


class PermissionStatus(str, Enum):
    """Permission values as reported by the platform."""

    DENIED = "denied"
    DENIED_FOREVER = "denied_forever"
    WHILE_IN_USE = "while_in_use"
    ALWAYS = "always"

    @property
    def granted(self) -> bool:
        return self in (PermissionStatus.WHILE_IN_USE, PermissionStatus.ALWAYS)


class LocationPlatform(Protocol):
    async def is_service_enabled(self) -> bool: ...

    async def check_permission(self) -> PermissionStatus: ...

    async def request_permission(self) -> PermissionStatus: ...

    async def get_current_position(self) -> LocationSample: ...


class LocationUnavailableError(Exception):
    """Base class for capability failures; `kind` matches the verification status."""

    kind = "location_unavailable"
    default_message = "Location is unavailable."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class ServiceDisabledError(LocationUnavailableError):
    kind = "service_disabled"
    default_message = "Location services are disabled."


class PermissionDeniedError(LocationUnavailableError):
    kind = "permission_denied"
    default_message = "Location permission was denied."


class PermissionDeniedForeverError(LocationUnavailableError):
    kind = "permission_denied_forever"
    default_message = "Location permission is permanently denied; enable it in system settings."


class FetchTimeoutError(LocationUnavailableError):
    kind = "fetch_timeout"
    default_message = "Timed out waiting for a location fix."


# The only failures `acquire_sample` lets out; each kind is a verification status.
FAILURE_KINDS = (ServiceDisabledError, PermissionDeniedError, PermissionDeniedForeverError, FetchTimeoutError)


class LocationGateway:
    """Runs the location state machine once per `acquire_sample()` call."""

    def __init__(
        self,
        platform: LocationPlatform,
        *,
        fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    ):
        if float(fetch_timeout_seconds) <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")
        self._platform = platform
        self._fetch_timeout_seconds = float(fetch_timeout_seconds)
        self._state: LocationState | None = None

    @property
    def state(self) -> LocationState | None:
        """Last state observed by `resolve_state()` (None before the first attempt)."""
        return self._state

    @property
    def fetch_timeout_seconds(self) -> float:
        return self._fetch_timeout_seconds

    async def _bounded(self, call: Awaitable[T], what: str) -> T:
        """Await one non-interactive platform call under the fetch timeout."""
        try:
            return await asyncio.wait_for(call, timeout=self._fetch_timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.info("Location %s timed out after %.1fs", what, self._fetch_timeout_seconds)
            raise FetchTimeoutError(f"Timed out waiting for location {what}.") from exc

    async def resolve_state(self) -> LocationState:
        """Check service + permission, requesting permission at most once.

        The service and permission checks are bounded by `fetch_timeout_seconds` and
        raise `FetchTimeoutError` when the platform never answers. The permission
        prompt waits on the user and is not bounded.
        """
        if not await self._bounded(self._platform.is_service_enabled(), "service check"):
            self._state = LocationState.SERVICE_DISABLED
            return self._state

        permission = await self._bounded(self._platform.check_permission(), "permission check")
        if permission == PermissionStatus.DENIED:
            # The only user-visible side effect: a single platform prompt.
            permission = await self._platform.request_permission()

        if permission == PermissionStatus.DENIED_FOREVER:
            self._state = LocationState.PERMISSION_DENIED_FOREVER
        elif not permission.granted:
            self._state = LocationState.PERMISSION_DENIED
        else:
            self._state = LocationState.READY
        return self._state

    async def acquire_sample(self) -> LocationSample:
        """Return one position fix or raise one of the four concrete failure kinds.

        Every platform call except the permission prompt is bounded by
        `fetch_timeout_seconds`, even when the call itself never returns. Cancelling
        the awaiting task cancels the pending platform call.
        """
        state = await self.resolve_state()
        if state is LocationState.SERVICE_DISABLED:
            raise ServiceDisabledError()
        if state is LocationState.PERMISSION_DENIED_FOREVER:
            raise PermissionDeniedForeverError()
        if state is LocationState.PERMISSION_DENIED:
            raise PermissionDeniedError()

        try:
            return await self._bounded(self._platform.get_current_position(), "fetch")
        except FAILURE_KINDS:
            raise
        except Exception as exc:
            # Includes a bare LocationUnavailableError, which has no status of its own.
            logger.warning("Location fetch failed: %s", exc)
            raise FetchTimeoutError(f"Failed to get location: {exc}") from exc
