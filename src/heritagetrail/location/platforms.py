"""
`LocationPlatform` adapters that do not need a device.

- `StaticLocationPlatform`: a fixed position with scriptable service/permission state
  (CLI runs, offline demos, tests).
- `ReportedPositionPlatform`: a position reported by an API client that already holds
  location permission on its own device.
"""

from __future__ import annotations

from dataclasses import dataclass

from heritagetrail.core.time import now_in
from heritagetrail.domain.models import LocationSample
from heritagetrail.location.gateway import PermissionStatus


@dataclass
class StaticLocationPlatform:
    lat: float
    lon: float
    accuracy_m: float | None = None
    service_enabled: bool = True
    permission: PermissionStatus = PermissionStatus.WHILE_IN_USE
    # What the user answers when prompted; None keeps the current permission.
    permission_after_request: PermissionStatus | None = None
    timezone: str = "Asia/Manila"
    permission_requests: int = 0

    async def is_service_enabled(self) -> bool:
        return self.service_enabled

    async def check_permission(self) -> PermissionStatus:
        return self.permission

    async def request_permission(self) -> PermissionStatus:
        self.permission_requests += 1
        if self.permission_after_request is not None:
            self.permission = self.permission_after_request
        return self.permission

    async def get_current_position(self) -> LocationSample:
        return LocationSample(
            lat=self.lat,
            lon=self.lon,
            accuracy_m=self.accuracy_m,
            captured_at=now_in(self.timezone),
        )


class ReportedPositionPlatform:
    """Serve a single client-reported sample as if it came from the device."""

    def __init__(self, sample: LocationSample):
        self._sample = sample

    async def is_service_enabled(self) -> bool:
        return True

    async def check_permission(self) -> PermissionStatus:
        return PermissionStatus.WHILE_IN_USE

    async def request_permission(self) -> PermissionStatus:
        return PermissionStatus.WHILE_IN_USE

    async def get_current_position(self) -> LocationSample:
        return self._sample
