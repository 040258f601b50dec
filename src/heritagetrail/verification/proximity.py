from __future__ import annotations

# Proximity verification: decides whether the user is standing at a site.
#
# Steps per attempt:
# 1. A site without coordinates can never be verified (no gateway call at all).
# 2. Ask the LocationGateway for one sample; capability failures become outcome statuses.
# 3. Measure the great-circle distance.
# 4. Compare with the radius using `<=`. The same unrounded distance is reported back,
#    so "you are N m away" always matches the decision that was made.

import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict

from heritagetrail.core.geo import haversine_km
from heritagetrail.domain.models import LocationSample, Site, VisitRecord
from heritagetrail.location.gateway import LocationGateway, LocationUnavailableError
from heritagetrail.records.store import VisitRecordStore

logger = logging.getLogger(__name__)

DEFAULT_VISIT_RADIUS_KM = 0.1

VerificationStatus = Literal[
    "verified",
    "site_location_unknown",
    "service_disabled",
    "permission_denied",
    "permission_denied_forever",
    "fetch_timeout",
    "too_far",
]

_CAPABILITY_STATUSES = frozenset(
    {"service_disabled", "permission_denied", "permission_denied_forever", "fetch_timeout"}
)


class VerificationOutcome(BaseModel):
    """Discriminated result of one verification attempt."""

    model_config = ConfigDict(frozen=True)

    status: VerificationStatus
    site_id: str
    radius_km: float
    distance_km: float | None = None
    sample: LocationSample | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "verified"

    @property
    def is_capability_error(self) -> bool:
        return self.status in _CAPABILITY_STATUSES


def evaluate_proximity(site: Site, sample: LocationSample, radius_km: float) -> VerificationOutcome:
    """Compare one sample against a site (no I/O)."""
    target = site.location
    if target is None:
        return VerificationOutcome(status="site_location_unknown", site_id=site.id, radius_km=radius_km)

    distance_km = haversine_km(sample.point, target)
    status: VerificationStatus = "verified" if distance_km <= radius_km else "too_far"
    return VerificationOutcome(
        status=status,
        site_id=site.id,
        radius_km=radius_km,
        distance_km=distance_km,
        sample=sample,
    )


class ProximityVerifier:
    def __init__(self, gateway: LocationGateway, *, radius_km: float = DEFAULT_VISIT_RADIUS_KM):
        if float(radius_km) <= 0:
            raise ValueError("radius_km must be > 0")
        self._gateway = gateway
        self._radius_km = float(radius_km)

    @property
    def radius_km(self) -> float:
        return self._radius_km

    async def verify(self, site: Site, radius_km: float | None = None) -> VerificationOutcome:
        """Run one verification attempt for `site`. Never retries."""
        radius = self._radius_km if radius_km is None else float(radius_km)
        if radius <= 0:
            raise ValueError("radius_km must be > 0")

        if site.location is None:
            logger.info("Site %s has no coordinates; cannot verify", site.id)
            return VerificationOutcome(status="site_location_unknown", site_id=site.id, radius_km=radius)

        try:
            sample = await self._gateway.acquire_sample()
        except LocationUnavailableError as exc:
            logger.info("Verification for %s stopped: %s", site.id, exc.kind)
            return VerificationOutcome(status=exc.kind, site_id=site.id, radius_km=radius, message=str(exc))

        outcome = evaluate_proximity(site, sample, radius)
        logger.info(
            "Verification for %s: %s (%.1f m, radius %.1f m)",
            site.id,
            outcome.status,
            (outcome.distance_km or 0.0) * 1000,
            radius * 1000,
        )
        return outcome

    async def verify_and_record(
        self, site: Site, store: VisitRecordStore
    ) -> tuple[VerificationOutcome, VisitRecord | None]:
        """Verify and, only on success, append a visit to `store`."""
        outcome = await self.verify(site)
        if not outcome.ok:
            return outcome, None
        record = store.mark_visited(site, outcome.distance_km, sample=outcome.sample)
        return outcome, record
