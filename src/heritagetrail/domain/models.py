"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- catalog entities (`Site`)
- device readings (`LocationSample`)
- the per-user ledger (`VisitRecord`, `JournalEntry`, `NotificationPreferences`)
- read-only views (`UserProgressState`, `ProgressReport`)

Keeping these models in one place helps:
- validation (reject bad coordinates early),
- lossless JSON round-trips through durable storage,
- consistent JSON output across CLI/API.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from heritagetrail.core.geo import GeoPoint
from heritagetrail.core.time import TimeOfDay

VerificationMethod = Literal["proximity"]
MotivationBucket = Literal["not_started", "beginning", "underway", "almost_there", "complete"]


class Site(BaseModel):
    """A heritage church (or other site) from the catalog.

    Coordinates are optional: some catalog entries have no surveyed location yet.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)

    municipality: str | None = None
    diocese: str | None = None
    heritage_classification: str | None = None
    founding_year: int | None = None

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("site id must not be empty")
        return value

    @property
    def location(self) -> GeoPoint | None:
        """Return the site's point, or None when either coordinate is unknown."""
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(lat=self.latitude, lon=self.longitude)


class LocationSample(BaseModel):
    """One device position fix. Consumed by a single verification attempt."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    accuracy_m: float | None = Field(default=None, ge=0)
    captured_at: datetime

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)


class VisitRecord(BaseModel):
    """Immutable proof that a user stood at a site."""

    model_config = ConfigDict(frozen=True)

    site_id: str
    visited_at: datetime
    method: VerificationMethod = "proximity"
    distance_km: float = Field(..., ge=0)
    time_of_day: TimeOfDay


class JournalEntry(BaseModel):
    """A free-form, user-authored note. Corrections are new entries."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    text: str
    title: str | None = None
    site_id: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    created_at: datetime


class NotificationPreferences(BaseModel):
    """User notification toggles. Opaque to verification and progress."""

    model_config = ConfigDict(frozen=True)

    enable_notifications: bool = True
    enable_feast_day_reminders: bool = True
    enable_location_reminders: bool = True
    share_progress_publicly: bool = False


class UserProgressState(BaseModel):
    """Read-only snapshot of one user's ledger.

    `visited_site_ids` is always computed from `visit_records`. A supplied value is
    accepted only when it matches (so dumped snapshots validate again).
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    visit_records: tuple[VisitRecord, ...] = ()
    favorite_site_ids: frozenset[str] = frozenset()
    planned_site_ids: frozenset[str] = frozenset()
    journal_entries: tuple[JournalEntry, ...] = ()
    preferences: NotificationPreferences = Field(default_factory=NotificationPreferences)

    @model_validator(mode="before")
    @classmethod
    def _visited_follows_records(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "visited_site_ids" not in data:
            return data
        data = dict(data)
        claimed = frozenset(data.pop("visited_site_ids") or ())
        derived = frozenset(
            r.site_id if isinstance(r, VisitRecord) else r.get("site_id")
            for r in data.get("visit_records") or ()
        )
        if claimed != derived:
            raise ValueError("visited_site_ids must match the sites in visit_records")
        return data

    @computed_field
    @property
    def visited_site_ids(self) -> frozenset[str]:
        return frozenset(r.site_id for r in self.visit_records)

    @property
    def last_visit(self) -> VisitRecord | None:
        return self.visit_records[-1] if self.visit_records else None

    @property
    def last_journal_entry(self) -> JournalEntry | None:
        if not self.journal_entries:
            return None
        return max(self.journal_entries, key=lambda e: e.created_at)


class ProgressReport(BaseModel):
    """Derived progress metrics for the profile screen."""

    percent: float = Field(..., ge=0, le=1)
    visited_count: int = Field(..., ge=0)
    total_count: int = Field(..., ge=0)
    recommended_next_site_id: str | None = None
    recommended_next_distance_km: float | None = None
    motivation_bucket: MotivationBucket
    motivational_message: str
    favorite_count: int = 0
    journal_count: int = 0
    last_visited_site_id: str | None = None
    last_journal_entry_id: str | None = None
