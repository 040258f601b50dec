"""
Per-user ledger of visits, favorites, planned visits, journal entries and preferences.

Rules the store enforces:
- Visit records are append-only and only accepted with distance evidence inside the
  visit radius. The radius is checked when a record is created, never when it is read,
  so old records stay valid if the policy changes.
- "Visited" is derived from the records on every snapshot; there is no separate flag.
- Every mutation is written through to storage before the call returns. The new state
  is built and saved first and only then swapped in, so a failed save leaves the
  in-memory ledger exactly as it was.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Callable

from pydantic import TypeAdapter

from heritagetrail.core.time import now_in, time_of_day
from heritagetrail.domain.models import (
    JournalEntry,
    LocationSample,
    NotificationPreferences,
    Site,
    UserProgressState,
    VisitRecord,
)
from heritagetrail.records.storage import ProgressStorage
from heritagetrail.records.visit_log import VisitLogSink

logger = logging.getLogger(__name__)

LEDGER_FORMAT_VERSION = 1

_RECORDS_ADAPTER = TypeAdapter(list[VisitRecord])
_JOURNAL_ADAPTER = TypeAdapter(list[JournalEntry])


class InvalidEvidenceError(ValueError):
    """Raised when a visit is claimed with distance evidence outside the visit radius."""

    def __init__(self, site_id: str, distance_km: float, radius_km: float):
        super().__init__(
            f"Visit to '{site_id}' rejected: distance {distance_km!r} km is not within {radius_km} km."
        )
        self.site_id = site_id
        self.distance_km = distance_km
        self.radius_km = radius_km


class VisitRecordStore:
    def __init__(
        self,
        user_id: str,
        storage: ProgressStorage,
        *,
        radius_km: float = 0.1,
        timezone: str = "Asia/Manila",
        visit_log: VisitLogSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        if not user_id:
            raise ValueError("user_id must not be empty")
        if float(radius_km) <= 0:
            raise ValueError("radius_km must be > 0")
        self._user_id = user_id
        self._storage = storage
        self._radius_km = float(radius_km)
        self._timezone = timezone
        self._visit_log = visit_log
        self._clock = clock or (lambda: now_in(timezone))

        self._records: list[VisitRecord] = []
        # dicts keep insertion order so the stored file is stable between saves.
        self._favorites: dict[str, None] = {}
        self._planned: dict[str, None] = {}
        self._journal: list[JournalEntry] = []
        self._preferences = NotificationPreferences()

    @classmethod
    def open(cls, user_id: str, storage: ProgressStorage, **kwargs: Any) -> "VisitRecordStore":
        """Create a store for `user_id` hydrated from `storage`."""
        store = cls(user_id, storage, **kwargs)
        payload = storage.load(user_id)
        if payload:
            store._hydrate(payload)
        logger.debug("Opened ledger for %s (%d visit records)", user_id, len(store._records))
        return store

    def _hydrate(self, payload: dict[str, Any]) -> None:
        self._records = _RECORDS_ADAPTER.validate_python(payload.get("visit_records") or [])
        self._favorites = dict.fromkeys(payload.get("favorite_site_ids") or [])
        self._planned = dict.fromkeys(payload.get("planned_site_ids") or [])
        self._journal = _JOURNAL_ADAPTER.validate_python(payload.get("journal_entries") or [])
        self._preferences = NotificationPreferences.model_validate(payload.get("preferences") or {})

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def radius_km(self) -> float:
        return self._radius_km

    def _payload(
        self,
        *,
        records: list[VisitRecord],
        favorites: dict[str, None],
        planned: dict[str, None],
        journal: list[JournalEntry],
        preferences: NotificationPreferences,
    ) -> dict[str, Any]:
        return {
            "version": LEDGER_FORMAT_VERSION,
            "user_id": self._user_id,
            "visit_records": [r.model_dump(mode="json") for r in records],
            "favorite_site_ids": list(favorites),
            "planned_site_ids": list(planned),
            "journal_entries": [e.model_dump(mode="json") for e in journal],
            "preferences": preferences.model_dump(mode="json"),
        }

    def _commit(
        self,
        *,
        records: list[VisitRecord] | None = None,
        favorites: dict[str, None] | None = None,
        planned: dict[str, None] | None = None,
        journal: list[JournalEntry] | None = None,
        preferences: NotificationPreferences | None = None,
    ) -> None:
        """Save the proposed state, then make it current."""
        new_records = self._records if records is None else records
        new_favorites = self._favorites if favorites is None else favorites
        new_planned = self._planned if planned is None else planned
        new_journal = self._journal if journal is None else journal
        new_preferences = self._preferences if preferences is None else preferences

        self._storage.save(
            self._user_id,
            self._payload(
                records=new_records,
                favorites=new_favorites,
                planned=new_planned,
                journal=new_journal,
                preferences=new_preferences,
            ),
        )
        self._records = new_records
        self._favorites = new_favorites
        self._planned = new_planned
        self._journal = new_journal
        self._preferences = new_preferences

    def mark_visited(
        self, site: Site, distance_km: float, *, sample: LocationSample | None = None
    ) -> VisitRecord:
        """Append a visit record backed by `distance_km` of proximity evidence.

        `sample` is the fix the distance was measured from; it is forwarded to the
        visit log only and never stored in the ledger.

        Raises:
            InvalidEvidenceError: If the distance is negative, NaN, or beyond the radius.
        """
        distance = float(distance_km)
        if math.isnan(distance) or distance < 0 or distance > self._radius_km:
            raise InvalidEvidenceError(site.id, distance, self._radius_km)

        visited_at = self._clock()
        record = VisitRecord(
            site_id=site.id,
            visited_at=visited_at,
            method="proximity",
            distance_km=distance,
            time_of_day=time_of_day(visited_at),
        )
        planned = self._planned
        if site.id in planned:
            planned = {k: None for k in planned if k != site.id}
        self._commit(records=[*self._records, record], planned=planned)
        logger.info(
            "Recorded visit user=%s site=%s distance=%.1fm (visit #%d)",
            self._user_id,
            site.id,
            distance * 1000,
            self.visit_count(site.id),
        )
        self._notify_visit_log(record, sample)
        return record

    def _notify_visit_log(self, record: VisitRecord, sample: LocationSample | None) -> None:
        if self._visit_log is None:
            return
        try:
            self._visit_log.log_visit(self._user_id, record, sample)
        except Exception as exc:
            logger.warning("Visit log failed for site %s (visit kept): %s", record.site_id, exc)

    def toggle_favorite(self, site: Site) -> bool:
        """Flip favorite membership; returns True when the site is now a favorite."""
        favorites = dict(self._favorites)
        if site.id in favorites:
            del favorites[site.id]
        else:
            favorites[site.id] = None
        self._commit(favorites=favorites)
        return site.id in self._favorites

    def toggle_planned(self, site: Site) -> bool:
        """Flip membership in the "planning to visit" list."""
        planned = dict(self._planned)
        if site.id in planned:
            del planned[site.id]
        else:
            planned[site.id] = None
        self._commit(planned=planned)
        return site.id in self._planned

    def add_journal_entry(
        self,
        text: str,
        related_site: Site | None = None,
        *,
        title: str | None = None,
        rating: int | None = None,
    ) -> JournalEntry:
        if not text or not text.strip():
            raise ValueError("journal entry text must not be empty")
        entry = JournalEntry(
            text=text,
            title=title,
            site_id=related_site.id if related_site is not None else None,
            rating=rating,
            created_at=self._clock(),
        )
        self._commit(journal=[*self._journal, entry])
        return entry

    def update_preferences(self, **flags: bool) -> NotificationPreferences:
        unknown = set(flags) - set(NotificationPreferences.model_fields)
        if unknown:
            raise ValueError(f"Unknown preference flags: {', '.join(sorted(unknown))}")
        preferences = NotificationPreferences.model_validate(
            {**self._preferences.model_dump(), **flags}
        )
        self._commit(preferences=preferences)
        return preferences

    def is_visited(self, site_id: str) -> bool:
        return any(r.site_id == site_id for r in self._records)

    def is_favorite(self, site_id: str) -> bool:
        return site_id in self._favorites

    def visit_count(self, site_id: str) -> int:
        return sum(1 for r in self._records if r.site_id == site_id)

    def __len__(self) -> int:
        return len(self._records)

    def snapshot(self) -> UserProgressState:
        """Return an immutable view of the ledger."""
        records = tuple(self._records)
        return UserProgressState(
            user_id=self._user_id,
            visit_records=records,
            favorite_site_ids=frozenset(self._favorites),
            planned_site_ids=frozenset(self._planned),
            journal_entries=tuple(self._journal),
            preferences=self._preferences,
        )
