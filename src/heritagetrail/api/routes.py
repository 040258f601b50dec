"""
API routes.

Endpoints:
- GET  `/api/sites`: the site catalog.
- POST `/api/users/{user_id}/visits`: verify a client-reported position and record the visit.
- POST `/api/users/{user_id}/favorites/{site_id}`: toggle a favorite.
- POST `/api/users/{user_id}/planned/{site_id}`: toggle the "planning to visit" list.
- POST `/api/users/{user_id}/journal`: append a journal entry.
- PUT  `/api/users/{user_id}/preferences`: update notification toggles.
- GET  `/api/users/{user_id}/progress`: derived progress + next recommendation.
- GET  `/api/users/{user_id}/state`: the raw ledger snapshot.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from functools import lru_cache
from typing import Iterator

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from heritagetrail.catalog.loader import load_sites, sites_by_id
from heritagetrail.config.settings import get_settings
from heritagetrail.core.geo import GeoPoint
from heritagetrail.core.time import ensure_tz, now_in
from heritagetrail.domain.models import (
    JournalEntry,
    LocationSample,
    NotificationPreferences,
    ProgressReport,
    Site,
    UserProgressState,
    VisitRecord,
)
from heritagetrail.location.platforms import ReportedPositionPlatform
from heritagetrail.progress.engine import compute
from heritagetrail.records.storage import ProgressStorage
from heritagetrail.records.store import VisitRecordStore
from heritagetrail.session import build_storage, build_verifier, open_store
from heritagetrail.verification.proximity import VerificationOutcome


router = APIRouter()


class VisitRequest(BaseModel):
    site_id: str
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    accuracy_m: float | None = Field(default=None, ge=0)
    captured_at: datetime | None = None


class VisitResponse(BaseModel):
    outcome: VerificationOutcome
    record: VisitRecord | None = None


class ToggleResponse(BaseModel):
    site_id: str
    member: bool


class JournalRequest(BaseModel):
    text: str = Field(..., min_length=1)
    title: str | None = None
    site_id: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)


class PreferencesUpdate(BaseModel):
    enable_notifications: bool | None = None
    enable_feast_day_reminders: bool | None = None
    enable_location_reminders: bool | None = None
    share_progress_publicly: bool | None = None


@lru_cache
def _catalog() -> list[Site]:
    settings = get_settings()
    return load_sites(settings.catalog.path)


@lru_cache
def _storage() -> ProgressStorage:
    return build_storage(get_settings())


_ledger_locks: dict[str, threading.Lock] = {}
_ledger_locks_guard = threading.Lock()


def _store(user_id: str) -> VisitRecordStore:
    return open_store(user_id, settings=get_settings(), storage=_storage())


@contextmanager
def _ledger(user_id: str) -> Iterator[VisitRecordStore]:
    """Load, mutate and save one user's ledger with no other writer in between.

    Sync routes run on the threadpool, so two requests for the same user can
    otherwise both load the same ledger and the later save drops the other change.
    Nothing inside the block may await.
    """
    with _ledger_locks_guard:
        lock = _ledger_locks.setdefault(user_id, threading.Lock())
    with lock:
        yield _store(user_id)


def _site_or_404(site_id: str) -> Site:
    site = sites_by_id(_catalog()).get(site_id)
    if site is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "SITE_NOT_FOUND", "message": f"Unknown site '{site_id}'."},
        )
    return site


@router.get("/api/sites")
def get_sites() -> dict:
    """Return every catalog site (coordinates may be null)."""
    sites = _catalog()
    return {"count": len(sites), "sites": [s.model_dump(mode="json") for s in sites]}


def _record_visit(user_id: str, site: Site, outcome: VerificationOutcome) -> VisitRecord:
    with _ledger(user_id) as store:
        return store.mark_visited(site, outcome.distance_km, sample=outcome.sample)


@router.post("/api/users/{user_id}/visits", response_model=VisitResponse)
async def post_visit(user_id: str, request: VisitRequest) -> VisitResponse:
    """Verify proximity from the reported position; record a visit only when verified.

    Negative outcomes (too far, unknown site location) are returned with status 200:
    they are expected results the client renders, not request errors.
    """
    settings = get_settings()
    site = _site_or_404(request.site_id)
    captured_at = (
        ensure_tz(request.captured_at, settings.app.timezone)
        if request.captured_at is not None
        else now_in(settings.app.timezone)
    )
    sample = LocationSample(
        lat=request.lat,
        lon=request.lon,
        accuracy_m=request.accuracy_m,
        captured_at=captured_at,
    )
    verifier = build_verifier(ReportedPositionPlatform(sample), settings=settings)
    outcome = await verifier.verify(site)
    if not outcome.ok:
        return VisitResponse(outcome=outcome)
    try:
        # The ledger is loaded only after verification so concurrent taps each append.
        record = await run_in_threadpool(_record_visit, user_id, site, outcome)
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_EVIDENCE", "message": str(e)},
        ) from e
    return VisitResponse(outcome=outcome, record=record)


def _toggle(user_id: str, site: Site, which: str) -> bool:
    with _ledger(user_id) as store:
        return store.toggle_favorite(site) if which == "favorite" else store.toggle_planned(site)


@router.post("/api/users/{user_id}/favorites/{site_id}", response_model=ToggleResponse)
def post_toggle_favorite(user_id: str, site_id: str) -> ToggleResponse:
    site = _site_or_404(site_id)
    return ToggleResponse(site_id=site.id, member=_toggle(user_id, site, "favorite"))


@router.post("/api/users/{user_id}/planned/{site_id}", response_model=ToggleResponse)
def post_toggle_planned(user_id: str, site_id: str) -> ToggleResponse:
    site = _site_or_404(site_id)
    return ToggleResponse(site_id=site.id, member=_toggle(user_id, site, "planned"))


@router.post("/api/users/{user_id}/journal", response_model=JournalEntry)
def post_journal_entry(user_id: str, request: JournalRequest) -> JournalEntry:
    related = _site_or_404(request.site_id) if request.site_id else None
    try:
        with _ledger(user_id) as store:
            return store.add_journal_entry(request.text, related, title=request.title, rating=request.rating)
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(e)},
        ) from e


@router.put("/api/users/{user_id}/preferences", response_model=NotificationPreferences)
def put_preferences(user_id: str, update: PreferencesUpdate) -> NotificationPreferences:
    with _ledger(user_id) as store:
        return store.update_preferences(**update.model_dump(exclude_none=True))


@router.get("/api/users/{user_id}/progress", response_model=ProgressReport)
def get_progress(
    user_id: str, origin_lat: float | None = None, origin_lon: float | None = None
) -> ProgressReport:
    """Completion ratio, motivational message and the next recommended site."""
    if (origin_lat is None) != (origin_lon is None):
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": "origin_lat and origin_lon go together."},
        )
    origin = GeoPoint(lat=origin_lat, lon=origin_lon) if origin_lat is not None else None
    return compute(_store(user_id).snapshot(), _catalog(), origin=origin)


@router.get("/api/users/{user_id}/state", response_model=UserProgressState)
def get_state(user_id: str) -> UserProgressState:
    return _store(user_id).snapshot()
