"""
Progress derivation.

Pure functions over a `UserProgressState` snapshot and the site catalog:
- completion ratio against the full catalog (fixed denominator),
- a motivational message chosen by completion bucket,
- the nearest unvisited site with known coordinates as the next recommendation.

Nothing here reads storage or holds state; callers pass the snapshot and catalog in.
"""

from __future__ import annotations

from typing import Sequence

from heritagetrail.core.geo import GeoPoint, haversine_km
from heritagetrail.domain.models import MotivationBucket, ProgressReport, Site, UserProgressState

MOTIVATIONAL_MESSAGES: dict[MotivationBucket, str] = {
    "not_started": "Your heritage pilgrimage awaits. Visit your first church to begin.",
    "beginning": "A good start! Every church has a story waiting for you.",
    "underway": "Great progress! Your journey through the heritage churches is well underway.",
    "almost_there": "Almost there! Only a few churches left to complete your pilgrimage.",
    "complete": "You've completed your heritage pilgrimage!",
}


def clamp01(x: float) -> float:
    """Clamp a number into the [0.0, 1.0] range."""
    return max(0.0, min(1.0, float(x)))


def motivation_bucket(percent: float) -> MotivationBucket:
    """Bucket a completion ratio: 0, <25%, <50%, <100%, 100%."""
    p = clamp01(percent)
    if p <= 0.0:
        return "not_started"
    if p < 0.25:
        return "beginning"
    if p < 0.5:
        return "underway"
    if p < 1.0:
        return "almost_there"
    return "complete"


def motivational_message(percent: float) -> str:
    return MOTIVATIONAL_MESSAGES[motivation_bucket(percent)]


def _reference_point(snapshot: UserProgressState, catalog: Sequence[Site]) -> GeoPoint | None:
    # Without an explicit origin, measure from the most recently visited located site.
    by_id = {s.id: s for s in catalog}
    for record in reversed(snapshot.visit_records):
        site = by_id.get(record.site_id)
        if site is not None and site.location is not None:
            return site.location
    return None


def recommend_next(
    snapshot: UserProgressState,
    catalog: Sequence[Site],
    *,
    origin: GeoPoint | None = None,
) -> tuple[Site | None, float | None]:
    """Return (site, distance_km) for the nearest unvisited site with coordinates.

    `origin` defaults to the last visited site. With no reference point at all the
    first eligible site in catalog order is returned with a distance of None.
    Returns (None, None) when no site is eligible.
    """
    visited = snapshot.visited_site_ids
    candidates = [s for s in catalog if s.location is not None and s.id not in visited]
    if not candidates:
        return None, None

    reference = origin if origin is not None else _reference_point(snapshot, catalog)
    if reference is None:
        return candidates[0], None

    best: Site | None = None
    best_km: float | None = None
    for site in candidates:
        d = haversine_km(reference, site.location)
        # Strict `<` keeps the earliest catalog entry on ties.
        if best_km is None or d < best_km:
            best, best_km = site, d
    return best, best_km


def compute(
    snapshot: UserProgressState,
    catalog: Sequence[Site],
    *,
    origin: GeoPoint | None = None,
) -> ProgressReport:
    """Derive the progress report for one user."""
    total_count = len(catalog)
    visited_count = len(snapshot.visited_site_ids)
    percent = clamp01(visited_count / total_count) if total_count else 0.0

    next_site, next_km = recommend_next(snapshot, catalog, origin=origin)
    last_visit = snapshot.last_visit
    last_entry = snapshot.last_journal_entry
    bucket = motivation_bucket(percent)

    return ProgressReport(
        percent=percent,
        visited_count=visited_count,
        total_count=total_count,
        recommended_next_site_id=next_site.id if next_site is not None else None,
        recommended_next_distance_km=next_km,
        motivation_bucket=bucket,
        motivational_message=MOTIVATIONAL_MESSAGES[bucket],
        favorite_count=len(snapshot.favorite_site_ids),
        journal_count=len(snapshot.journal_entries),
        last_visited_site_id=last_visit.site_id if last_visit is not None else None,
        last_journal_entry_id=last_entry.id if last_entry is not None else None,
    )
