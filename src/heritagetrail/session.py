from __future__ import annotations

# Builders that turn Settings into ready-to-use collaborators.
# The CLI and API both go through these so verification radius, timeouts and storage
# location come from one place (config), and tests can inject stubs instead.

from heritagetrail.config.settings import Settings, get_settings
from heritagetrail.core.env import resolve_project_path
from heritagetrail.location.gateway import LocationGateway, LocationPlatform
from heritagetrail.records.storage import JsonFileProgressStorage, ProgressStorage
from heritagetrail.records.store import VisitRecordStore
from heritagetrail.records.visit_log import HttpVisitLogSink, VisitLogSink
from heritagetrail.verification.proximity import ProximityVerifier


def build_storage(settings: Settings) -> JsonFileProgressStorage:
    return JsonFileProgressStorage(resolve_project_path(settings.storage.dir))


def build_visit_log(settings: Settings) -> VisitLogSink | None:
    if not settings.visit_log.enabled or not settings.visit_log.url:
        return None
    return HttpVisitLogSink(
        settings.visit_log.url,
        timeout_seconds=settings.app.http_timeout_seconds,
        device_type=settings.visit_log.device_type,
    )


def open_store(
    user_id: str,
    *,
    settings: Settings | None = None,
    storage: ProgressStorage | None = None,
    visit_log: VisitLogSink | None = None,
) -> VisitRecordStore:
    """Hydrate a user's ledger using configured storage unless one is injected."""
    settings = settings or get_settings()
    storage = storage if storage is not None else build_storage(settings)
    if visit_log is None:
        visit_log = build_visit_log(settings)
    return VisitRecordStore.open(
        user_id,
        storage,
        radius_km=settings.verification.radius_km,
        timezone=settings.app.timezone,
        visit_log=visit_log,
    )


def build_verifier(platform: LocationPlatform, *, settings: Settings | None = None) -> ProximityVerifier:
    settings = settings or get_settings()
    gateway = LocationGateway(platform, fetch_timeout_seconds=settings.verification.fetch_timeout_seconds)
    return ProximityVerifier(gateway, radius_km=settings.verification.radius_km)
