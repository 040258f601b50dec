import asyncio

import httpx
from starlette.testclient import TestClient

from conftest import site_north_of
from heritagetrail.api.app import app
from heritagetrail.domain.models import Site
from heritagetrail.records.storage import InMemoryProgressStorage

CATALOG = [
    Site(id="baclayon_church", name="Baclayon Church", latitude=9.6226, longitude=123.9137),
    Site(id="loboc_church", name="Loboc Church", latitude=9.6376, longitude=124.0306),
    Site(id="buenavista_church", name="Buenavista Church"),
]


def _patch(monkeypatch):
    # Keep API tests offline and off the real disk.
    import heritagetrail.api.routes as routes

    storage = InMemoryProgressStorage()
    monkeypatch.setattr(routes, "_catalog", lambda: CATALOG)
    monkeypatch.setattr(routes, "_storage", lambda: storage)
    return storage


def test_visit_within_radius_is_recorded_and_counted(monkeypatch):
    storage = _patch(monkeypatch)
    lat, lon = site_north_of(CATALOG[0], 0.04)

    with TestClient(app) as c:
        resp = c.post("/api/users/maria/visits", json={"site_id": "baclayon_church", "lat": lat, "lon": lon})
        progress = c.get("/api/users/maria/progress").json()

    assert resp.status_code == 200
    data = resp.json()
    assert data["outcome"]["status"] == "verified"
    assert abs(data["outcome"]["distance_km"] - 0.04) < 1e-6
    assert data["record"]["site_id"] == "baclayon_church"
    assert len(storage.load("maria")["visit_records"]) == 1

    assert progress["visited_count"] == 1
    assert progress["total_count"] == 3
    assert progress["recommended_next_site_id"] == "loboc_church"


def test_visit_too_far_is_an_outcome_not_an_error(monkeypatch):
    storage = _patch(monkeypatch)
    lat, lon = site_north_of(CATALOG[0], 0.15)

    with TestClient(app) as c:
        resp = c.post("/api/users/maria/visits", json={"site_id": "baclayon_church", "lat": lat, "lon": lon})

    assert resp.status_code == 200
    data = resp.json()
    assert data["outcome"]["status"] == "too_far"
    assert abs(data["outcome"]["distance_km"] - 0.15) < 1e-6
    assert data["record"] is None
    assert storage.load("maria") is None


def test_visit_to_site_without_coordinates(monkeypatch):
    _patch(monkeypatch)

    with TestClient(app) as c:
        resp = c.post("/api/users/maria/visits", json={"site_id": "buenavista_church", "lat": 9.6, "lon": 124.0})

    assert resp.status_code == 200
    assert resp.json()["outcome"]["status"] == "site_location_unknown"


def test_unknown_site_is_404(monkeypatch):
    _patch(monkeypatch)

    with TestClient(app) as c:
        resp = c.post("/api/users/maria/favorites/nowhere")

    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "SITE_NOT_FOUND"


def test_favorite_journal_and_preferences_round_trip(monkeypatch):
    _patch(monkeypatch)

    with TestClient(app) as c:
        first = c.post("/api/users/maria/favorites/loboc_church").json()
        planned = c.post("/api/users/maria/planned/baclayon_church").json()
        entry = c.post(
            "/api/users/maria/journal",
            json={"text": "River view from the church steps.", "site_id": "loboc_church", "rating": 5},
        )
        prefs = c.put("/api/users/maria/preferences", json={"enable_notifications": False}).json()
        state = c.get("/api/users/maria/state").json()

    assert first == {"site_id": "loboc_church", "member": True}
    assert planned["member"] is True
    assert entry.status_code == 200
    assert entry.json()["site_id"] == "loboc_church"
    assert prefs["enable_notifications"] is False
    assert state["favorite_site_ids"] == ["loboc_church"]
    assert len(state["journal_entries"]) == 1
    assert state["visit_records"] == []


def test_progress_origin_requires_both_coordinates(monkeypatch):
    _patch(monkeypatch)

    with TestClient(app) as c:
        resp = c.get("/api/users/maria/progress", params={"origin_lat": 9.6})

    assert resp.status_code == 400


def test_sites_listing(monkeypatch):
    _patch(monkeypatch)

    with TestClient(app) as c:
        data = c.get("/api/sites").json()

    assert data["count"] == 3
    assert data["sites"][2]["latitude"] is None


def test_concurrent_visits_for_one_user_each_append_a_record(monkeypatch):
    storage = _patch(monkeypatch)
    lat, lon = site_north_of(CATALOG[0], 0.02)
    body = {"site_id": "baclayon_church", "lat": lat, "lon": lon}

    async def tap_twice():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            return await asyncio.gather(
                client.post("/api/users/maria/visits", json=body),
                client.post("/api/users/maria/visits", json=body),
            )

    responses = asyncio.run(tap_twice())

    assert [r.json()["outcome"]["status"] for r in responses] == ["verified", "verified"]
    assert len(storage.load("maria")["visit_records"]) == 2


def test_concurrent_journal_posts_are_all_kept(monkeypatch):
    storage = _patch(monkeypatch)

    async def post_many():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            return await asyncio.gather(
                *[client.post("/api/users/maria/journal", json={"text": f"note {i}"}) for i in range(8)]
            )

    responses = asyncio.run(post_many())

    assert all(r.status_code == 200 for r in responses)
    texts = sorted(e["text"] for e in storage.load("maria")["journal_entries"])
    assert texts == sorted(f"note {i}" for i in range(8))
