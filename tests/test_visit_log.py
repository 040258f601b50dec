from datetime import datetime, timezone

import httpx
import pytest

from heritagetrail.config.settings import Settings
from heritagetrail.domain.models import LocationSample, VisitRecord
from heritagetrail.records.visit_log import HttpVisitLogSink
from heritagetrail.session import build_visit_log


def _record() -> VisitRecord:
    return VisitRecord(
        site_id="loboc_church",
        visited_at=datetime(2026, 3, 1, 7, 0, tzinfo=timezone.utc),
        distance_km=0.012,
        time_of_day="afternoon",
    )


def test_http_sink_posts_record_as_json(monkeypatch):
    sent = {}

    def fake_post_json(url, *, payload, timeout_seconds):
        sent.update(url=url, payload=payload, timeout=timeout_seconds)

    monkeypatch.setattr("heritagetrail.records.visit_log.post_json", fake_post_json)

    HttpVisitLogSink("https://collector.test/visits", timeout_seconds=3).log_visit("maria", _record())

    assert sent["url"] == "https://collector.test/visits"
    assert sent["timeout"] == 3
    assert sent["payload"]["user_id"] == "maria"
    assert sent["payload"]["site_id"] == "loboc_church"
    assert sent["payload"]["visit_status"] == "validated"
    assert sent["payload"]["distance_km"] == 0.012
    assert "validated_location" not in sent["payload"]
    assert "device_type" not in sent["payload"]


def test_http_sink_forwards_validated_location_and_device_type(monkeypatch):
    sent = {}
    monkeypatch.setattr(
        "heritagetrail.records.visit_log.post_json",
        lambda url, *, payload, timeout_seconds: sent.update(payload=payload),
    )
    sample = LocationSample(
        lat=9.6377, lon=124.0306, accuracy_m=6.5, captured_at=datetime(2026, 3, 1, 7, 0, tzinfo=timezone.utc)
    )

    sink = HttpVisitLogSink("https://collector.test/visits", device_type="android")
    sink.log_visit("maria", _record(), sample)

    assert sent["payload"]["validated_location"] == {"latitude": 9.6377, "longitude": 124.0306, "accuracy_m": 6.5}
    assert sent["payload"]["device_type"] == "android"


def test_http_sink_raises_on_server_error(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    real_client = httpx.Client
    monkeypatch.setattr(
        "heritagetrail.core.http.httpx.Client",
        lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw),
    )

    with pytest.raises(httpx.HTTPStatusError):
        HttpVisitLogSink("https://collector.test/visits").log_visit("maria", _record())


def test_visit_log_is_only_built_when_enabled():
    assert build_visit_log(Settings()) is None

    settings = Settings.model_validate(
        {"visit_log": {"enabled": True, "url": "https://collector.test/v", "device_type": "kiosk"}}
    )
    sink = build_visit_log(settings)
    assert isinstance(sink, HttpVisitLogSink)
    assert sink.payload("maria", _record())["device_type"] == "kiosk"
