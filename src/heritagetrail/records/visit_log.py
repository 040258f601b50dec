"""
Visit analytics log (best-effort side channel).

After a visit is durably recorded, the store forwards it to a `VisitLogSink` so parish
dashboards can count visitors. A failing sink never blocks or undoes the visit.

The position fix the visit was verified from is sent along as `validated_location`.
It goes to the collector only; the user's ledger keeps just the distance.
"""

from __future__ import annotations

from typing import Any, Protocol

from heritagetrail.core.http import post_json
from heritagetrail.domain.models import LocationSample, VisitRecord


class VisitLogSink(Protocol):
    def log_visit(self, user_id: str, record: VisitRecord, sample: LocationSample | None = None) -> None: ...


class HttpVisitLogSink:
    """POST each visit as JSON to a collector endpoint."""

    def __init__(self, url: str, *, timeout_seconds: float = 10, device_type: str | None = None):
        self._url = url
        self._timeout_seconds = float(timeout_seconds)
        self._device_type = device_type

    def payload(self, user_id: str, record: VisitRecord, sample: LocationSample | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {
            "user_id": user_id,
            "visit_status": "validated",
            **record.model_dump(mode="json"),
        }
        if sample is not None:
            body["validated_location"] = {"latitude": sample.lat, "longitude": sample.lon}
            if sample.accuracy_m is not None:
                body["validated_location"]["accuracy_m"] = sample.accuracy_m
        if self._device_type:
            body["device_type"] = self._device_type
        return body

    def log_visit(self, user_id: str, record: VisitRecord, sample: LocationSample | None = None) -> None:
        post_json(self._url, payload=self.payload(user_id, record, sample), timeout_seconds=self._timeout_seconds)
