from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from heritagetrail.domain.models import Site

# One degree of latitude on the 6371 km sphere.
KM_PER_DEG_LAT = 6371.0 * 3.141592653589793 / 180.0

CHURCH_LAT = 9.6226
CHURCH_LON = 123.9137


def site_north_of(site: Site, km: float) -> tuple[float, float]:
    """Return a (lat, lon) exactly `km` due north of `site`."""
    return site.latitude + km / KM_PER_DEG_LAT, site.longitude


@pytest.fixture
def church() -> Site:
    return Site(id="baclayon_church", name="Baclayon Church", latitude=CHURCH_LAT, longitude=CHURCH_LON)


@pytest.fixture
def unlocated_church() -> Site:
    return Site(id="buenavista_church", name="Buenavista Church")


@pytest.fixture
def fixed_clock():
    tz = ZoneInfo("Asia/Manila")
    return lambda: datetime(2026, 3, 1, 9, 30, tzinfo=tz)
