import json

import pytest
from pydantic import ValidationError

from heritagetrail.catalog.loader import load_sites, sites_by_id


def _write(tmp_path, payload):
    path = tmp_path / "sites.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_load_sites_accepts_missing_coordinates(tmp_path):
    path = _write(
        tmp_path,
        [
            {"id": "loboc_church", "name": "Loboc Church", "latitude": 9.6376, "longitude": 124.0306},
            {"id": "buenavista_church", "name": "Buenavista Church", "latitude": None},
            {"id": "half", "name": "Only latitude", "latitude": 9.9},
        ],
    )

    sites = load_sites(path)

    assert [s.id for s in sites] == ["loboc_church", "buenavista_church", "half"]
    assert sites[0].location is not None
    assert sites[1].location is None
    assert sites[2].location is None


def test_load_sites_rejects_out_of_range_coordinates(tmp_path):
    path = _write(tmp_path, [{"id": "x", "name": "X", "latitude": 123.9, "longitude": 9.6}])
    with pytest.raises(ValidationError):
        load_sites(path)


def test_load_sites_rejects_duplicate_ids(tmp_path):
    path = _write(tmp_path, [{"id": "x", "name": "X"}, {"id": " x ", "name": "X again"}])
    with pytest.raises(ValueError, match="Duplicate site id"):
        load_sites(path)


def test_packaged_catalog_is_valid():
    sites = load_sites("data/catalogs/sites.json")
    index = sites_by_id(sites)

    assert "baclayon_church" in index
    assert any(s.location is None for s in sites)
