import pytest

from heritagetrail.core.geo import GeoPoint, haversine_km, haversine_m

MANILA = GeoPoint(lat=14.5995, lon=120.9842)
CEBU = GeoPoint(lat=10.3157, lon=123.8854)


def test_distance_to_self_is_zero():
    for p in [MANILA, CEBU, GeoPoint(0.0, 0.0), GeoPoint(90.0, 180.0), GeoPoint(-90.0, -180.0)]:
        assert haversine_km(p, p) == pytest.approx(0.0, abs=1e-6)


def test_distance_is_symmetric():
    assert haversine_km(MANILA, CEBU) == pytest.approx(haversine_km(CEBU, MANILA), rel=1e-12)


def test_manila_to_cebu_reference_distance():
    # About 571 km along the great circle, inside the 575 ± 5 km reference band.
    assert haversine_km(MANILA, CEBU) == pytest.approx(575, abs=5)


def test_one_degree_of_latitude_on_the_meridian():
    d = haversine_km(GeoPoint(0.0, 0.0), GeoPoint(1.0, 0.0))
    assert d == pytest.approx(111.195, abs=1e-3)


def test_antipodal_points_stay_finite():
    d = haversine_km(GeoPoint(0.0, 0.0), GeoPoint(0.0, 180.0))
    assert d == pytest.approx(6371.0 * 3.141592653589793, rel=1e-9)


def test_meters_helper_matches_kilometers():
    assert haversine_m(MANILA, CEBU) == pytest.approx(haversine_km(MANILA, CEBU) * 1000)
