from __future__ import annotations

import math

import pytest

from mealpick.geo import EARTH_RADIUS_M, GeoReading, SiteFence, haversine_m, is_on_site

SITE = (5.6037, -0.1870)  # Accra


def _north_of_site(metres):
    """Latitude ``metres`` due north of the site (exact on the haversine sphere)."""
    return SITE[0] + math.degrees(metres / EARTH_RADIUS_M)


def _fence(radius=200.0):
    return SiteFence(lat=SITE[0], lon=SITE[1], radius_m=radius)


def test_haversine_zero_and_symmetric():
    assert haversine_m(*SITE, *SITE) == 0
    a = haversine_m(5.0, -0.1, 5.1, -0.2)
    b = haversine_m(5.1, -0.2, 5.0, -0.1)
    assert a == pytest.approx(b)


def test_haversine_one_degree_latitude():
    assert haversine_m(0, 0, 1, 0) == pytest.approx(111_195, abs=1)


def test_on_site():
    check = is_on_site(GeoReading(_north_of_site(50), SITE[1], 10, 1_000), _fence())
    assert check.allowed
    assert check.reason is None
    assert check.distance_m == pytest.approx(50, abs=1e-6)


def test_exact_radius_allowed_one_more_metre_rejected():
    lat = _north_of_site(200)
    edge = haversine_m(lat, SITE[1], *SITE)
    at_edge = SiteFence(lat=SITE[0], lon=SITE[1], radius_m=edge)
    assert is_on_site(GeoReading(lat, SITE[1], 5, 0), at_edge).allowed
    outside = is_on_site(GeoReading(_north_of_site(201), SITE[1], 5, 0), _fence(200.0))
    assert not outside.allowed
    assert outside.reason == "out_of_range"
    assert outside.distance_m == pytest.approx(201, abs=1e-6)
    assert "201 m" in outside.detail


def test_stale_checked_before_accuracy_and_distance():
    far = _north_of_site(10_000)
    check = is_on_site(GeoReading(far, SITE[1], 500, 30_001), _fence())
    assert check.reason == "stale_location"
    assert check.distance_m is None


def test_age_at_limit_is_fresh():
    assert is_on_site(GeoReading(SITE[0], SITE[1], 10, 30_000), _fence()).allowed


def test_low_accuracy():
    check = is_on_site(GeoReading(SITE[0], SITE[1], 100.5, 0), _fence())
    assert not check.allowed
    assert check.reason == "low_accuracy"
    assert is_on_site(GeoReading(SITE[0], SITE[1], 100.0, 0), _fence()).allowed


def test_thresholds_configurable():
    strict = SiteFence(SITE[0], SITE[1], 200.0, max_age_ms=5_000, max_accuracy_m=20.0)
    assert is_on_site(GeoReading(SITE[0], SITE[1], 10, 6_000), strict).reason == "stale_location"
    assert is_on_site(GeoReading(SITE[0], SITE[1], 25, 0), strict).reason == "low_accuracy"
