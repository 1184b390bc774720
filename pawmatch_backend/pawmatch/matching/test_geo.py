# pawmatch/matching/test_geo.py
import math

import pytest

from pawmatch.matching.geo import central_angle, haversine_km, km_to_radians, EARTH_RADIUS_KM


def test_distance_to_self_is_zero():
    assert haversine_km(32.0662, 34.7778, 32.0662, 34.7778) == 0.0


def test_distance_is_symmetric():
    d1 = haversine_km(32.0853, 34.7818, 31.7683, 35.2137)
    d2 = haversine_km(31.7683, 35.2137, 32.0853, 34.7818)
    assert d1 == pytest.approx(d2)


def test_tel_aviv_to_jerusalem():
    # 약 54 km
    assert haversine_km(32.0853, 34.7818, 31.7683, 35.2137) == pytest.approx(54.0, abs=1.5)


def test_antipodal_points_do_not_overflow():
    angle = central_angle(0.0, 0.0, 0.0, 180.0)
    assert angle == pytest.approx(math.pi)
    assert haversine_km(90.0, 0.0, -90.0, 0.0) == pytest.approx(math.pi * EARTH_RADIUS_KM)


def test_km_to_radians():
    assert km_to_radians(EARTH_RADIUS_KM) == pytest.approx(1.0)
    assert km_to_radians(5) == pytest.approx(5 / 6371.0)
