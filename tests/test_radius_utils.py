"""
Tests for great-circle distance and radius helpers.

Run with:
    pytest tests/test_radius_utils.py -v
"""

from __future__ import annotations

import pytest

from quakerisk.spatial.radius_utils import (
    EARTH_RADIUS_KM,
    Coordinate,
    bounding_box,
    format_distance,
    haversine,
    haversine_km,
    is_inside_radius,
)


ISTANBUL = Coordinate(41.0082, 28.9784)
ANKARA = Coordinate(39.9334, 32.8597)


# ═══════════════════════════════════════════════════════════════════════════
# Haversine
# ═══════════════════════════════════════════════════════════════════════════

class TestHaversine:
    def test_zero_distance(self):
        assert haversine(ISTANBUL, ISTANBUL) == 0.0

    def test_symmetric(self):
        assert haversine(ISTANBUL, ANKARA) == pytest.approx(haversine(ANKARA, ISTANBUL))

    def test_istanbul_ankara(self):
        assert haversine(ISTANBUL, ANKARA) == pytest.approx(350.0, abs=5.0)

    def test_one_degree_on_equator(self):
        assert round(haversine(Coordinate(0, 0), Coordinate(0, 1)), 1) == 111.2

    def test_antipodal(self):
        dist = haversine_km(0.0, 0.0, 0.0, 180.0)
        assert dist == pytest.approx(EARTH_RADIUS_KM * 3.141592653589793)

    def test_raw_accepts_out_of_range(self):
        """Catalog records are not validated before measuring."""
        assert haversine_km(95.0, 0.0, 95.0, 0.0) == 0.0

    def test_non_negative(self):
        points = [(-89.9, -179.9), (0.0, 0.0), (45.5, 120.25), (12.3, -45.6)]
        for lat1, lon1 in points:
            for lat2, lon2 in points:
                assert haversine_km(lat1, lon1, lat2, lon2) >= 0.0


class TestCoordinate:
    @pytest.mark.parametrize("lat,lon", [(90.1, 0.0), (-91.0, 0.0), (0.0, 180.5)])
    def test_out_of_range(self, lat, lon):
        with pytest.raises(ValueError):
            Coordinate(lat, lon)

    def test_radians(self):
        point = Coordinate(90.0, 180.0)
        assert point.lat_rad == pytest.approx(3.141592653589793 / 2)
        assert point.lon_rad == pytest.approx(3.141592653589793)


# ═══════════════════════════════════════════════════════════════════════════
# Bounding box & radius checks
# ═══════════════════════════════════════════════════════════════════════════

class TestBoundingBox:
    def test_flat_degree_conversion(self):
        min_lat, max_lat, min_lon, max_lon = bounding_box(Coordinate(41.0, 29.0), 111.0)
        assert (min_lat, max_lat) == pytest.approx((40.0, 42.0))
        assert (min_lon, max_lon) == pytest.approx((28.0, 30.0))

    def test_rejects_non_positive_radius(self):
        with pytest.raises(ValueError):
            bounding_box(ISTANBUL, 0)


class TestInsideRadius:
    def test_inside(self):
        inside, dist = is_inside_radius(ISTANBUL, Coordinate(40.7, 29.9), 100.0)
        assert inside is True
        assert 0 < dist < 100.0

    def test_outside(self):
        inside, dist = is_inside_radius(ISTANBUL, ANKARA, 100.0)
        assert inside is False
        assert dist > 100.0

    def test_rejects_non_positive_radius(self):
        with pytest.raises(ValueError):
            is_inside_radius(ISTANBUL, ANKARA, -5.0)


class TestFormatDistance:
    def test_meters(self):
        assert format_distance(0.45) == "450 m"

    def test_kilometers(self):
        assert format_distance(3.7266) == "3.73 km"
