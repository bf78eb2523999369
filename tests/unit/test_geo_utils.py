from __future__ import annotations

import pytest

from src.domain.algorithms.geo_utils import format_distance_km, haversine_distance_m
from src.domain.models.geo import GeoPoint


def test_haversine_zero_for_identical_points() -> None:
    p = GeoPoint(lat=6.9, lon=79.8)
    assert haversine_distance_m(p, p) == 0.0


def test_haversine_is_symmetric_and_reasonable_scale() -> None:
    # Rough sanity check: 1 degree of latitude is about 111km.
    a = GeoPoint(lat=0.0, lon=0.0)
    b = GeoPoint(lat=1.0, lon=0.0)

    d1 = haversine_distance_m(a, b)
    d2 = haversine_distance_m(b, a)

    assert abs(d1 - d2) < 1e-6
    assert 100_000.0 < d1 < 120_000.0


def test_haversine_handles_antipodal_points() -> None:
    d = haversine_distance_m(GeoPoint(lat=0.0, lon=0.0), GeoPoint(lat=0.0, lon=180.0))
    assert d == pytest.approx(20_015_086.8, rel=1e-6)


@pytest.mark.parametrize(
    ("meters", "km"),
    [(0.0, 0.0), (1549.0, 1.5), (1550.0, 1.6), (11_119.5, 11.1), (49.0, 0.0)],
)
def test_format_distance_km_rounds_to_one_decimal(meters: float, km: float) -> None:
    assert format_distance_km(meters) == km
