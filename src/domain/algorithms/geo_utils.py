from __future__ import annotations

import math

from src.domain.models import GeoPoint

EARTH_RADIUS_M = 6371000.0


def haversine_distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters."""

    lat1 = math.radians(a.lat)
    lon1 = math.radians(a.lon)
    lat2 = math.radians(b.lat)
    lon2 = math.radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    s = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2.0) ** 2
    )
    # Clamp: rounding can push s a hair above 1 for antipodal points.
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, s)))


def format_distance_km(distance_m: float) -> float:
    """Kilometres rounded to one decimal, e.g. 1549 m -> 1.5."""

    return math.floor(distance_m / 100.0 + 0.5) / 10.0
