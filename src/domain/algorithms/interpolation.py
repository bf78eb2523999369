from __future__ import annotations

import math
from enum import Enum
from typing import Sequence

from src.domain.exceptions import InvalidInput
from src.domain.models import GeoPoint, Stop


class InterpolationMode(str, Enum):
    # Every inter-stop segment gets the same share of progress.
    EQUAL = "equal"
    # Segments get progress in proportion to their scheduled offset delta.
    OFFSET_WEIGHTED = "offset-weighted"


def _ordered(stops: Sequence[Stop]) -> list[Stop]:
    if not stops:
        raise InvalidInput("Cannot interpolate along a route without stops")
    return sorted(stops, key=lambda s: s.sequence)


def _lerp(a: GeoPoint, b: GeoPoint, t: float) -> GeoPoint:
    return GeoPoint(
        lat=a.lat + (b.lat - a.lat) * t,
        lon=a.lon + (b.lon - a.lon) * t,
    )


def _stop_space(ordered: list[Stop], progress: float, mode: InterpolationMode) -> float:
    """Map progress in (0, 1) to a fractional stop index in [0, N-1]."""

    n = len(ordered)
    if mode is InterpolationMode.OFFSET_WEIGHTED:
        first = ordered[0].offset_min
        span = ordered[-1].offset_min - first
        if span > 0:
            target = progress * span
            for i in range(1, n):
                hi = ordered[i].offset_min - first
                if hi >= target:
                    lo = ordered[i - 1].offset_min - first
                    seg = hi - lo
                    t = 0.0 if seg <= 0 else (target - lo) / seg
                    return (i - 1) + t
            return float(n - 1)
    return progress * (n - 1)


def segment_index_at_progress(
    stops: Sequence[Stop],
    progress: float,
    mode: InterpolationMode = InterpolationMode.EQUAL,
) -> int:
    """Index (in sequence order) of the lower bounding stop at `progress`."""

    ordered = _ordered(stops)
    if progress <= 0.0:
        return 0
    if progress >= 1.0:
        return len(ordered) - 1
    return min(int(math.floor(_stop_space(ordered, progress, mode))), len(ordered) - 1)


def position_at_progress(
    stops: Sequence[Stop],
    progress: float,
    mode: InterpolationMode = InterpolationMode.EQUAL,
) -> GeoPoint:
    """Piecewise-linear position along the route at a progress fraction.

    Latitude and longitude are interpolated independently; stops are short
    enough apart that a great-circle path would not differ meaningfully.
    Real inter-stop distances are not taken into account.
    """

    ordered = _ordered(stops)
    if progress <= 0.0:
        return ordered[0].location
    if progress >= 1.0:
        return ordered[-1].location
    if len(ordered) == 1:
        return ordered[0].location

    coord = _stop_space(ordered, progress, mode)
    lower = min(int(math.floor(coord)), len(ordered) - 1)
    upper = min(lower + 1, len(ordered) - 1)
    weight = coord - lower

    if lower == upper or weight <= 0.0:
        return ordered[lower].location
    return _lerp(ordered[lower].location, ordered[upper].location, weight)
