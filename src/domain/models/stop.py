from __future__ import annotations

from dataclasses import dataclass

from .geo import GeoPoint


@dataclass(frozen=True, slots=True)
class Stop:
    """A named point on a route.

    `sequence` defines route order (1..N); `offset_min` is the scheduled
    number of minutes after trip start at which the stop is reached.
    """

    name: str
    sequence: int
    location: GeoPoint
    offset_min: int = 0
