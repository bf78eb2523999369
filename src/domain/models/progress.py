from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .geo import GeoPoint
from .trip import TripStatus


class PositionSource(str, Enum):
    GPS = "gps"
    ROUTE_START = "route-start"


@dataclass(frozen=True, slots=True)
class CurrentLocation:
    description: str
    source: PositionSource
    speed_kmh: float
    timestamp: datetime
    position: GeoPoint | None = None
    nearest_stop: str | None = None
    distance_m: float | None = None
    at_stop: bool = False


@dataclass(frozen=True, slots=True)
class UpcomingStop:
    stop_name: str
    sequence: int
    scheduled_arrival: datetime
    estimated_arrival: datetime
    delay_minutes: int
    status: str


@dataclass(frozen=True, slots=True)
class RouteInfo:
    route_id: str
    route_name: str
    total_stops: int
    remaining_stops: int


@dataclass(frozen=True, slots=True)
class TripProgress:
    """Rider-facing view of where a bus is and when it reaches each stop."""

    trip_id: str
    registration_number: str
    status: TripStatus
    current_location: CurrentLocation
    route_info: RouteInfo
    upcoming_stops: tuple[UpcomingStop, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class TripSummary:
    """Terminal view returned once a trip is over."""

    trip_id: str
    registration_number: str
    status: TripStatus
    message: str
    completed_at: datetime | None = None
