from .bus import Bus, BusStatus, BusType
from .geo import GeoPoint
from .location import FixSource, GpsFix, MovementStatus
from .progress import (
    CurrentLocation,
    PositionSource,
    RouteInfo,
    TripProgress,
    TripSummary,
    UpcomingStop,
)
from .route import Route
from .stop import Stop
from .trip import StopArrival, Trip, TripStatus, build_stop_ledger

__all__ = [
    "Bus",
    "BusStatus",
    "BusType",
    "CurrentLocation",
    "FixSource",
    "GeoPoint",
    "GpsFix",
    "MovementStatus",
    "PositionSource",
    "Route",
    "RouteInfo",
    "Stop",
    "StopArrival",
    "Trip",
    "TripProgress",
    "TripStatus",
    "TripSummary",
    "UpcomingStop",
    "build_stop_ledger",
]
