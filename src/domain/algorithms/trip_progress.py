from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from src.domain.algorithms.geo_utils import format_distance_km, haversine_distance_m
from src.domain.algorithms.time_utils import round_minutes
from src.domain.models import (
    CurrentLocation,
    GeoPoint,
    GpsFix,
    PositionSource,
    Route,
    RouteInfo,
    Stop,
    Trip,
    TripProgress,
    TripStatus,
    TripSummary,
    UpcomingStop,
)

ARRIVAL_RADIUS_M = 200.0
DEFAULT_SPEED_KMH = 45.0


@dataclass(frozen=True, slots=True)
class ClosestStop:
    stop: Stop
    index: int
    distance_m: float
    is_exact_match: bool


def describe_delay(delay_minutes: int) -> str:
    if delay_minutes > 0:
        return f"delayed by {delay_minutes} minutes"
    if delay_minutes < 0:
        return f"early by {abs(delay_minutes)} minutes"
    return "on time"


def find_closest_stop(
    position: GeoPoint,
    stops: tuple[Stop, ...],
    *,
    radius_m: float = ARRIVAL_RADIUS_M,
) -> ClosestStop | None:
    """Linear scan over every stop; `None` when the route has no stops."""

    best: ClosestStop | None = None
    for i, stop in enumerate(stops):
        d = haversine_distance_m(position, stop.location)
        if best is None or d < best.distance_m:
            best = ClosestStop(
                stop=stop, index=i, distance_m=d, is_exact_match=d <= radius_m
            )
    return best


def _describe_location(closest: ClosestStop | None) -> str:
    if closest is None:
        return "No stops on route"
    if closest.is_exact_match:
        return f"At {closest.stop.name}"
    return f"{format_distance_km(closest.distance_m)} km from {closest.stop.name}"


def _route_index(stops: tuple[Stop, ...], stop_name: str, hint: int) -> int | None:
    # Ledger entries mirror route order, so the same position is tried first.
    if 0 <= hint < len(stops) and stops[hint].name == stop_name:
        return hint
    for i, stop in enumerate(stops):
        if stop.name == stop_name:
            return i
    return None


def _summary(trip: Trip) -> TripSummary:
    if trip.status is TripStatus.COMPLETED:
        message = "Trip has been completed"
    else:
        message = "Trip has been cancelled"
    return TripSummary(
        trip_id=trip.trip_id,
        registration_number=trip.registration_number,
        status=trip.status,
        message=message,
        completed_at=trip.actual_end or trip.scheduled_end,
    )


def build_trip_progress(
    trip: Trip,
    route: Route,
    latest_fix: GpsFix | None,
    *,
    now: datetime,
    radius_m: float = ARRIVAL_RADIUS_M,
    default_speed_kmh: float = DEFAULT_SPEED_KMH,
) -> TripProgress | TripSummary:
    """Reconstruct "where is the bus" and per-stop ETAs from persisted state.

    Only the latest fix and the trip's stop ledger are consulted, so this
    works in a fresh process long after (or before) any simulation ran.
    """

    if trip.status.is_terminal:
        return _summary(trip)

    stops = route.ordered_stops

    position: GeoPoint | None
    if latest_fix is not None:
        position = latest_fix.location
        speed = latest_fix.speed_kmh or default_speed_kmh
        reference_time = latest_fix.timestamp
        source = PositionSource.GPS
    else:
        first = route.first_stop
        position = first.location if first is not None else None
        speed = default_speed_kmh
        reference_time = now
        source = PositionSource.ROUTE_START

    closest = (
        find_closest_stop(position, stops, radius_m=radius_m)
        if position is not None
        else None
    )

    upcoming: list[UpcomingStop] = []
    if closest is not None and position is not None:
        candidates: list[tuple[int, int]] = []
        for ledger_i, entry in enumerate(trip.stop_arrivals):
            if entry.has_passed:
                continue
            route_i = _route_index(stops, entry.stop_name, ledger_i)
            if route_i is None:
                continue
            ahead = (
                route_i > closest.index
                if closest.is_exact_match
                else route_i >= closest.index
            )
            if ahead:
                candidates.append((route_i, ledger_i))

        candidates.sort(key=lambda c: stops[c[0]].sequence)

        for route_i, ledger_i in candidates:
            stop = stops[route_i]
            entry = trip.stop_arrivals[ledger_i]

            distance_km = format_distance_km(
                haversine_distance_m(position, stop.location)
            )
            travel_min = int(math.floor(distance_km / speed * 60.0 + 0.5))
            eta = reference_time + timedelta(minutes=travel_min)

            if entry.actual_arrival is not None:
                delay = round_minutes(entry.actual_arrival - entry.estimated_arrival)
            else:
                delay = round_minutes(eta - entry.estimated_arrival)

            upcoming.append(
                UpcomingStop(
                    stop_name=entry.stop_name,
                    sequence=stop.sequence,
                    scheduled_arrival=entry.estimated_arrival,
                    estimated_arrival=eta,
                    delay_minutes=delay,
                    status=describe_delay(delay),
                )
            )

    current = CurrentLocation(
        description=_describe_location(closest),
        source=source,
        speed_kmh=float(speed),
        timestamp=reference_time,
        position=position,
        nearest_stop=closest.stop.name if closest is not None else None,
        distance_m=closest.distance_m if closest is not None else None,
        at_stop=bool(closest and closest.is_exact_match),
    )

    return TripProgress(
        trip_id=trip.trip_id,
        registration_number=trip.registration_number,
        status=trip.status,
        current_location=current,
        route_info=RouteInfo(
            route_id=route.route_id,
            route_name=route.name,
            total_stops=len(stops),
            remaining_stops=len(upcoming),
        ),
        upcoming_stops=tuple(upcoming),
    )
