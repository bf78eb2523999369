from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from src.domain.algorithms.time_utils import as_utc
from src.domain.models import (
    Bus,
    BusStatus,
    BusType,
    FixSource,
    GeoPoint,
    GpsFix,
    MovementStatus,
    Route,
    Stop,
    StopArrival,
    Trip,
    TripStatus,
)


def _dt(raw: str | None) -> datetime | None:
    return as_utc(datetime.fromisoformat(raw)) if raw else None


def _iso(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value is not None else None


def route_to_dict(route: Route) -> dict[str, Any]:
    return {
        "route_id": route.route_id,
        "name": route.name,
        "origin_city": route.origin_city,
        "destination_city": route.destination_city,
        "distance_km": route.distance_km,
        "estimated_duration_min": route.estimated_duration_min,
        "is_active": route.is_active,
        "stops": [
            {
                "name": s.name,
                "sequence": s.sequence,
                "coordinates": list(s.location.to_lon_lat()),
                "offset_min": s.offset_min,
            }
            for s in route.stops
        ],
    }


def route_from_dict(data: Mapping[str, Any]) -> Route:
    return Route(
        route_id=data["route_id"],
        name=data["name"],
        origin_city=data.get("origin_city"),
        destination_city=data.get("destination_city"),
        distance_km=data.get("distance_km"),
        estimated_duration_min=data.get("estimated_duration_min"),
        is_active=bool(data.get("is_active", True)),
        stops=tuple(
            Stop(
                name=s["name"],
                sequence=int(s["sequence"]),
                location=GeoPoint.from_lon_lat(s["coordinates"]),
                offset_min=int(s.get("offset_min", 0)),
            )
            for s in data.get("stops", [])
        ),
    )


def bus_to_dict(bus: Bus) -> dict[str, Any]:
    return {
        "registration_number": bus.registration_number,
        "bus_number": bus.bus_number,
        "route_name": bus.route_name,
        "capacity": bus.capacity,
        "type": bus.type.value,
        "status": bus.status.value,
        "is_active": bus.is_active,
    }


def bus_from_dict(data: Mapping[str, Any]) -> Bus:
    return Bus(
        registration_number=data["registration_number"],
        bus_number=data["bus_number"],
        route_name=data["route_name"],
        capacity=int(data["capacity"]),
        type=BusType(data.get("type", BusType.NORMAL.value)),
        status=BusStatus(data.get("status", BusStatus.ACTIVE.value)),
        is_active=bool(data.get("is_active", True)),
    )


def ledger_to_list(entries: tuple[StopArrival, ...]) -> list[dict[str, Any]]:
    return [
        {
            "stop_name": e.stop_name,
            "estimated_arrival": _iso(e.estimated_arrival),
            "actual_arrival": _iso(e.actual_arrival),
            "delay_minutes": e.delay_minutes,
            "has_passed": e.has_passed,
        }
        for e in entries
    ]


def ledger_from_list(raw: list[Mapping[str, Any]]) -> tuple[StopArrival, ...]:
    out: list[StopArrival] = []
    for e in raw:
        estimated = _dt(e["estimated_arrival"])
        assert estimated is not None
        out.append(
            StopArrival(
                stop_name=e["stop_name"],
                estimated_arrival=estimated,
                actual_arrival=_dt(e.get("actual_arrival")),
                delay_minutes=int(e.get("delay_minutes") or 0),
                has_passed=bool(e.get("has_passed", False)),
            )
        )
    return tuple(out)


def trip_to_dict(trip: Trip) -> dict[str, Any]:
    return {
        "trip_id": trip.trip_id,
        "registration_number": trip.registration_number,
        "route_id": trip.route_id,
        "scheduled_start": _iso(trip.scheduled_start),
        "scheduled_end": _iso(trip.scheduled_end),
        "status": trip.status.value,
        "actual_start": _iso(trip.actual_start),
        "actual_end": _iso(trip.actual_end),
        "current_stop": trip.current_stop,
        "is_active": trip.is_active,
    }


def trip_from_dict(
    data: Mapping[str, Any], ledger: tuple[StopArrival, ...]
) -> Trip:
    scheduled_start = _dt(data["scheduled_start"])
    scheduled_end = _dt(data["scheduled_end"])
    assert scheduled_start is not None and scheduled_end is not None
    return Trip(
        trip_id=data["trip_id"],
        registration_number=data["registration_number"],
        route_id=data["route_id"],
        scheduled_start=scheduled_start,
        scheduled_end=scheduled_end,
        status=TripStatus(data.get("status", TripStatus.SCHEDULED.value)),
        actual_start=_dt(data.get("actual_start")),
        actual_end=_dt(data.get("actual_end")),
        current_stop=data.get("current_stop"),
        is_active=bool(data.get("is_active", True)),
        stop_arrivals=ledger,
    )


def fix_to_dict(fix: GpsFix) -> dict[str, Any]:
    return {
        "registration_number": fix.registration_number,
        "trip_id": fix.trip_id,
        "timestamp": _iso(fix.timestamp),
        "coordinates": list(fix.location.to_lon_lat()),
        "speed_kmh": fix.speed_kmh,
        "heading_deg": fix.heading_deg,
        "status": fix.status.value,
        "source": fix.source.value,
    }


def fix_from_dict(data: Mapping[str, Any]) -> GpsFix:
    timestamp = _dt(data["timestamp"])
    assert timestamp is not None
    return GpsFix(
        registration_number=data["registration_number"],
        trip_id=data["trip_id"],
        timestamp=timestamp,
        location=GeoPoint.from_lon_lat(data["coordinates"]),
        speed_kmh=float(data.get("speed_kmh", 0.0)),
        heading_deg=float(data.get("heading_deg", 0.0)),
        status=MovementStatus(data.get("status", MovementStatus.MOVING.value)),
        source=FixSource(data.get("source", FixSource.GPS.value)),
    )
