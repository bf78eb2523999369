from __future__ import annotations

from fastapi import Response

from src.adapters.api.schemas.buses import BusSchema
from src.adapters.api.schemas.locations import GpsFixSchema
from src.adapters.api.schemas.routes import RouteSchema, StopSchema
from src.adapters.api.schemas.trips import (
    CurrentLocationSchema,
    RouteInfoSchema,
    StopArrivalSchema,
    TripProgressSchema,
    TripSchema,
    UpcomingStopSchema,
)
from src.app.services.paging import Page
from src.domain.models import Bus, GpsFix, Route, Trip, TripProgress, TripSummary


def route_to_schema(route: Route) -> RouteSchema:
    return RouteSchema(
        route_id=route.route_id,
        name=route.name,
        origin_city=route.origin_city,
        destination_city=route.destination_city,
        distance_km=route.distance_km,
        estimated_duration_min=route.estimated_duration_min,
        is_active=route.is_active,
        stops=[
            StopSchema(
                name=s.name,
                sequence=s.sequence,
                coordinates=s.location.to_lon_lat(),
                offset_min=s.offset_min,
            )
            for s in route.ordered_stops
        ],
    )


def bus_to_schema(bus: Bus) -> BusSchema:
    return BusSchema(
        registration_number=bus.registration_number,
        bus_number=bus.bus_number,
        route_name=bus.route_name,
        capacity=bus.capacity,
        type=bus.type.value,
        status=bus.status.value,
        is_active=bus.is_active,
    )


def trip_to_schema(trip: Trip) -> TripSchema:
    return TripSchema(
        trip_id=trip.trip_id,
        registration_number=trip.registration_number,
        route_id=trip.route_id,
        status=trip.status.value,
        scheduled_start=trip.scheduled_start,
        scheduled_end=trip.scheduled_end,
        actual_start=trip.actual_start,
        actual_end=trip.actual_end,
        current_stop=trip.current_stop,
        stop_arrivals=[
            StopArrivalSchema(
                stop_name=e.stop_name,
                estimated_arrival=e.estimated_arrival,
                actual_arrival=e.actual_arrival,
                delay_minutes=e.delay_minutes,
                has_passed=e.has_passed,
            )
            for e in trip.stop_arrivals
        ],
    )


def fix_to_schema(fix: GpsFix) -> GpsFixSchema:
    return GpsFixSchema(
        registration_number=fix.registration_number,
        trip_id=fix.trip_id,
        timestamp=fix.timestamp,
        coordinates=fix.location.to_lon_lat(),
        speed_kmh=fix.speed_kmh,
        heading_deg=fix.heading_deg,
        status=fix.status.value,
        source=fix.source.value,
    )


def progress_to_schema(progress: TripProgress | TripSummary) -> TripProgressSchema:
    if isinstance(progress, TripSummary):
        return TripProgressSchema(
            trip_id=progress.trip_id,
            registration_number=progress.registration_number,
            status=progress.status.value,
            message=progress.message,
            completed_at=progress.completed_at,
        )

    loc = progress.current_location
    return TripProgressSchema(
        trip_id=progress.trip_id,
        registration_number=progress.registration_number,
        status=progress.status.value,
        current_location=CurrentLocationSchema(
            description=loc.description,
            source=loc.source.value,
            speed_kmh=loc.speed_kmh,
            timestamp=loc.timestamp,
            coordinates=loc.position.to_lon_lat() if loc.position else None,
            nearest_stop=loc.nearest_stop,
            distance_m=loc.distance_m,
            at_stop=loc.at_stop,
        ),
        upcoming_stops=[
            UpcomingStopSchema(
                stop_name=u.stop_name,
                sequence=u.sequence,
                scheduled_arrival=u.scheduled_arrival,
                estimated_arrival=u.estimated_arrival,
                delay_minutes=u.delay_minutes,
                status=u.status,
            )
            for u in progress.upcoming_stops
        ],
        route_info=RouteInfoSchema(
            route_id=progress.route_info.route_id,
            route_name=progress.route_info.route_name,
            total_stops=progress.route_info.total_stops,
            remaining_stops=progress.route_info.remaining_stops,
        ),
    )


def set_page_headers(response: Response, page: Page) -> None:
    response.headers["X-Total-Count"] = str(page.total)
    response.headers["X-Total-Pages"] = str(page.total_pages)
