from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Response

from src.adapters.api.dependencies import (
    get_progress_service,
    get_simulation_service,
    get_trip_service,
)
from src.adapters.api.presenters import (
    progress_to_schema,
    set_page_headers,
    trip_to_schema,
)
from src.adapters.api.schemas.trips import (
    SimulationAckSchema,
    SimulationCancelSchema,
    TripCreateSchema,
    TripProgressSchema,
    TripSchema,
    TripStatusLiteral,
)
from src.app.services.paging import paginate
from src.app.services.progress_service import ProgressService
from src.app.services.simulation_service import SimulationService
from src.app.services.trip_service import TripService
from src.domain.exceptions import NotFound
from src.domain.models import BusType, TripStatus

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("", response_model=TripSchema, status_code=201)
def create_trip(
    req: TripCreateSchema,
    service: TripService = Depends(get_trip_service),
) -> TripSchema:
    trip = service.create_trip(
        trip_id=req.trip_id,
        registration_number=req.registration_number,
        route_id=req.route_id,
        scheduled_start=req.scheduled_start,
        scheduled_end=req.scheduled_end,
    )
    return trip_to_schema(trip)


@router.get("", response_model=list[TripSchema])
def list_trips(
    response: Response,
    status: TripStatusLiteral | None = Query(None),
    registration_number: str | None = Query(None),
    route_id: str | None = Query(None),
    on_date: date | None = Query(None, alias="date", description="UTC day of departure"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=100),
    service: TripService = Depends(get_trip_service),
) -> list[TripSchema]:
    trips = service.list_trips(
        status=TripStatus(status) if status else None,
        registration_number=registration_number,
        route_id=route_id,
        on_date=on_date,
    )
    result = paginate(trips, page=page, limit=limit)
    set_page_headers(response, result)
    return [trip_to_schema(t) for t in result.items]


@router.get("/scheduled", response_model=list[TripSchema])
def list_scheduled_trips(
    on_date: date | None = Query(None, alias="date"),
    route_id: str | None = Query(None),
    bus_type: BusType | None = Query(None),
    service: TripService = Depends(get_trip_service),
) -> list[TripSchema]:
    """Upcoming and running trips, soonest departure first."""

    trips = service.scheduled_trips(on_date=on_date, route_id=route_id, bus_type=bus_type)
    return [trip_to_schema(t) for t in trips]


@router.get("/{trip_id}", response_model=TripSchema)
def get_trip(
    trip_id: str,
    service: TripService = Depends(get_trip_service),
) -> TripSchema:
    return trip_to_schema(service.get_trip(trip_id))


@router.post("/{trip_id}/start", response_model=TripSchema)
def start_trip(
    trip_id: str,
    service: TripService = Depends(get_trip_service),
) -> TripSchema:
    return trip_to_schema(service.start_trip(trip_id))


@router.post("/{trip_id}/complete", response_model=TripSchema)
def complete_trip(
    trip_id: str,
    service: TripService = Depends(get_trip_service),
) -> TripSchema:
    return trip_to_schema(service.complete_trip(trip_id))


@router.post("/{trip_id}/cancel", response_model=TripSchema)
def cancel_trip(
    trip_id: str,
    service: TripService = Depends(get_trip_service),
) -> TripSchema:
    return trip_to_schema(service.cancel_trip(trip_id))


@router.post("/{trip_id}/simulate", response_model=SimulationAckSchema, status_code=202)
async def simulate_trip(
    trip_id: str,
    service: SimulationService = Depends(get_simulation_service),
) -> SimulationAckSchema:
    """Start the demo simulation; fixes keep arriving after this returns."""

    ack = await service.start_simulation(trip_id)
    return SimulationAckSchema(
        trip_id=ack.trip_id,
        registration_number=ack.registration_number,
        message=(
            f"Simulation started: {ack.window_s:.0f}s window, "
            f"one fix every {ack.tick_interval_s:g}s"
        ),
        window_s=ack.window_s,
        tick_interval_s=ack.tick_interval_s,
        scheduled_start=ack.scheduled_start,
        scheduled_end=ack.scheduled_end,
    )


@router.delete("/{trip_id}/simulation", response_model=SimulationCancelSchema)
async def cancel_simulation(
    trip_id: str,
    service: SimulationService = Depends(get_simulation_service),
) -> SimulationCancelSchema:
    if not service.cancel_simulation(trip_id):
        raise NotFound(f"No running simulation for trip {trip_id}")
    return SimulationCancelSchema(trip_id=trip_id.strip().upper(), cancelled=True)


@router.get("/{trip_id}/progress", response_model=TripProgressSchema)
def get_trip_progress(
    trip_id: str,
    service: ProgressService = Depends(get_progress_service),
) -> TripProgressSchema:
    return progress_to_schema(service.get_current_progress(trip_id))
