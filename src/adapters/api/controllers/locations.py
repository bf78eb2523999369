from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.adapters.api.dependencies import get_location_service, get_progress_service
from src.adapters.api.presenters import fix_to_schema, progress_to_schema
from src.adapters.api.schemas.locations import (
    GpsFixSchema,
    LocationCreateSchema,
    LocationHistorySchema,
)
from src.adapters.api.schemas.trips import TripProgressSchema
from src.app.services.location_service import LocationService
from src.app.services.progress_service import ProgressService
from src.domain.models import FixSource, GeoPoint, MovementStatus

router = APIRouter(prefix="/locations", tags=["locations"])


@router.post("", response_model=GpsFixSchema, status_code=201)
def record_location(
    req: LocationCreateSchema,
    service: LocationService = Depends(get_location_service),
) -> GpsFixSchema:
    fix = service.record_fix(
        registration_number=req.registration_number,
        trip_id=req.trip_id,
        location=GeoPoint.from_lon_lat(req.coordinates),
        speed_kmh=req.speed_kmh,
        heading_deg=req.heading_deg,
        status=MovementStatus(req.status),
        source=FixSource(req.source),
    )
    return fix_to_schema(fix)


@router.get("/trip/{trip_id}/history", response_model=LocationHistorySchema)
def get_trip_history(
    trip_id: str,
    limit: int = Query(100, ge=1, le=1000),
    service: LocationService = Depends(get_location_service),
) -> LocationHistorySchema:
    trip, fixes = service.history(trip_id, limit=limit)
    return LocationHistorySchema(
        trip_id=trip.trip_id,
        registration_number=trip.registration_number,
        trip_status=trip.status.value,
        count=len(fixes),
        fixes=[fix_to_schema(f) for f in fixes],
    )


@router.get("/bus/{registration_number}/current", response_model=TripProgressSchema)
def get_bus_current_location(
    registration_number: str,
    service: ProgressService = Depends(get_progress_service),
) -> TripProgressSchema:
    return progress_to_schema(service.get_current_progress_for_bus(registration_number))
