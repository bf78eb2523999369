from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

TripStatusLiteral = Literal["scheduled", "in-progress", "completed", "cancelled"]


class TripCreateSchema(BaseModel):
    trip_id: str = Field(..., min_length=1, examples=["CMB-KDY-20241014-0800"])
    registration_number: str = Field(..., examples=["WP-1234"])
    route_id: str = Field(..., min_length=1)
    scheduled_start: datetime
    scheduled_end: datetime


class StopArrivalSchema(BaseModel):
    stop_name: str
    estimated_arrival: datetime
    actual_arrival: datetime | None = None
    delay_minutes: int = 0
    has_passed: bool = False


class TripSchema(BaseModel):
    trip_id: str
    registration_number: str
    route_id: str
    status: TripStatusLiteral
    scheduled_start: datetime
    scheduled_end: datetime
    actual_start: datetime | None = None
    actual_end: datetime | None = None
    current_stop: str | None = None
    stop_arrivals: list[StopArrivalSchema] = []


class SimulationAckSchema(BaseModel):
    trip_id: str
    registration_number: str
    message: str
    window_s: float
    tick_interval_s: float
    scheduled_start: datetime
    scheduled_end: datetime


class SimulationCancelSchema(BaseModel):
    trip_id: str
    cancelled: bool


class CurrentLocationSchema(BaseModel):
    description: str
    source: Literal["gps", "route-start"]
    speed_kmh: float
    timestamp: datetime
    coordinates: tuple[float, float] | None = None
    nearest_stop: str | None = None
    distance_m: float | None = None
    at_stop: bool = False


class UpcomingStopSchema(BaseModel):
    stop_name: str
    sequence: int
    scheduled_arrival: datetime
    estimated_arrival: datetime
    delay_minutes: int
    status: str


class RouteInfoSchema(BaseModel):
    route_id: str
    route_name: str
    total_stops: int
    remaining_stops: int


class TripProgressSchema(BaseModel):
    trip_id: str
    registration_number: str
    status: TripStatusLiteral
    message: str | None = None
    completed_at: datetime | None = None
    current_location: CurrentLocationSchema | None = None
    upcoming_stops: list[UpcomingStopSchema] = []
    route_info: RouteInfoSchema | None = None
