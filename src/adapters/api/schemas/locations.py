from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from src.adapters.api.schemas.common import CoordinatesSchema


class LocationCreateSchema(CoordinatesSchema):
    registration_number: str
    trip_id: str
    speed_kmh: float = Field(0.0, ge=0.0, le=150.0)
    heading_deg: float = Field(0.0, ge=0.0, le=360.0)
    status: Literal["moving", "stopped"] = "moving"
    source: Literal["gps", "manual"] = "gps"


class GpsFixSchema(CoordinatesSchema):
    registration_number: str
    trip_id: str
    timestamp: datetime
    speed_kmh: float
    heading_deg: float
    status: Literal["moving", "stopped"]
    source: Literal["gps", "simulation", "manual"]


class LocationHistorySchema(BaseModel):
    trip_id: str
    registration_number: str
    trip_status: str
    count: int
    fixes: list[GpsFixSchema]
