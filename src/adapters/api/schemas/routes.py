from __future__ import annotations

from pydantic import BaseModel, Field

from src.adapters.api.schemas.common import CoordinatesSchema


class StopSchema(CoordinatesSchema):
    name: str = Field(..., min_length=1)
    sequence: int = Field(..., ge=1)
    offset_min: int = Field(0, ge=0, description="Minutes after trip start")


class RouteWriteSchema(BaseModel):
    name: str = Field(..., min_length=1)
    origin_city: str | None = None
    destination_city: str | None = None
    distance_km: float | None = Field(None, ge=0)
    estimated_duration_min: int | None = Field(None, ge=0)
    stops: list[StopSchema] = []


class RouteCreateSchema(RouteWriteSchema):
    route_id: str = Field(..., min_length=1)


class RouteSchema(RouteCreateSchema):
    is_active: bool = True
