from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

BusTypeLiteral = Literal["normal", "semi-luxury", "luxury", "super-luxury"]
BusStatusLiteral = Literal["active", "inactive", "maintenance", "en-route", "at-stop"]


class BusWriteSchema(BaseModel):
    bus_number: str = Field(..., min_length=1)
    route_name: str = Field(..., min_length=1)
    capacity: int = Field(..., ge=20)
    type: BusTypeLiteral = "normal"
    status: BusStatusLiteral = "active"


class BusCreateSchema(BusWriteSchema):
    registration_number: str = Field(..., examples=["WP-1234"])


class BusSchema(BusCreateSchema):
    is_active: bool = True
