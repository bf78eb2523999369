from __future__ import annotations

from pydantic import BaseModel, field_validator


class CoordinatesSchema(BaseModel):
    """A `[longitude, latitude]` pair."""

    coordinates: tuple[float, float]

    @field_validator("coordinates")
    @classmethod
    def _check_range(cls, value: tuple[float, float]) -> tuple[float, float]:
        lon, lat = value
        if not (-180.0 <= lon <= 180.0):
            raise ValueError(f"Invalid longitude: {lon}")
        if not (-90.0 <= lat <= 90.0):
            raise ValueError(f"Invalid latitude: {lat}")
        return value
