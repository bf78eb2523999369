from __future__ import annotations

from dataclasses import dataclass

from src.domain.exceptions import InvalidInput


@dataclass(frozen=True, slots=True)
class GeoPoint:
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.lat <= 90.0):
            raise InvalidInput(f"Invalid latitude: {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise InvalidInput(f"Invalid longitude: {self.lon}")

    @staticmethod
    def from_lon_lat(coordinates: tuple[float, float] | list[float]) -> "GeoPoint":
        """Build a point from a GeoJSON-style `[longitude, latitude]` pair."""

        if len(coordinates) != 2:
            raise InvalidInput(f"Expected [lon, lat], got {list(coordinates)!r}")
        lon, lat = coordinates
        return GeoPoint(lat=float(lat), lon=float(lon))

    def to_lon_lat(self) -> tuple[float, float]:
        return (self.lon, self.lat)
