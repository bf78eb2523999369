from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from src.domain.exceptions import InvalidInput

from .geo import GeoPoint


class MovementStatus(str, Enum):
    MOVING = "moving"
    STOPPED = "stopped"


class FixSource(str, Enum):
    GPS = "gps"
    SIMULATION = "simulation"
    MANUAL = "manual"


@dataclass(frozen=True, slots=True)
class GpsFix:
    """A single timestamped position sample for a bus on a trip."""

    registration_number: str
    trip_id: str
    timestamp: datetime
    location: GeoPoint
    speed_kmh: float = 0.0
    heading_deg: float = 0.0
    status: MovementStatus = MovementStatus.MOVING
    source: FixSource = FixSource.GPS

    def __post_init__(self) -> None:
        if not (0.0 <= self.speed_kmh <= 150.0):
            raise InvalidInput(f"Invalid speed: {self.speed_kmh}")
        if not (0.0 <= self.heading_deg <= 360.0):
            raise InvalidInput(f"Invalid heading: {self.heading_deg}")
