from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from src.app.ports.output import ILocationRepository, ITripRepository
from src.domain.algorithms.time_utils import utc_now
from src.domain.exceptions import InvalidInput, NotFound
from src.domain.models import FixSource, GeoPoint, GpsFix, MovementStatus, Trip
from src.domain.models.bus import normalize_registration


@dataclass(slots=True)
class LocationService:
    """Records externally reported fixes and serves a trip's fix history."""

    trips: ITripRepository
    locations: ILocationRepository
    clock: Callable[[], datetime] = field(default=utc_now)

    def _trip(self, trip_id: str) -> Trip:
        trip = self.trips.get(trip_id.strip().upper())
        if trip is None:
            raise NotFound(f"Trip not found: {trip_id}")
        return trip

    def record_fix(
        self,
        *,
        registration_number: str,
        trip_id: str,
        location: GeoPoint,
        speed_kmh: float = 0.0,
        heading_deg: float = 0.0,
        status: MovementStatus = MovementStatus.MOVING,
        source: FixSource = FixSource.GPS,
    ) -> GpsFix:
        if source is FixSource.SIMULATION:
            raise InvalidInput("Simulation fixes are produced by the simulator only")
        trip = self._trip(trip_id)
        registration_number = normalize_registration(registration_number)
        if registration_number != trip.registration_number:
            raise InvalidInput(
                f"Bus {registration_number} is not assigned to trip {trip.trip_id}"
            )

        fix = GpsFix(
            registration_number=registration_number,
            trip_id=trip.trip_id,
            timestamp=self.clock(),
            location=location,
            speed_kmh=speed_kmh,
            heading_deg=heading_deg,
            status=status,
            source=source,
        )
        self.locations.append(fix)
        return fix

    def history(self, trip_id: str, *, limit: int = 100) -> tuple[Trip, tuple[GpsFix, ...]]:
        trip = self._trip(trip_id)
        return trip, self.locations.history(trip.trip_id, limit=limit)
