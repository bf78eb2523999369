from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from src.app.ports.output import ILocationRepository, IRouteRepository, ITripRepository
from src.domain.algorithms.time_utils import utc_now
from src.domain.algorithms.trip_progress import (
    ARRIVAL_RADIUS_M,
    DEFAULT_SPEED_KMH,
    build_trip_progress,
)
from src.domain.exceptions import NotFound
from src.domain.models import Trip, TripProgress, TripStatus, TripSummary
from src.domain.models.bus import normalize_registration

_ACTIVE_STATUSES = (TripStatus.IN_PROGRESS, TripStatus.SCHEDULED)


@dataclass(slots=True)
class ProgressService:
    """Answers "where is the bus now" from persisted fixes and the ledger only."""

    trips: ITripRepository
    routes: IRouteRepository
    locations: ILocationRepository
    radius_m: float = ARRIVAL_RADIUS_M
    default_speed_kmh: float = DEFAULT_SPEED_KMH
    clock: Callable[[], datetime] = field(default=utc_now)

    def get_current_progress(self, trip_id: str) -> TripProgress | TripSummary:
        trip = self.trips.get(trip_id.strip().upper())
        if trip is None:
            raise NotFound(f"Trip not found: {trip_id}")
        return self._progress(trip)

    def get_current_progress_for_bus(
        self, registration_number: str
    ) -> TripProgress | TripSummary:
        """Progress of the bus's current trip (in-progress first, then scheduled)."""

        registration_number = normalize_registration(registration_number)
        for status in _ACTIVE_STATUSES:
            trips = self.trips.list(status=status, registration_number=registration_number)
            if trips:
                return self._progress(trips[0])
        raise NotFound(f"No active trip found for bus {registration_number}")

    def _progress(self, trip: Trip) -> TripProgress | TripSummary:
        route = self.routes.get(trip.route_id)
        if route is None:
            raise NotFound(f"Route not found: {trip.route_id}")

        latest = None if trip.status.is_terminal else self.locations.latest(trip.trip_id)
        return build_trip_progress(
            trip,
            route,
            latest,
            now=self.clock(),
            radius_m=self.radius_m,
            default_speed_kmh=self.default_speed_kmh,
        )
