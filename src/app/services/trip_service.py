from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable

from src.app.ports.output import IBusRepository, IRouteRepository, ITripRepository
from src.app.services.simulation_service import SimulationService
from src.domain.algorithms.time_utils import as_utc, utc_now
from src.domain.exceptions import InvalidInput, NotFound
from src.domain.models import BusType, Trip, TripStatus, build_stop_ledger
from src.domain.models.bus import normalize_registration

logger = logging.getLogger(__name__)

_UPCOMING_STATUSES = frozenset({TripStatus.SCHEDULED, TripStatus.IN_PROGRESS})


@dataclass(slots=True)
class TripService:
    trips: ITripRepository
    routes: IRouteRepository
    buses: IBusRepository
    simulations: SimulationService | None = None
    clock: Callable[[], datetime] = field(default=utc_now)

    def create_trip(
        self,
        *,
        trip_id: str,
        registration_number: str,
        route_id: str,
        scheduled_start: datetime,
        scheduled_end: datetime,
    ) -> Trip:
        trip_id = (trip_id or "").strip().upper()
        if not trip_id:
            raise InvalidInput("trip_id is required")
        registration_number = normalize_registration(registration_number)
        route_id = (route_id or "").strip().upper()

        start = as_utc(scheduled_start)
        end = as_utc(scheduled_end)
        if end <= start:
            raise InvalidInput("scheduled_end must be after scheduled_start")

        bus = self.buses.get(registration_number)
        if bus is None or not bus.is_active:
            raise NotFound(f"Bus not found: {registration_number}")
        route = self.routes.get(route_id)
        if route is None or not route.is_active:
            raise NotFound(f"Route not found: {route_id}")

        trip = Trip(
            trip_id=trip_id,
            registration_number=registration_number,
            route_id=route_id,
            scheduled_start=start,
            scheduled_end=end,
            stop_arrivals=build_stop_ledger(route, start),
        )
        return self.trips.create(trip)

    def get_trip(self, trip_id: str) -> Trip:
        trip = self.trips.get(trip_id.strip().upper())
        if trip is None:
            raise NotFound(f"Trip not found: {trip_id}")
        return trip

    def list_trips(
        self,
        *,
        status: TripStatus | None = None,
        registration_number: str | None = None,
        route_id: str | None = None,
        on_date: date | None = None,
    ) -> tuple[Trip, ...]:
        """Active trips, latest scheduled start first.

        `on_date` keeps trips whose scheduled start falls on that UTC day.
        """

        trips = self.trips.list(
            status=status,
            registration_number=(
                normalize_registration(registration_number)
                if registration_number
                else None
            ),
            route_id=route_id.strip().upper() if route_id else None,
        )
        if on_date is not None:
            trips = tuple(t for t in trips if t.scheduled_start.date() == on_date)
        return trips

    def scheduled_trips(
        self,
        *,
        on_date: date | None = None,
        route_id: str | None = None,
        bus_type: BusType | None = None,
    ) -> tuple[Trip, ...]:
        """Trips still to run or running, earliest scheduled start first."""

        trips = [
            t
            for t in self.list_trips(route_id=route_id, on_date=on_date)
            if t.status in _UPCOMING_STATUSES
        ]
        if bus_type is not None:
            types: dict[str, BusType | None] = {}
            for t in trips:
                if t.registration_number not in types:
                    bus = self.buses.get(t.registration_number)
                    types[t.registration_number] = bus.type if bus else None
            trips = [t for t in trips if types[t.registration_number] is bus_type]
        trips.sort(key=lambda t: t.scheduled_start)
        return tuple(trips)

    def start_trip(self, trip_id: str) -> Trip:
        """Manual start (a real driver, not the simulator): actual start is now."""

        trip = self.get_trip(trip_id)
        if trip.status is not TripStatus.SCHEDULED:
            trip.ensure_can_transition(TripStatus.IN_PROGRESS)
            raise InvalidInput(
                f"Trip cannot be started. Current status: {trip.status.value}"
            )
        first = trip.stop_arrivals[0].stop_name if trip.stop_arrivals else None
        return self.trips.update_status(
            trip.trip_id,
            TripStatus.IN_PROGRESS,
            actual_start=self.clock(),
            current_stop=first,
            expected=frozenset({TripStatus.SCHEDULED}),
        )

    def complete_trip(self, trip_id: str) -> Trip:
        trip = self.get_trip(trip_id)
        trip.ensure_can_transition(TripStatus.COMPLETED)
        updated = self.trips.update_status(
            trip.trip_id,
            TripStatus.COMPLETED,
            actual_end=self._end_time(trip),
            expected=frozenset({trip.status}),
        )
        self._stop_simulation(trip.trip_id)
        return updated

    def cancel_trip(self, trip_id: str) -> Trip:
        trip = self.get_trip(trip_id)
        trip.ensure_can_transition(TripStatus.CANCELLED)
        updated = self.trips.update_status(
            trip.trip_id,
            TripStatus.CANCELLED,
            # A trip that never started has no end either.
            actual_end=self._end_time(trip) if trip.actual_start else None,
            expected=frozenset({trip.status}),
        )
        self._stop_simulation(trip.trip_id)
        return updated

    def _end_time(self, trip: Trip) -> datetime:
        now = self.clock()
        if trip.actual_start is not None and now < trip.actual_start:
            # Simulated trips run on their schedule, which may lie ahead.
            return trip.actual_start
        return now

    def _stop_simulation(self, trip_id: str) -> None:
        if self.simulations is not None and self.simulations.cancel_simulation(trip_id):
            logger.info("Stopped running simulation for trip %s", trip_id)
