from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from src.app.ports.output import ITripRepository, LedgerUpdate
from src.domain.algorithms.geo_utils import haversine_distance_m
from src.domain.algorithms.time_utils import round_minutes
from src.domain.models import GeoPoint, Route, Stop, Trip

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StopArrivalEvent:
    stop_name: str
    index: int
    arrived_at: datetime
    delay_minutes: int | None
    recorded: bool


@dataclass(slots=True)
class StopArrivalTracker:
    """Detects stop arrivals for one simulation run and updates the ledger.

    `visited` is keyed by (index, name) so a route that passes the same stop
    name twice is tracked per position. A visited stop is never re-checked.
    """

    trip: Trip
    route: Route
    trips: ITripRepository
    radius_m: float = 200.0
    visited: set[tuple[int, str]] = field(default_factory=set)

    def check(self, position: GeoPoint, timestamp: datetime) -> list[StopArrivalEvent]:
        events: list[StopArrivalEvent] = []
        for index, stop in enumerate(self.route.ordered_stops):
            key = (index, stop.name)
            if key in self.visited:
                continue
            if haversine_distance_m(position, stop.location) >= self.radius_m:
                continue

            self.visited.add(key)
            events.append(self._record_arrival(stop, index, timestamp))
        return events

    def _record_arrival(self, stop: Stop, index: int, arrived_at: datetime) -> StopArrivalEvent:
        trip_id = self.trip.trip_id
        ledger_i = self.trip.ledger_index(stop.name, hint=index)
        if ledger_i is None:
            logger.warning("Trip %s has no ledger entry for stop %s", trip_id, stop.name)
            return StopArrivalEvent(
                stop_name=stop.name,
                index=index,
                arrived_at=arrived_at,
                delay_minutes=None,
                recorded=False,
            )

        entry = self.trip.stop_arrivals[ledger_i]
        delay = round_minutes(arrived_at - entry.estimated_arrival)
        recorded = self.trips.mark_stop_arrived(
            trip_id,
            ledger_i,
            LedgerUpdate(actual_arrival=arrived_at, delay_minutes=delay),
        )
        self.trips.set_current_stop(trip_id, stop.name)
        logger.info(
            "Trip %s arrived at %s (scheduled %s, actual %s, delay %+d min)",
            trip_id,
            stop.name,
            entry.estimated_arrival.isoformat(),
            arrived_at.isoformat(),
            delay,
        )

        self._mark_earlier_passed(index)
        return StopArrivalEvent(
            stop_name=stop.name,
            index=index,
            arrived_at=arrived_at,
            delay_minutes=delay,
            recorded=recorded,
        )

    def _mark_earlier_passed(self, index: int) -> None:
        # A fast tick can jump over a stop's radius entirely; anything before
        # the stop we just reached is behind the bus either way.
        for earlier_i, earlier in enumerate(self.route.ordered_stops[:index]):
            ledger_i = self.trip.ledger_index(earlier.name, hint=earlier_i)
            if ledger_i is None:
                continue
            if self.trips.mark_stop_passed(self.trip.trip_id, ledger_i):
                logger.debug("Trip %s marked %s as passed", self.trip.trip_id, earlier.name)
