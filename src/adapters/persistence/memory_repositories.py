from __future__ import annotations

import bisect
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime

from src.app.ports.output import (
    IBusRepository,
    ILocationRepository,
    IRouteRepository,
    ITripRepository,
    LedgerUpdate,
)
from src.domain.exceptions import InvalidInput, NotFound
from src.domain.models import Bus, GpsFix, Route, Trip, TripStatus


@dataclass(slots=True)
class InMemoryTripRepository(ITripRepository):
    """Process-local trip store.

    Every mutation holds the lock for the whole read-modify-write so
    simulation ticks (worker threads) and API requests never interleave.
    """

    _trips: dict[str, Trip] = field(default_factory=dict)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def create(self, trip: Trip) -> Trip:
        with self._lock:
            if trip.trip_id in self._trips:
                raise InvalidInput(f"Trip ID already exists: {trip.trip_id}")
            self._trips[trip.trip_id] = trip
            return trip

    def get(self, trip_id: str) -> Trip | None:
        with self._lock:
            return self._trips.get(trip_id)

    def list(
        self,
        *,
        status: TripStatus | None = None,
        registration_number: str | None = None,
        route_id: str | None = None,
    ) -> tuple[Trip, ...]:
        with self._lock:
            trips = [
                t
                for t in self._trips.values()
                if t.is_active
                and (status is None or t.status is status)
                and (
                    registration_number is None
                    or t.registration_number == registration_number
                )
                and (route_id is None or t.route_id == route_id)
            ]
        trips.sort(key=lambda t: t.scheduled_start, reverse=True)
        return tuple(trips)

    def _require(self, trip_id: str) -> Trip:
        trip = self._trips.get(trip_id)
        if trip is None:
            raise NotFound(f"Trip not found: {trip_id}")
        return trip

    def update_status(
        self,
        trip_id: str,
        status: TripStatus,
        *,
        actual_start: datetime | None = None,
        actual_end: datetime | None = None,
        current_stop: str | None = None,
        expected: frozenset[TripStatus] | None = None,
    ) -> Trip:
        with self._lock:
            trip = self._require(trip_id)
            if expected is not None:
                trip.ensure_status_in(expected, status)
            updated = replace(
                trip,
                status=status,
                actual_start=actual_start or trip.actual_start,
                actual_end=actual_end or trip.actual_end,
                current_stop=current_stop or trip.current_stop,
            )
            self._trips[trip_id] = updated
            return updated

    def set_current_stop(self, trip_id: str, stop_name: str) -> None:
        with self._lock:
            trip = self._require(trip_id)
            self._trips[trip_id] = replace(trip, current_stop=stop_name)

    def mark_stop_arrived(self, trip_id: str, index: int, update: LedgerUpdate) -> bool:
        with self._lock:
            trip = self._require(trip_id)
            ledger = list(trip.stop_arrivals)
            if not 0 <= index < len(ledger):
                raise NotFound(f"No ledger entry {index} on trip {trip_id}")
            entry = ledger[index]
            if entry.actual_arrival is not None:
                return False
            ledger[index] = replace(
                entry,
                actual_arrival=update.actual_arrival,
                delay_minutes=update.delay_minutes,
                has_passed=True,
            )
            self._trips[trip_id] = replace(trip, stop_arrivals=tuple(ledger))
            return True

    def mark_stop_passed(self, trip_id: str, index: int) -> bool:
        with self._lock:
            trip = self._require(trip_id)
            ledger = list(trip.stop_arrivals)
            if not 0 <= index < len(ledger):
                raise NotFound(f"No ledger entry {index} on trip {trip_id}")
            if ledger[index].has_passed:
                return False
            ledger[index] = replace(ledger[index], has_passed=True)
            self._trips[trip_id] = replace(trip, stop_arrivals=tuple(ledger))
            return True


@dataclass(slots=True)
class InMemoryRouteRepository(IRouteRepository):
    _routes: dict[str, Route] = field(default_factory=dict)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def save(self, route: Route) -> Route:
        with self._lock:
            self._routes[route.route_id] = route
            return route

    def get(self, route_id: str) -> Route | None:
        with self._lock:
            return self._routes.get(route_id)

    def list(self, *, include_inactive: bool = False) -> tuple[Route, ...]:
        with self._lock:
            routes = [r for r in self._routes.values() if include_inactive or r.is_active]
        routes.sort(key=lambda r: r.route_id)
        return tuple(routes)


@dataclass(slots=True)
class InMemoryBusRepository(IBusRepository):
    _buses: dict[str, Bus] = field(default_factory=dict)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def save(self, bus: Bus) -> Bus:
        with self._lock:
            self._buses[bus.registration_number] = bus
            return bus

    def get(self, registration_number: str) -> Bus | None:
        with self._lock:
            return self._buses.get(registration_number)

    def list(self, *, include_inactive: bool = False) -> tuple[Bus, ...]:
        with self._lock:
            buses = [b for b in self._buses.values() if include_inactive or b.is_active]
        buses.sort(key=lambda b: b.registration_number)
        return tuple(buses)


@dataclass(slots=True)
class InMemoryLocationRepository(ILocationRepository):
    """Fix log kept sorted by timestamp per trip."""

    _fixes: dict[str, list[GpsFix]] = field(default_factory=dict)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def append(self, fix: GpsFix) -> None:
        with self._lock:
            fixes = self._fixes.setdefault(fix.trip_id, [])
            # Equal timestamps keep insertion order (bisect_right).
            pos = bisect.bisect_right([f.timestamp for f in fixes], fix.timestamp)
            fixes.insert(pos, fix)

    def latest(self, trip_id: str) -> GpsFix | None:
        with self._lock:
            fixes = self._fixes.get(trip_id)
            return fixes[-1] if fixes else None

    def history(self, trip_id: str, *, limit: int = 100) -> tuple[GpsFix, ...]:
        with self._lock:
            return tuple(self._fixes.get(trip_id, ())[: max(0, int(limit))])
