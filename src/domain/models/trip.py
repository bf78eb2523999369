from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from src.domain.exceptions import AlreadyTerminal, InvalidInput

from .route import Route


class TripStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TripStatus.COMPLETED, TripStatus.CANCELLED)


_ALLOWED_TRANSITIONS: dict[TripStatus, frozenset[TripStatus]] = {
    TripStatus.SCHEDULED: frozenset({TripStatus.IN_PROGRESS, TripStatus.CANCELLED}),
    # A stale in-progress trip (e.g. after a crash) may be simulated again.
    TripStatus.IN_PROGRESS: frozenset(
        {TripStatus.IN_PROGRESS, TripStatus.COMPLETED, TripStatus.CANCELLED}
    ),
    TripStatus.COMPLETED: frozenset(),
    TripStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class StopArrival:
    """One ledger entry: scheduled vs. actual arrival at a stop."""

    stop_name: str
    estimated_arrival: datetime
    actual_arrival: datetime | None = None
    delay_minutes: int = 0
    has_passed: bool = False


@dataclass(frozen=True, slots=True)
class Trip:
    trip_id: str
    registration_number: str
    route_id: str
    scheduled_start: datetime
    scheduled_end: datetime
    status: TripStatus = TripStatus.SCHEDULED
    actual_start: datetime | None = None
    actual_end: datetime | None = None
    current_stop: str | None = None
    stop_arrivals: tuple[StopArrival, ...] = field(default_factory=tuple)
    is_active: bool = True

    @property
    def scheduled_duration(self) -> timedelta:
        return self.scheduled_end - self.scheduled_start

    def ensure_can_transition(self, target: TripStatus) -> None:
        if target in _ALLOWED_TRANSITIONS[self.status]:
            return
        if self.status.is_terminal:
            raise AlreadyTerminal(
                f"Trip {self.trip_id} is already {self.status.value}"
            )
        raise InvalidInput(
            f"Trip {self.trip_id} cannot go from {self.status.value} to {target.value}"
        )

    def ensure_status_in(
        self, expected: frozenset[TripStatus], target: TripStatus
    ) -> None:
        """Raise unless the trip still holds one of the `expected` statuses."""

        if self.status in expected:
            return
        if self.status.is_terminal:
            raise AlreadyTerminal(
                f"Trip {self.trip_id} is already {self.status.value}"
            )
        raise InvalidInput(
            f"Trip {self.trip_id} moved to {self.status.value} "
            f"before it could become {target.value}"
        )

    def ledger_index(self, stop_name: str, *, hint: int | None = None) -> int | None:
        """Index of the ledger entry for `stop_name`.

        The entry at `hint` wins when its name matches, so routes that visit
        the same stop name twice still resolve to the right entry.
        """

        if hint is not None and 0 <= hint < len(self.stop_arrivals):
            if self.stop_arrivals[hint].stop_name == stop_name:
                return hint
        for i, entry in enumerate(self.stop_arrivals):
            if entry.stop_name == stop_name:
                return i
        return None


def build_stop_ledger(
    route: Route, scheduled_start: datetime
) -> tuple[StopArrival, ...]:
    """One ledger entry per route stop, in sequence order."""

    return tuple(
        StopArrival(
            stop_name=stop.name,
            estimated_arrival=scheduled_start + timedelta(minutes=stop.offset_min),
        )
        for stop in route.ordered_stops
    )
