from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from src.domain.models import Trip, TripStatus


@dataclass(frozen=True, slots=True)
class LedgerUpdate:
    """Fields written into one stop-arrival ledger entry.

    `has_passed` only ever moves to True; there is no way to clear it.
    """

    actual_arrival: datetime
    delay_minutes: int


class ITripRepository(ABC):
    """Persistence port for trips and their stop-arrival ledgers."""

    @abstractmethod
    def create(self, trip: Trip) -> Trip:
        """Insert a new trip; raise InvalidInput if the id already exists."""

    @abstractmethod
    def get(self, trip_id: str) -> Trip | None:
        raise NotImplementedError

    @abstractmethod
    def list(
        self,
        *,
        status: TripStatus | None = None,
        registration_number: str | None = None,
        route_id: str | None = None,
    ) -> tuple[Trip, ...]:
        """Active trips matching the filters, latest scheduled start first."""

    @abstractmethod
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
        """Set status (and any given timestamps/current stop); NotFound if absent.

        With `expected`, the write only happens while the stored status is one
        of those values, checked atomically with the write; otherwise
        AlreadyTerminal (or InvalidInput) is raised and nothing changes.
        """

    @abstractmethod
    def set_current_stop(self, trip_id: str, stop_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def mark_stop_arrived(self, trip_id: str, index: int, update: LedgerUpdate) -> bool:
        """Record an arrival at ledger entry `index` and mark it passed.

        No-op (returns False) when the entry already holds an actual arrival.
        """

    @abstractmethod
    def mark_stop_passed(self, trip_id: str, index: int) -> bool:
        """Mark ledger entry `index` passed only if it is not passed yet."""
