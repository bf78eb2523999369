from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import GpsFix


class ILocationRepository(ABC):
    """Append-only GPS fix log."""

    @abstractmethod
    def append(self, fix: GpsFix) -> None:
        raise NotImplementedError

    @abstractmethod
    def latest(self, trip_id: str) -> GpsFix | None:
        """Most recent fix for a trip by timestamp."""

    @abstractmethod
    def history(self, trip_id: str, *, limit: int = 100) -> tuple[GpsFix, ...]:
        """Oldest-first fixes for a trip, at most `limit` of them."""
