from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import Route


class IRouteRepository(ABC):
    """Persistence port for routes and their ordered stops."""

    @abstractmethod
    def save(self, route: Route) -> Route:
        """Insert or replace a route keyed by route_id."""

    @abstractmethod
    def get(self, route_id: str) -> Route | None:
        raise NotImplementedError

    @abstractmethod
    def list(self, *, include_inactive: bool = False) -> tuple[Route, ...]:
        raise NotImplementedError
