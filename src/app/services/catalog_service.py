from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from src.app.ports.output import IBusRepository, IRouteRepository
from src.domain.exceptions import InvalidInput, NotFound
from src.domain.models import Bus, Route
from src.domain.models.bus import normalize_registration


class RouteSortField(str, Enum):
    ROUTE_ID = "route_id"
    NAME = "name"
    ORIGIN_CITY = "origin_city"
    DESTINATION_CITY = "destination_city"
    DISTANCE_KM = "distance_km"
    ESTIMATED_DURATION_MIN = "estimated_duration_min"


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle.casefold() in haystack.casefold()


def _sorted_routes(
    routes: list[Route], key: RouteSortField, *, descending: bool = False
) -> list[Route]:
    # Routes missing the sort value go last in either direction.
    present = [r for r in routes if getattr(r, key.value) is not None]
    missing = [r for r in routes if getattr(r, key.value) is None]
    present.sort(key=lambda r: getattr(r, key.value), reverse=descending)
    return present + missing


@dataclass(slots=True)
class RouteCatalogService:
    routes: IRouteRepository

    def create(self, route: Route) -> Route:
        route = replace(route, route_id=route.route_id.strip().upper())
        route.check_invariants()
        existing = self.routes.get(route.route_id)
        if existing is not None and existing.is_active:
            raise InvalidInput(f"Route ID already exists: {route.route_id}")
        return self.routes.save(route)

    def get(self, route_id: str) -> Route:
        route = self.routes.get(route_id.strip().upper())
        if route is None or not route.is_active:
            raise NotFound(f"Route not found: {route_id}")
        return route

    def list(
        self,
        *,
        origin: str | None = None,
        destination: str | None = None,
        search: str | None = None,
        sort: RouteSortField = RouteSortField.ROUTE_ID,
        descending: bool = False,
    ) -> tuple[Route, ...]:
        """Active routes filtered by case-insensitive substring matches.

        `search` matches the route id, name, origin or destination city.
        """

        routes = list(self.routes.list())
        if origin:
            routes = [r for r in routes if _contains(r.origin_city, origin)]
        if destination:
            routes = [r for r in routes if _contains(r.destination_city, destination)]
        if search:
            routes = [
                r
                for r in routes
                if any(
                    _contains(value, search)
                    for value in (r.route_id, r.name, r.origin_city, r.destination_city)
                )
            ]
        return tuple(_sorted_routes(routes, sort, descending=descending))

    def search(self, origin: str | None, destination: str | None) -> tuple[Route, ...]:
        """Routes between two cities, quickest first."""

        if not (origin or "").strip() or not (destination or "").strip():
            raise InvalidInput("Origin and destination are required")
        return self.list(
            origin=origin.strip(),
            destination=destination.strip(),
            sort=RouteSortField.ESTIMATED_DURATION_MIN,
        )

    def update(self, route_id: str, route: Route) -> Route:
        current = self.get(route_id)
        updated = replace(route, route_id=current.route_id, is_active=True)
        updated.check_invariants()
        return self.routes.save(updated)

    def delete(self, route_id: str) -> Route:
        current = self.get(route_id)
        return self.routes.save(replace(current, is_active=False))


@dataclass(slots=True)
class BusCatalogService:
    buses: IBusRepository

    def create(self, bus: Bus) -> Bus:
        bus = replace(bus, registration_number=normalize_registration(bus.registration_number))
        existing = self.buses.get(bus.registration_number)
        if existing is not None and existing.is_active:
            raise InvalidInput(
                f"Bus already registered: {bus.registration_number}"
            )
        return self.buses.save(bus)

    def get(self, registration_number: str) -> Bus:
        bus = self.buses.get(normalize_registration(registration_number))
        if bus is None or not bus.is_active:
            raise NotFound(f"Bus not found: {registration_number}")
        return bus

    def list(self) -> tuple[Bus, ...]:
        return self.buses.list()

    def update(self, registration_number: str, bus: Bus) -> Bus:
        current = self.get(registration_number)
        return self.buses.save(
            replace(bus, registration_number=current.registration_number, is_active=True)
        )

    def delete(self, registration_number: str) -> Bus:
        current = self.get(registration_number)
        return self.buses.save(replace(current, is_active=False))
