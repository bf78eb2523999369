from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from src.adapters.persistence import (
    DynamoDbBusRepository,
    DynamoDbLocationRepository,
    DynamoDbRouteRepository,
    DynamoDbTripRepository,
    InMemoryBusRepository,
    InMemoryLocationRepository,
    InMemoryRouteRepository,
    InMemoryTripRepository,
)
from src.app.ports.output import (
    IBusRepository,
    ILocationRepository,
    IRouteRepository,
    ITripRepository,
)
from src.app.services.catalog_service import BusCatalogService, RouteCatalogService
from src.app.services.location_service import LocationService
from src.app.services.progress_service import ProgressService
from src.app.services.simulation_service import SimulationConfig, SimulationService
from src.app.services.trip_service import TripService


@dataclass(frozen=True, slots=True)
class TrackingStore:
    trips: ITripRepository
    routes: IRouteRepository
    buses: IBusRepository
    locations: ILocationRepository


@lru_cache(maxsize=1)
def get_store() -> TrackingStore:
    """Process-wide repositories.

    Env vars:
      - TRACKING_STORE: memory|dynamodb (default: memory)
    """

    backend = (os.getenv("TRACKING_STORE") or "memory").strip().lower()
    if backend == "dynamodb":
        return TrackingStore(
            trips=DynamoDbTripRepository(),
            routes=DynamoDbRouteRepository(),
            buses=DynamoDbBusRepository(),
            locations=DynamoDbLocationRepository(),
        )
    if backend != "memory":
        raise RuntimeError(f"Unsupported TRACKING_STORE: {backend}")
    return TrackingStore(
        trips=InMemoryTripRepository(),
        routes=InMemoryRouteRepository(),
        buses=InMemoryBusRepository(),
        locations=InMemoryLocationRepository(),
    )


@lru_cache(maxsize=1)
def get_simulation_service() -> SimulationService:
    # Cached: running simulations must outlive the request that started them.
    store = get_store()
    return SimulationService(
        trips=store.trips,
        routes=store.routes,
        locations=store.locations,
        config=SimulationConfig.from_env(),
    )


def get_progress_service() -> ProgressService:
    store = get_store()
    service = ProgressService(
        trips=store.trips, routes=store.routes, locations=store.locations
    )

    # Allow tuning via env without changing code.
    if os.getenv("PROGRESS_DEFAULT_SPEED_KMH"):
        service.default_speed_kmh = float(os.environ["PROGRESS_DEFAULT_SPEED_KMH"])
    if os.getenv("PROGRESS_ARRIVAL_RADIUS_M"):
        service.radius_m = float(os.environ["PROGRESS_ARRIVAL_RADIUS_M"])
    return service


def get_trip_service() -> TripService:
    store = get_store()
    return TripService(
        trips=store.trips,
        routes=store.routes,
        buses=store.buses,
        simulations=get_simulation_service(),
    )


def get_location_service() -> LocationService:
    store = get_store()
    return LocationService(trips=store.trips, locations=store.locations)


def get_route_catalog_service() -> RouteCatalogService:
    return RouteCatalogService(routes=get_store().routes)


def get_bus_catalog_service() -> BusCatalogService:
    return BusCatalogService(buses=get_store().buses)
