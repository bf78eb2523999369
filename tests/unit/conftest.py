from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.adapters.persistence import (
    InMemoryBusRepository,
    InMemoryLocationRepository,
    InMemoryRouteRepository,
    InMemoryTripRepository,
)
from src.domain.models import (
    Bus,
    GeoPoint,
    Route,
    Stop,
    Trip,
    build_stop_ledger,
)

START = datetime(2024, 10, 14, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def equator_route() -> Route:
    """Three stops 0.1 degrees of longitude apart (about 11.1 km each)."""

    return Route(
        route_id="EQ-1",
        name="Equator Line",
        stops=(
            Stop(name="A", sequence=1, location=GeoPoint(lat=0.0, lon=0.0), offset_min=0),
            Stop(name="B", sequence=2, location=GeoPoint(lat=0.0, lon=0.1), offset_min=20),
            Stop(name="C", sequence=3, location=GeoPoint(lat=0.0, lon=0.2), offset_min=40),
        ),
    )


@pytest.fixture
def colombo_kandy_route() -> Route:
    return Route(
        route_id="CMB-KDY",
        name="Colombo - Kandy",
        stops=(
            Stop(
                name="Colombo Fort",
                sequence=1,
                location=GeoPoint(lat=6.9344, lon=79.8428),
                offset_min=0,
            ),
            Stop(
                name="Kadawatha",
                sequence=2,
                location=GeoPoint(lat=7.0013, lon=79.9530),
                offset_min=30,
            ),
            Stop(
                name="Kandy",
                sequence=3,
                location=GeoPoint(lat=7.2906, lon=80.6337),
                offset_min=180,
            ),
        ),
        origin_city="Colombo",
        destination_city="Kandy",
    )


@pytest.fixture
def bus() -> Bus:
    return Bus(
        registration_number="WP-1234",
        bus_number="1",
        route_name="Colombo - Kandy",
        capacity=54,
    )


def _make_trip(route: Route, *, trip_id: str = "T1", duration_min: int = 40) -> Trip:
    return Trip(
        trip_id=trip_id,
        registration_number="WP-1234",
        route_id=route.route_id,
        scheduled_start=START,
        scheduled_end=START + timedelta(minutes=duration_min),
        stop_arrivals=build_stop_ledger(route, START),
    )


@pytest.fixture
def make_trip():
    """Trip on `route` starting 08:00 UTC, ledger built from the route offsets."""

    return _make_trip


@pytest.fixture
def trips() -> InMemoryTripRepository:
    return InMemoryTripRepository()


@pytest.fixture
def routes() -> InMemoryRouteRepository:
    return InMemoryRouteRepository()


@pytest.fixture
def buses() -> InMemoryBusRepository:
    return InMemoryBusRepository()


@pytest.fixture
def locations() -> InMemoryLocationRepository:
    return InMemoryLocationRepository()
