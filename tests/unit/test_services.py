from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from src.app.services.catalog_service import (
    BusCatalogService,
    RouteCatalogService,
    RouteSortField,
)
from src.app.services.location_service import LocationService
from src.app.services.progress_service import ProgressService
from src.app.services.trip_service import TripService
from src.domain.exceptions import AlreadyTerminal, InvalidInput, NotFound
from src.domain.models import (
    Bus,
    BusType,
    FixSource,
    GeoPoint,
    Route,
    TripProgress,
    TripStatus,
    TripSummary,
)

START = datetime(2024, 10, 14, 8, 0, tzinfo=timezone.utc)
NOW = datetime(2024, 10, 14, 8, 5, tzinfo=timezone.utc)


@pytest.fixture
def trip_service(trips, routes, buses, equator_route: Route, bus: Bus) -> TripService:
    routes.save(equator_route)
    buses.save(bus)
    return TripService(trips=trips, routes=routes, buses=buses, clock=lambda: NOW)


def _create(service: TripService, trip_id: str = "t-1", **overrides):
    kwargs = dict(
        trip_id=trip_id,
        registration_number="wp-1234",
        route_id="eq-1",
        scheduled_start=START,
        scheduled_end=START + timedelta(minutes=40),
    )
    kwargs.update(overrides)
    return service.create_trip(**kwargs)


@pytest.mark.unit
def test_create_trip_normalizes_ids_and_builds_the_ledger(trip_service: TripService) -> None:
    trip = _create(trip_service)

    assert trip.trip_id == "T-1"
    assert trip.registration_number == "WP-1234"
    assert trip.route_id == "EQ-1"
    assert trip.status is TripStatus.SCHEDULED
    assert [e.estimated_arrival for e in trip.stop_arrivals] == [
        START,
        START + timedelta(minutes=20),
        START + timedelta(minutes=40),
    ]


@pytest.mark.unit
def test_create_trip_accepts_naive_datetimes_as_utc(trip_service: TripService) -> None:
    trip = _create(
        trip_service,
        scheduled_start=datetime(2024, 10, 14, 8, 0),
        scheduled_end=datetime(2024, 10, 14, 8, 40),
    )
    assert trip.scheduled_start == START


@pytest.mark.unit
@pytest.mark.parametrize(
    ("overrides", "error"),
    [
        ({"registration_number": "XX-9999"}, NotFound),
        ({"route_id": "NOPE"}, NotFound),
        ({"registration_number": "bad"}, InvalidInput),
        ({"scheduled_end": START}, InvalidInput),
        ({"trip_id": "  "}, InvalidInput),
    ],
)
def test_create_trip_rejects_bad_input(
    trip_service: TripService, overrides: dict, error: type[Exception]
) -> None:
    with pytest.raises(error):
        _create(trip_service, **overrides)


@pytest.mark.unit
def test_duplicate_trip_id_is_rejected(trip_service: TripService) -> None:
    _create(trip_service)
    with pytest.raises(InvalidInput):
        _create(trip_service, trip_id="T-1")


@pytest.mark.unit
def test_manual_lifecycle(trip_service: TripService) -> None:
    _create(trip_service)

    started = trip_service.start_trip("t-1")
    assert started.status is TripStatus.IN_PROGRESS
    assert started.actual_start == NOW
    assert started.current_stop == "A"

    with pytest.raises(InvalidInput):
        trip_service.start_trip("T-1")

    done = trip_service.complete_trip("T-1")
    assert done.status is TripStatus.COMPLETED
    assert done.actual_end == NOW

    with pytest.raises(AlreadyTerminal):
        trip_service.cancel_trip("T-1")
    with pytest.raises(AlreadyTerminal):
        trip_service.start_trip("T-1")


@pytest.mark.unit
def test_scheduled_trip_cannot_be_completed_but_can_be_cancelled(trip_service: TripService) -> None:
    _create(trip_service)
    with pytest.raises(InvalidInput):
        trip_service.complete_trip("T-1")
    assert trip_service.cancel_trip("T-1").status is TripStatus.CANCELLED


@pytest.mark.unit
def test_list_trips_filters(trip_service: TripService) -> None:
    _create(trip_service, trip_id="A1")
    _create(trip_service, trip_id="A2", scheduled_start=START + timedelta(hours=1),
            scheduled_end=START + timedelta(hours=2))
    trip_service.start_trip("A2")

    assert [t.trip_id for t in trip_service.list_trips()] == ["A2", "A1"]
    assert [t.trip_id for t in trip_service.list_trips(status=TripStatus.SCHEDULED)] == ["A1"]
    assert len(trip_service.list_trips(registration_number="wp-1234")) == 2
    assert trip_service.list_trips(route_id="other") == ()


@pytest.mark.unit
def test_cancelling_records_an_end_only_for_started_trips(trip_service: TripService) -> None:
    _create(trip_service, trip_id="IDLE")
    _create(trip_service, trip_id="RUNNING")
    trip_service.start_trip("RUNNING")

    assert trip_service.cancel_trip("IDLE").actual_end is None
    cancelled = trip_service.cancel_trip("RUNNING")
    assert cancelled.actual_start == NOW
    assert cancelled.actual_end == NOW


@pytest.mark.unit
def test_end_time_never_precedes_a_simulated_start(
    trips, routes, buses, equator_route: Route, bus: Bus
) -> None:
    routes.save(equator_route)
    buses.save(bus)
    early = TripService(
        trips=trips, routes=routes, buses=buses, clock=lambda: START - timedelta(days=1)
    )
    _create(early)
    trips.update_status("T-1", TripStatus.IN_PROGRESS, actual_start=START)

    assert early.complete_trip("T-1").actual_end == START


@pytest.mark.unit
def test_status_write_with_a_stale_expectation_changes_nothing(
    trip_service: TripService, trips
) -> None:
    _create(trip_service)
    _create(trip_service, trip_id="t-2")
    trip_service.start_trip("T-1")
    trip_service.cancel_trip("T-1")

    with pytest.raises(AlreadyTerminal):
        trips.update_status(
            "T-1",
            TripStatus.COMPLETED,
            actual_end=START,
            expected=frozenset({TripStatus.IN_PROGRESS}),
        )
    with pytest.raises(InvalidInput):
        trips.update_status(
            "T-2", TripStatus.COMPLETED, expected=frozenset({TripStatus.IN_PROGRESS})
        )

    stored = trips.get("T-1")
    assert stored is not None
    assert stored.status is TripStatus.CANCELLED
    assert stored.actual_end == NOW
    untouched = trips.get("T-2")
    assert untouched is not None and untouched.status is TripStatus.SCHEDULED


@pytest.mark.unit
def test_list_trips_by_departure_day(trip_service: TripService) -> None:
    _create(trip_service, trip_id="MON")
    _create(trip_service, trip_id="TUE", scheduled_start=START + timedelta(days=1),
            scheduled_end=START + timedelta(days=1, hours=1))

    assert [t.trip_id for t in trip_service.list_trips(on_date=date(2024, 10, 15))] == ["TUE"]
    assert trip_service.list_trips(on_date=date(2024, 10, 16)) == ()


@pytest.mark.unit
def test_scheduled_trips_are_upcoming_or_running_soonest_first(
    trip_service: TripService,
) -> None:
    _create(trip_service, trip_id="LATE", scheduled_start=START + timedelta(hours=5),
            scheduled_end=START + timedelta(hours=6))
    _create(trip_service, trip_id="EARLY")
    _create(trip_service, trip_id="GONE", scheduled_start=START + timedelta(hours=1),
            scheduled_end=START + timedelta(hours=2))
    _create(trip_service, trip_id="NEXTDAY", scheduled_start=START + timedelta(days=1),
            scheduled_end=START + timedelta(days=1, hours=1))
    trip_service.start_trip("EARLY")
    trip_service.cancel_trip("GONE")

    upcoming = trip_service.scheduled_trips()
    assert [t.trip_id for t in upcoming] == ["EARLY", "LATE", "NEXTDAY"]

    same_day = trip_service.scheduled_trips(on_date=date(2024, 10, 14), route_id="eq-1")
    assert [t.trip_id for t in same_day] == ["EARLY", "LATE"]

    assert len(trip_service.scheduled_trips(bus_type=BusType.NORMAL)) == 3
    assert trip_service.scheduled_trips(bus_type=BusType.LUXURY) == ()


@pytest.mark.unit
def test_get_unknown_trip(trip_service: TripService) -> None:
    with pytest.raises(NotFound):
        trip_service.get_trip("missing")


@pytest.mark.unit
def test_route_catalog_crud(routes, equator_route: Route) -> None:
    service = RouteCatalogService(routes=routes)

    created = service.create(replace(equator_route, route_id="eq-9"))
    assert created.route_id == "EQ-9"
    with pytest.raises(InvalidInput):
        service.create(replace(equator_route, route_id="EQ-9"))

    renamed = service.update("eq-9", replace(equator_route, name="Renamed"))
    assert renamed.route_id == "EQ-9"
    assert service.get("EQ-9").name == "Renamed"

    service.delete("EQ-9")
    with pytest.raises(NotFound):
        service.get("EQ-9")
    assert service.list() == ()
    assert routes.list(include_inactive=True)[0].is_active is False


@pytest.mark.unit
def test_route_listing_filters_sorts_and_searches(routes, colombo_kandy_route: Route) -> None:
    service = RouteCatalogService(routes=routes)
    express = replace(
        colombo_kandy_route, route_id="CK-EXP", name="Kandy Express", estimated_duration_min=150
    )
    old_road = replace(
        colombo_kandy_route, route_id="CK-OLD", name="Old Road", estimated_duration_min=210
    )
    unknown = replace(colombo_kandy_route, route_id="CK-X", name="Unrated")
    galle = replace(
        colombo_kandy_route,
        route_id="CMB-GLL",
        name="Southern",
        destination_city="Galle",
        estimated_duration_min=120,
    )
    for route in (old_road, galle, unknown, express):
        service.create(route)

    assert [r.route_id for r in service.list()] == ["CK-EXP", "CK-OLD", "CK-X", "CMB-GLL"]
    assert [r.route_id for r in service.list(destination="gall")] == ["CMB-GLL"]
    assert [r.route_id for r in service.list(search="express")] == ["CK-EXP"]
    assert [
        r.route_id
        for r in service.list(sort=RouteSortField.ESTIMATED_DURATION_MIN, descending=True)
    ] == ["CK-OLD", "CK-EXP", "CMB-GLL", "CK-X"]

    found = service.search("colombo", "KANDY")
    assert [r.route_id for r in found] == ["CK-EXP", "CK-OLD", "CK-X"]

    service.delete("CK-EXP")
    assert [r.route_id for r in service.search("Colombo", "Kandy")] == ["CK-OLD", "CK-X"]
    with pytest.raises(InvalidInput):
        service.search("Colombo", " ")


@pytest.mark.unit
def test_route_catalog_validates_stops(routes, equator_route: Route) -> None:
    service = RouteCatalogService(routes=routes)
    broken = replace(
        equator_route,
        stops=tuple(replace(s, sequence=s.sequence + 1) for s in equator_route.stops),
    )
    with pytest.raises(InvalidInput):
        service.create(broken)


@pytest.mark.unit
def test_bus_catalog_crud(buses, bus: Bus) -> None:
    service = BusCatalogService(buses=buses)

    service.create(replace(bus, registration_number="wp-1234"))
    with pytest.raises(InvalidInput):
        service.create(bus)
    with pytest.raises(InvalidInput):
        service.create(replace(bus, registration_number="nope"))

    updated = service.update("WP-1234", replace(bus, capacity=60))
    assert updated.capacity == 60

    service.delete("wp-1234")
    with pytest.raises(NotFound):
        service.get("WP-1234")


@pytest.mark.unit
def test_location_service_records_and_lists_fixes(trip_service, trips, locations) -> None:
    _create(trip_service)
    service = LocationService(trips=trips, locations=locations, clock=lambda: NOW)

    fix = service.record_fix(
        registration_number="wp-1234",
        trip_id="t-1",
        location=GeoPoint(lat=0.0, lon=0.05),
        speed_kmh=40.0,
    )
    assert fix.timestamp == NOW
    assert fix.source is FixSource.GPS

    trip, history = service.history("T-1")
    assert trip.trip_id == "T-1"
    assert history == (fix,)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("kwargs", "error"),
    [
        ({"source": FixSource.SIMULATION}, InvalidInput),
        ({"registration_number": "NP-0001"}, InvalidInput),
        ({"trip_id": "missing"}, NotFound),
    ],
)
def test_location_service_rejects_bad_fixes(
    trip_service, trips, locations, kwargs: dict, error: type[Exception]
) -> None:
    _create(trip_service)
    service = LocationService(trips=trips, locations=locations)
    params = dict(
        registration_number="WP-1234",
        trip_id="T-1",
        location=GeoPoint(lat=0.0, lon=0.05),
    )
    params.update(kwargs)
    with pytest.raises(error):
        service.record_fix(**params)


@pytest.mark.unit
def test_progress_for_bus_prefers_the_running_trip(trip_service, trips, routes, locations) -> None:
    _create(trip_service, trip_id="LATER", scheduled_start=START + timedelta(hours=3),
            scheduled_end=START + timedelta(hours=4))
    _create(trip_service, trip_id="NOW")
    trip_service.start_trip("NOW")
    service = ProgressService(trips=trips, routes=routes, locations=locations, clock=lambda: NOW)

    progress = service.get_current_progress_for_bus("wp-1234")

    assert isinstance(progress, TripProgress)
    assert progress.trip_id == "NOW"


@pytest.mark.unit
def test_progress_for_bus_without_active_trip(trip_service, trips, routes, locations) -> None:
    service = ProgressService(trips=trips, routes=routes, locations=locations)
    with pytest.raises(NotFound):
        service.get_current_progress_for_bus("WP-1234")


@pytest.mark.unit
def test_progress_of_a_finished_trip_is_a_summary(trip_service, trips, routes, locations) -> None:
    _create(trip_service)
    trip_service.cancel_trip("T-1")
    service = ProgressService(trips=trips, routes=routes, locations=locations)

    summary = service.get_current_progress("t-1")

    assert isinstance(summary, TripSummary)
    assert summary.message == "Trip has been cancelled"
