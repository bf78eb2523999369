from __future__ import annotations

import pytest

from src.domain.algorithms.interpolation import (
    InterpolationMode,
    position_at_progress,
    segment_index_at_progress,
)
from src.domain.exceptions import InvalidInput
from src.domain.models import GeoPoint, Route, Stop


@pytest.mark.unit
@pytest.mark.parametrize(("progress", "expected"), [(0.0, "A"), (-0.5, "A"), (1.0, "C"), (1.5, "C")])
def test_boundaries_clamp_to_first_and_last_stop(
    equator_route: Route, progress: float, expected: str
) -> None:
    stops = {s.name: s.location for s in equator_route.stops}
    assert position_at_progress(equator_route.stops, progress) == stops[expected]


@pytest.mark.unit
def test_halfway_on_three_stops_is_exactly_the_middle_stop(equator_route: Route) -> None:
    p = position_at_progress(equator_route.stops, 0.5)
    assert p == GeoPoint(lat=0.0, lon=0.1)


@pytest.mark.unit
def test_interpolates_linearly_inside_a_segment(equator_route: Route) -> None:
    p = position_at_progress(equator_route.stops, 0.25)
    assert p.lat == 0.0
    assert p.lon == pytest.approx(0.05)


@pytest.mark.unit
def test_position_moves_monotonically_along_a_straight_route(equator_route: Route) -> None:
    lons = [position_at_progress(equator_route.stops, i / 100).lon for i in range(101)]
    assert lons == sorted(lons)


@pytest.mark.unit
def test_stop_order_comes_from_sequence_not_input_order(equator_route: Route) -> None:
    shuffled = tuple(reversed(equator_route.stops))
    assert position_at_progress(shuffled, 0.0) == GeoPoint(lat=0.0, lon=0.0)
    assert position_at_progress(shuffled, 1.0) == GeoPoint(lat=0.0, lon=0.2)


@pytest.mark.unit
def test_single_stop_route_always_returns_that_stop() -> None:
    only = Stop(name="Only", sequence=1, location=GeoPoint(lat=7.0, lon=80.0))
    for progress in (0.0, 0.3, 1.0):
        assert position_at_progress((only,), progress) == only.location


@pytest.mark.unit
def test_empty_stop_list_is_rejected() -> None:
    with pytest.raises(InvalidInput):
        position_at_progress((), 0.5)


@pytest.mark.unit
def test_offset_weighted_mode_follows_the_timetable() -> None:
    stops = (
        Stop(name="A", sequence=1, location=GeoPoint(lat=0.0, lon=0.0), offset_min=0),
        Stop(name="B", sequence=2, location=GeoPoint(lat=0.0, lon=1.0), offset_min=10),
        Stop(name="C", sequence=3, location=GeoPoint(lat=0.0, lon=2.0), offset_min=100),
    )

    # 10% of the scheduled time is spent reaching B.
    at_b = position_at_progress(stops, 0.1, InterpolationMode.OFFSET_WEIGHTED)
    assert at_b.lon == pytest.approx(1.0)

    mid = position_at_progress(stops, 0.55, InterpolationMode.OFFSET_WEIGHTED)
    assert mid.lon == pytest.approx(1.5)

    # Equal mode ignores offsets.
    equal = position_at_progress(stops, 0.1, InterpolationMode.EQUAL)
    assert equal.lon == pytest.approx(0.2)


@pytest.mark.unit
def test_offset_weighted_falls_back_to_equal_without_offsets(equator_route: Route) -> None:
    flat = tuple(
        Stop(name=s.name, sequence=s.sequence, location=s.location) for s in equator_route.stops
    )
    weighted = position_at_progress(flat, 0.25, InterpolationMode.OFFSET_WEIGHTED)
    assert weighted.lon == pytest.approx(0.05)


@pytest.mark.unit
@pytest.mark.parametrize(("progress", "index"), [(0.0, 0), (0.25, 0), (0.75, 1), (1.0, 2)])
def test_segment_index_at_progress(equator_route: Route, progress: float, index: int) -> None:
    assert segment_index_at_progress(equator_route.stops, progress) == index
