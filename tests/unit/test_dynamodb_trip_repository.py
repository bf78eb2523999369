from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import boto3
import pytest
from botocore.stub import ANY, Stubber

from src.adapters.persistence import dynamodb_trip_repository
from src.adapters.persistence.dynamodb_trip_repository import DynamoDbTripRepository
from src.domain.exceptions import AlreadyTerminal, InvalidInput, TransientIO
from src.domain.models import Route, Trip, TripStatus, build_stop_ledger

START = datetime(2024, 10, 14, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def stubbed(monkeypatch: pytest.MonkeyPatch):
    client = boto3.session.Session(
        region_name="ap-south-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    ).client("dynamodb")
    monkeypatch.setattr(dynamodb_trip_repository, "dynamodb_client", lambda: client)
    with Stubber(client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


def _trip(route: Route) -> Trip:
    return Trip(
        trip_id="T1",
        registration_number="WP-1234",
        route_id=route.route_id,
        scheduled_start=START,
        scheduled_end=START + timedelta(minutes=40),
        stop_arrivals=build_stop_ledger(route, START),
    )


@pytest.mark.unit
def test_update_retries_when_the_version_moved(stubbed: Stubber, equator_route: Route) -> None:
    repo = DynamoDbTripRepository(table_name="trips")
    trip = _trip(equator_route)

    stubbed.add_response("get_item", {"Item": repo._encode(trip, 3)})
    stubbed.add_client_error(
        "put_item",
        service_error_code="ConditionalCheckFailedException",
        http_status_code=400,
    )
    stubbed.add_response("get_item", {"Item": repo._encode(trip, 4)})
    stubbed.add_response(
        "put_item",
        {},
        {
            "TableName": "trips",
            "Item": ANY,
            "ConditionExpression": "version = :v",
            "ExpressionAttributeValues": {":v": {"N": "4"}},
        },
    )

    updated = repo.update_status("T1", TripStatus.IN_PROGRESS, actual_start=START)

    assert updated.status is TripStatus.IN_PROGRESS
    assert updated.actual_start == START


@pytest.mark.unit
def test_ledger_write_is_skipped_when_already_passed(stubbed: Stubber, equator_route: Route) -> None:
    repo = DynamoDbTripRepository(table_name="trips")
    trip = _trip(equator_route)
    ledger = list(trip.stop_arrivals)
    ledger[0] = replace(ledger[0], has_passed=True)
    stored = replace(trip, stop_arrivals=tuple(ledger))

    stubbed.add_response("get_item", {"Item": repo._encode(stored, 1)})

    assert repo.mark_stop_passed("T1", 0) is False


@pytest.mark.unit
def test_duplicate_create_is_invalid_input(stubbed: Stubber, equator_route: Route) -> None:
    repo = DynamoDbTripRepository(table_name="trips")
    stubbed.add_client_error(
        "put_item",
        service_error_code="ConditionalCheckFailedException",
        http_status_code=400,
    )

    with pytest.raises(InvalidInput):
        repo.create(_trip(equator_route))


@pytest.mark.unit
def test_aws_failures_become_transient_io(stubbed: Stubber) -> None:
    repo = DynamoDbTripRepository(table_name="trips")
    stubbed.add_client_error(
        "get_item",
        service_error_code="ProvisionedThroughputExceededException",
        http_status_code=400,
    )

    with pytest.raises(TransientIO):
        repo.get("T1")


@pytest.mark.unit
def test_gives_up_after_repeated_conflicts(stubbed: Stubber, equator_route: Route) -> None:
    repo = DynamoDbTripRepository(table_name="trips", max_attempts=2)
    trip = _trip(equator_route)
    for version in (1, 2):
        stubbed.add_response("get_item", {"Item": repo._encode(trip, version)})
        stubbed.add_client_error(
            "put_item",
            service_error_code="ConditionalCheckFailedException",
            http_status_code=400,
        )

    with pytest.raises(TransientIO):
        repo.set_current_stop("T1", "B")


@pytest.mark.unit
def test_status_write_is_refused_once_the_trip_is_terminal(
    stubbed: Stubber, equator_route: Route
) -> None:
    repo = DynamoDbTripRepository(table_name="trips")
    cancelled = replace(
        _trip(equator_route),
        status=TripStatus.CANCELLED,
        actual_start=START,
        actual_end=START + timedelta(minutes=12),
    )
    # Only the read is stubbed: a put_item would fail the test.
    stubbed.add_response("get_item", {"Item": repo._encode(cancelled, 7)})

    with pytest.raises(AlreadyTerminal):
        repo.update_status(
            "T1",
            TripStatus.COMPLETED,
            actual_end=START + timedelta(minutes=40),
            expected=frozenset({TripStatus.IN_PROGRESS}),
        )
