from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable

from botocore.exceptions import ClientError

from src.adapters.aws import dynamodb_client, translate_aws_errors
from src.adapters.persistence.records import (
    ledger_from_list,
    ledger_to_list,
    trip_from_dict,
    trip_to_dict,
)
from src.app.ports.output import ITripRepository, LedgerUpdate
from src.domain.exceptions import InvalidInput, NotFound, TransientIO
from src.domain.models import Trip, TripStatus

_CONDITION_FAILED = "ConditionalCheckFailedException"


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == _CONDITION_FAILED


@dataclass(slots=True)
class DynamoDbTripRepository(ITripRepository):
    """Stores trips in DynamoDB, one item per trip.

    The trip document and its stop ledger are JSON strings; every write is a
    read-modify-write guarded by a `version` attribute (optimistic locking),
    retried a few times on contention.

    Env vars:
      - TRIPS_TABLE (default: bustrack-trips)
      - ENDPOINT_URL (preferred for LocalStack)
      - AWS_REGION
    """

    table_name: str | None = None
    max_attempts: int = 5

    def _table(self) -> str:
        return self.table_name or os.getenv("TRIPS_TABLE") or "bustrack-trips"

    def _decode(self, item: dict[str, Any]) -> tuple[Trip, int]:
        doc = json.loads(item["doc"]["S"])
        ledger = ledger_from_list(json.loads(item["ledger"]["S"]))
        version = int(item.get("version", {}).get("N", "0"))
        return trip_from_dict(doc, ledger), version

    def _encode(self, trip: Trip, version: int) -> dict[str, Any]:
        return {
            "trip_id": {"S": trip.trip_id},
            "registration_number": {"S": trip.registration_number},
            "status": {"S": trip.status.value},
            "doc": {"S": json.dumps(trip_to_dict(trip))},
            "ledger": {"S": json.dumps(ledger_to_list(trip.stop_arrivals))},
            "version": {"N": str(version)},
        }

    def _load(self, trip_id: str) -> tuple[Trip, int] | None:
        ddb = dynamodb_client()
        with translate_aws_errors("Loading trip"):
            resp = ddb.get_item(
                TableName=self._table(),
                Key={"trip_id": {"S": trip_id}},
                ConsistentRead=True,
            )
        item = resp.get("Item")
        if not item:
            return None
        return self._decode(item)

    def _mutate(self, trip_id: str, change: Callable[[Trip], Trip | None]) -> Trip | None:
        """Apply `change` atomically; `None` from `change` means nothing to write."""

        ddb = dynamodb_client()
        for _ in range(max(1, self.max_attempts)):
            loaded = self._load(trip_id)
            if loaded is None:
                raise NotFound(f"Trip not found: {trip_id}")
            trip, version = loaded

            updated = change(trip)
            if updated is None:
                return None

            with translate_aws_errors("Updating trip"):
                try:
                    ddb.put_item(
                        TableName=self._table(),
                        Item=self._encode(updated, version + 1),
                        ConditionExpression="version = :v",
                        ExpressionAttributeValues={":v": {"N": str(version)}},
                    )
                except ClientError as exc:
                    if not _is_condition_failure(exc):
                        raise
                    # Someone else wrote first; reload and reapply.
                    continue
            return updated

        raise TransientIO(f"Trip {trip_id} kept changing underneath the update")

    def create(self, trip: Trip) -> Trip:
        ddb = dynamodb_client()
        with translate_aws_errors("Creating trip"):
            try:
                ddb.put_item(
                    TableName=self._table(),
                    Item=self._encode(trip, 0),
                    ConditionExpression="attribute_not_exists(trip_id)",
                )
            except ClientError as exc:
                if _is_condition_failure(exc):
                    raise InvalidInput(
                        f"Trip ID already exists: {trip.trip_id}"
                    ) from exc
                raise
        return trip

    def get(self, trip_id: str) -> Trip | None:
        loaded = self._load(trip_id)
        return loaded[0] if loaded else None

    def list(
        self,
        *,
        status: TripStatus | None = None,
        registration_number: str | None = None,
        route_id: str | None = None,
    ) -> tuple[Trip, ...]:
        ddb = dynamodb_client()
        trips: list[Trip] = []
        kwargs: dict[str, Any] = {"TableName": self._table()}
        with translate_aws_errors("Listing trips"):
            while True:
                resp = ddb.scan(**kwargs)
                for item in resp.get("Items", []):
                    trip, _ = self._decode(item)
                    if not trip.is_active:
                        continue
                    if status is not None and trip.status is not status:
                        continue
                    if (
                        registration_number is not None
                        and trip.registration_number != registration_number
                    ):
                        continue
                    if route_id is not None and trip.route_id != route_id:
                        continue
                    trips.append(trip)
                last_key = resp.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key

        trips.sort(key=lambda t: t.scheduled_start, reverse=True)
        return tuple(trips)

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
        def change(trip: Trip) -> Trip:
            # Checked on every reload; the versioned put makes it atomic.
            if expected is not None:
                trip.ensure_status_in(expected, status)
            return replace(
                trip,
                status=status,
                actual_start=actual_start or trip.actual_start,
                actual_end=actual_end or trip.actual_end,
                current_stop=current_stop or trip.current_stop,
            )

        updated = self._mutate(trip_id, change)
        assert updated is not None
        return updated

    def set_current_stop(self, trip_id: str, stop_name: str) -> None:
        def change(trip: Trip) -> Trip | None:
            if trip.current_stop == stop_name:
                return None
            return replace(trip, current_stop=stop_name)

        self._mutate(trip_id, change)

    def mark_stop_arrived(self, trip_id: str, index: int, update: LedgerUpdate) -> bool:
        def change(trip: Trip) -> Trip | None:
            ledger = list(trip.stop_arrivals)
            if not 0 <= index < len(ledger):
                raise NotFound(f"No ledger entry {index} on trip {trip_id}")
            if ledger[index].actual_arrival is not None:
                return None
            ledger[index] = replace(
                ledger[index],
                actual_arrival=update.actual_arrival,
                delay_minutes=update.delay_minutes,
                has_passed=True,
            )
            return replace(trip, stop_arrivals=tuple(ledger))

        return self._mutate(trip_id, change) is not None

    def mark_stop_passed(self, trip_id: str, index: int) -> bool:
        def change(trip: Trip) -> Trip | None:
            ledger = list(trip.stop_arrivals)
            if not 0 <= index < len(ledger):
                raise NotFound(f"No ledger entry {index} on trip {trip_id}")
            if ledger[index].has_passed:
                return None
            ledger[index] = replace(ledger[index], has_passed=True)
            return replace(trip, stop_arrivals=tuple(ledger))

        return self._mutate(trip_id, change) is not None
