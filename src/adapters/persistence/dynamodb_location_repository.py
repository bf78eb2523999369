from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import timezone
from uuid import uuid4

from src.adapters.aws import dynamodb_client, translate_aws_errors
from src.adapters.persistence.records import fix_from_dict, fix_to_dict
from src.app.ports.output import ILocationRepository
from src.domain.models import GpsFix


def _sort_key(fix: GpsFix) -> str:
    # Fixed-width UTC timestamps sort lexicographically; the suffix keeps
    # fixes with identical timestamps from overwriting each other.
    ts = fix.timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return f"{ts}#{uuid4().hex[:12]}"


@dataclass(slots=True)
class DynamoDbLocationRepository(ILocationRepository):
    """Append-only GPS fix log.

    Partition key `trip_id`, sort key `ts` (timestamp + unique suffix), so
    the latest fix is a single descending query.

    Env vars:
      - LOCATIONS_TABLE (default: bustrack-locations)
    """

    table_name: str | None = None

    def _table(self) -> str:
        return self.table_name or os.getenv("LOCATIONS_TABLE") or "bustrack-locations"

    def append(self, fix: GpsFix) -> None:
        ddb = dynamodb_client()
        with translate_aws_errors("Appending GPS fix"):
            ddb.put_item(
                TableName=self._table(),
                Item={
                    "trip_id": {"S": fix.trip_id},
                    "ts": {"S": _sort_key(fix)},
                    "registration_number": {"S": fix.registration_number},
                    "doc": {"S": json.dumps(fix_to_dict(fix))},
                },
            )

    def _query(self, trip_id: str, *, newest_first: bool, limit: int) -> tuple[GpsFix, ...]:
        if limit <= 0:
            return ()
        ddb = dynamodb_client()
        with translate_aws_errors("Querying GPS fixes"):
            resp = ddb.query(
                TableName=self._table(),
                KeyConditionExpression="trip_id = :t",
                ExpressionAttributeValues={":t": {"S": trip_id}},
                ScanIndexForward=not newest_first,
                Limit=int(limit),
                ConsistentRead=True,
            )
        return tuple(
            fix_from_dict(json.loads(item["doc"]["S"])) for item in resp.get("Items", [])
        )

    def latest(self, trip_id: str) -> GpsFix | None:
        fixes = self._query(trip_id, newest_first=True, limit=1)
        return fixes[0] if fixes else None

    def history(self, trip_id: str, *, limit: int = 100) -> tuple[GpsFix, ...]:
        return self._query(trip_id, newest_first=False, limit=limit)
