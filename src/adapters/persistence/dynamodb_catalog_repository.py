from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any

from src.adapters.aws import dynamodb_client, translate_aws_errors
from src.adapters.persistence.records import (
    bus_from_dict,
    bus_to_dict,
    route_from_dict,
    route_to_dict,
)
from src.app.ports.output import IBusRepository, IRouteRepository
from src.domain.models import Bus, Route


def _scan_docs(table: str, action: str) -> list[dict[str, Any]]:
    ddb = dynamodb_client()
    docs: list[dict[str, Any]] = []
    kwargs: dict[str, Any] = {"TableName": table}
    with translate_aws_errors(action):
        while True:
            resp = ddb.scan(**kwargs)
            docs.extend(json.loads(item["doc"]["S"]) for item in resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return docs
            kwargs["ExclusiveStartKey"] = last_key


@dataclass(slots=True)
class DynamoDbRouteRepository(IRouteRepository):
    """Routes as JSON documents keyed by route_id.

    Env vars:
      - ROUTES_TABLE (default: bustrack-routes)
    """

    table_name: str | None = None

    def _table(self) -> str:
        return self.table_name or os.getenv("ROUTES_TABLE") or "bustrack-routes"

    def save(self, route: Route) -> Route:
        ddb = dynamodb_client()
        with translate_aws_errors("Saving route"):
            ddb.put_item(
                TableName=self._table(),
                Item={
                    "route_id": {"S": route.route_id},
                    "doc": {"S": json.dumps(route_to_dict(route))},
                },
            )
        return route

    def get(self, route_id: str) -> Route | None:
        ddb = dynamodb_client()
        with translate_aws_errors("Loading route"):
            resp = ddb.get_item(
                TableName=self._table(),
                Key={"route_id": {"S": route_id}},
                ConsistentRead=True,
            )
        item = resp.get("Item")
        if not item:
            return None
        return route_from_dict(json.loads(item["doc"]["S"]))

    def list(self, *, include_inactive: bool = False) -> tuple[Route, ...]:
        routes = [route_from_dict(d) for d in _scan_docs(self._table(), "Listing routes")]
        routes = [r for r in routes if include_inactive or r.is_active]
        routes.sort(key=lambda r: r.route_id)
        return tuple(routes)


@dataclass(slots=True)
class DynamoDbBusRepository(IBusRepository):
    """Buses as JSON documents keyed by registration number.

    Env vars:
      - BUSES_TABLE (default: bustrack-buses)
    """

    table_name: str | None = None

    def _table(self) -> str:
        return self.table_name or os.getenv("BUSES_TABLE") or "bustrack-buses"

    def save(self, bus: Bus) -> Bus:
        ddb = dynamodb_client()
        with translate_aws_errors("Saving bus"):
            ddb.put_item(
                TableName=self._table(),
                Item={
                    "registration_number": {"S": bus.registration_number},
                    "doc": {"S": json.dumps(bus_to_dict(bus))},
                },
            )
        return bus

    def get(self, registration_number: str) -> Bus | None:
        ddb = dynamodb_client()
        with translate_aws_errors("Loading bus"):
            resp = ddb.get_item(
                TableName=self._table(),
                Key={"registration_number": {"S": registration_number}},
                ConsistentRead=True,
            )
        item = resp.get("Item")
        if not item:
            return None
        return bus_from_dict(json.loads(item["doc"]["S"]))

    def list(self, *, include_inactive: bool = False) -> tuple[Bus, ...]:
        buses = [bus_from_dict(d) for d in _scan_docs(self._table(), "Listing buses")]
        buses = [b for b in buses if include_inactive or b.is_active]
        buses.sort(key=lambda b: b.registration_number)
        return tuple(buses)
