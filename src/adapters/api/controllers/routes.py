from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, Response

from src.adapters.api.dependencies import get_route_catalog_service
from src.adapters.api.presenters import route_to_schema, set_page_headers
from src.adapters.api.schemas.routes import (
    RouteCreateSchema,
    RouteSchema,
    RouteWriteSchema,
)
from src.app.services.catalog_service import RouteCatalogService, RouteSortField
from src.app.services.paging import paginate
from src.domain.models import GeoPoint, Route, Stop

router = APIRouter(prefix="/routes", tags=["routes"])


def _to_route(route_id: str, req: RouteWriteSchema) -> Route:
    return Route(
        route_id=route_id,
        name=req.name.strip(),
        stops=tuple(
            Stop(
                name=s.name.strip(),
                sequence=s.sequence,
                location=GeoPoint.from_lon_lat(s.coordinates),
                offset_min=s.offset_min,
            )
            for s in req.stops
        ),
        origin_city=req.origin_city,
        destination_city=req.destination_city,
        distance_km=req.distance_km,
        estimated_duration_min=req.estimated_duration_min,
    )


@router.post("", response_model=RouteSchema, status_code=201)
def create_route(
    req: RouteCreateSchema,
    service: RouteCatalogService = Depends(get_route_catalog_service),
) -> RouteSchema:
    return route_to_schema(service.create(_to_route(req.route_id, req)))


@router.get("", response_model=list[RouteSchema])
def list_routes(
    response: Response,
    origin: str | None = Query(None, description="Origin city (substring)"),
    destination: str | None = Query(None, description="Destination city (substring)"),
    search: str | None = Query(None, description="Matches id, name or either city"),
    sort: RouteSortField = Query(RouteSortField.ROUTE_ID),
    order: Literal["asc", "desc"] = Query("asc"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=100),
    service: RouteCatalogService = Depends(get_route_catalog_service),
) -> list[RouteSchema]:
    routes = service.list(
        origin=origin,
        destination=destination,
        search=search,
        sort=sort,
        descending=order == "desc",
    )
    result = paginate(routes, page=page, limit=limit)
    set_page_headers(response, result)
    return [route_to_schema(r) for r in result.items]


@router.get("/search", response_model=list[RouteSchema])
def search_routes(
    origin: str | None = Query(None),
    destination: str | None = Query(None),
    service: RouteCatalogService = Depends(get_route_catalog_service),
) -> list[RouteSchema]:
    """Routes from one city to another, quickest first."""

    return [route_to_schema(r) for r in service.search(origin, destination)]


@router.get("/{route_id}", response_model=RouteSchema)
def get_route(
    route_id: str,
    service: RouteCatalogService = Depends(get_route_catalog_service),
) -> RouteSchema:
    return route_to_schema(service.get(route_id))


@router.put("/{route_id}", response_model=RouteSchema)
def update_route(
    route_id: str,
    req: RouteWriteSchema,
    service: RouteCatalogService = Depends(get_route_catalog_service),
) -> RouteSchema:
    return route_to_schema(service.update(route_id, _to_route(route_id, req)))


@router.delete("/{route_id}", response_model=RouteSchema)
def delete_route(
    route_id: str,
    service: RouteCatalogService = Depends(get_route_catalog_service),
) -> RouteSchema:
    return route_to_schema(service.delete(route_id))
