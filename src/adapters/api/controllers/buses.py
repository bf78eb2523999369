from __future__ import annotations

from fastapi import APIRouter, Depends

from src.adapters.api.dependencies import get_bus_catalog_service
from src.adapters.api.presenters import bus_to_schema
from src.adapters.api.schemas.buses import BusCreateSchema, BusSchema, BusWriteSchema
from src.app.services.catalog_service import BusCatalogService
from src.domain.models import Bus, BusStatus, BusType

router = APIRouter(prefix="/buses", tags=["buses"])


def _to_bus(registration_number: str, req: BusWriteSchema) -> Bus:
    return Bus(
        registration_number=registration_number,
        bus_number=req.bus_number.strip(),
        route_name=req.route_name.strip(),
        capacity=req.capacity,
        type=BusType(req.type),
        status=BusStatus(req.status),
    )


@router.post("", response_model=BusSchema, status_code=201)
def create_bus(
    req: BusCreateSchema,
    service: BusCatalogService = Depends(get_bus_catalog_service),
) -> BusSchema:
    return bus_to_schema(service.create(_to_bus(req.registration_number, req)))


@router.get("", response_model=list[BusSchema])
def list_buses(
    service: BusCatalogService = Depends(get_bus_catalog_service),
) -> list[BusSchema]:
    return [bus_to_schema(b) for b in service.list()]


@router.get("/{registration_number}", response_model=BusSchema)
def get_bus(
    registration_number: str,
    service: BusCatalogService = Depends(get_bus_catalog_service),
) -> BusSchema:
    return bus_to_schema(service.get(registration_number))


@router.put("/{registration_number}", response_model=BusSchema)
def update_bus(
    registration_number: str,
    req: BusWriteSchema,
    service: BusCatalogService = Depends(get_bus_catalog_service),
) -> BusSchema:
    return bus_to_schema(
        service.update(registration_number, _to_bus(registration_number, req))
    )


@router.delete("/{registration_number}", response_model=BusSchema)
def delete_bus(
    registration_number: str,
    service: BusCatalogService = Depends(get_bus_catalog_service),
) -> BusSchema:
    return bus_to_schema(service.delete(registration_number))
