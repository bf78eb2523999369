from .bus_repository import IBusRepository
from .location_repository import ILocationRepository
from .route_repository import IRouteRepository
from .trip_repository import ITripRepository, LedgerUpdate

__all__ = [
    "IBusRepository",
    "ILocationRepository",
    "IRouteRepository",
    "ITripRepository",
    "LedgerUpdate",
]
