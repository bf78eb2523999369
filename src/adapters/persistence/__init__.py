from .dynamodb_catalog_repository import DynamoDbBusRepository, DynamoDbRouteRepository
from .dynamodb_location_repository import DynamoDbLocationRepository
from .dynamodb_trip_repository import DynamoDbTripRepository
from .memory_repositories import (
    InMemoryBusRepository,
    InMemoryLocationRepository,
    InMemoryRouteRepository,
    InMemoryTripRepository,
)

__all__ = [
    "DynamoDbBusRepository",
    "DynamoDbLocationRepository",
    "DynamoDbRouteRepository",
    "DynamoDbTripRepository",
    "InMemoryBusRepository",
    "InMemoryLocationRepository",
    "InMemoryRouteRepository",
    "InMemoryTripRepository",
]
