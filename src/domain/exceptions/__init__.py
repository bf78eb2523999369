from .tracking import (
    AlreadyTerminal,
    InvalidInput,
    NotFound,
    SimulationAlreadyRunning,
    TrackingError,
    TransientIO,
)

__all__ = [
    "AlreadyTerminal",
    "InvalidInput",
    "NotFound",
    "SimulationAlreadyRunning",
    "TrackingError",
    "TransientIO",
]
