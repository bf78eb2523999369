class TrackingError(Exception):
    """Base exception for bus tracking failures."""


class NotFound(TrackingError):
    """Raised when a trip, route, bus or stop does not exist."""


class InvalidInput(TrackingError, ValueError):
    """Raised for malformed coordinates or missing/invalid trip and route fields."""


class AlreadyTerminal(TrackingError):
    """Raised when acting on a trip that is already completed or cancelled."""


class SimulationAlreadyRunning(TrackingError):
    """Raised when a trip already has a live simulation in this process."""


class TransientIO(TrackingError):
    """Raised when the storage layer fails to read or write."""
