from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from src.domain.exceptions import InvalidInput

REGISTRATION_PATTERN = re.compile(r"^[A-Z]{2,3}-[0-9]{4}$")


class BusType(str, Enum):
    NORMAL = "normal"
    SEMI_LUXURY = "semi-luxury"
    LUXURY = "luxury"
    SUPER_LUXURY = "super-luxury"


class BusStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
    EN_ROUTE = "en-route"
    AT_STOP = "at-stop"


def normalize_registration(raw: str) -> str:
    """Upper-case and validate a registration number such as `WP-1234`."""

    value = (raw or "").strip().upper()
    if not REGISTRATION_PATTERN.match(value):
        raise InvalidInput(f"Invalid registration format (e.g., WP-1234): {raw!r}")
    return value


@dataclass(frozen=True, slots=True)
class Bus:
    registration_number: str
    bus_number: str
    route_name: str
    capacity: int
    type: BusType = BusType.NORMAL
    status: BusStatus = BusStatus.ACTIVE
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.capacity < 20:
            raise InvalidInput("Capacity must be at least 20")
        if not self.bus_number.strip():
            raise InvalidInput("Bus number is required")
        if not self.route_name.strip():
            raise InvalidInput("Route name is required")
