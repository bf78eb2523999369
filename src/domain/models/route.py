from __future__ import annotations

from dataclasses import dataclass, field

from src.domain.exceptions import InvalidInput

from .stop import Stop


@dataclass(frozen=True, slots=True)
class Route:
    """An inter-provincial bus route: an ordered list of stops."""

    route_id: str
    name: str
    stops: tuple[Stop, ...] = field(default_factory=tuple)
    origin_city: str | None = None
    destination_city: str | None = None
    distance_km: float | None = None
    estimated_duration_min: int | None = None
    is_active: bool = True

    @property
    def ordered_stops(self) -> tuple[Stop, ...]:
        # Route order is defined by sequence, never by storage order.
        return tuple(sorted(self.stops, key=lambda s: s.sequence))

    @property
    def first_stop(self) -> Stop | None:
        ordered = self.ordered_stops
        return ordered[0] if ordered else None

    def check_invariants(self) -> None:
        """Raise InvalidInput unless the stop list is well formed.

        Sequences must be exactly 1..N, names unique and scheduled offsets
        non-decreasing along the sequence.
        """

        if not self.route_id.strip():
            raise InvalidInput("route_id is required")
        if not self.name.strip():
            raise InvalidInput("Route name is required")

        ordered = self.ordered_stops
        sequences = [s.sequence for s in ordered]
        if sequences != list(range(1, len(ordered) + 1)):
            raise InvalidInput(
                f"Stop sequences must be 1..{len(ordered)}, got {sorted(sequences)}"
            )

        names = [s.name for s in ordered]
        if len(set(names)) != len(names):
            raise InvalidInput("Stop names must be unique within a route")

        for prev, cur in zip(ordered, ordered[1:]):
            if cur.offset_min < prev.offset_min:
                raise InvalidInput(
                    f"Stop '{cur.name}' is scheduled before '{prev.name}'"
                )
