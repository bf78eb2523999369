from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Protocol

BASE_SPEED_KMH = 45.0
SPEED_SPREAD_KMH = 20.0


class TelemetryGenerator(Protocol):
    def speed_kmh(self, progress: float) -> float: ...

    def heading_deg(self) -> float: ...


@dataclass(slots=True)
class RandomTelemetry:
    """Plausible, not accurate, speed and heading for simulated fixes.

    Heading is a placeholder: it is not derived from the direction of travel.
    """

    rng: random.Random = field(default_factory=random.Random)
    base_speed_kmh: float = BASE_SPEED_KMH

    def speed_kmh(self, progress: float) -> float:
        variation = (self.rng.random() - 0.5) * SPEED_SPREAD_KMH
        base = self.base_speed_kmh
        if progress < 0.1 or progress > 0.9:
            # Accelerating out of the first stop / braking into the last.
            base *= 0.5
        return float(max(0, math.floor(base + variation + 0.5)))

    def heading_deg(self) -> float:
        return float(self.rng.randrange(360))
