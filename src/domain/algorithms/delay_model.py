from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Protocol

from src.domain.exceptions import InvalidInput


class DelayModel(Protocol):
    def sample(self) -> timedelta:
        """Signed offset to add to a nominal virtual timestamp."""


@dataclass(frozen=True, slots=True)
class DelayScenario:
    probability: float
    variation: timedelta


DEFAULT_DELAY_SCENARIOS: tuple[DelayScenario, ...] = (
    DelayScenario(probability=0.60, variation=timedelta(0)),
    DelayScenario(probability=0.20, variation=timedelta(minutes=2)),
    DelayScenario(probability=0.15, variation=timedelta(minutes=5)),
    DelayScenario(probability=0.05, variation=timedelta(minutes=-1)),
)


@dataclass(slots=True)
class CategoricalDelayModel:
    """Draws one scenario per call by cumulative probability.

    Mostly on time, sometimes +2 or +5 minutes late, rarely a minute early.
    Pass a seeded `random.Random` for reproducible draws.
    """

    scenarios: tuple[DelayScenario, ...] = DEFAULT_DELAY_SCENARIOS
    rng: random.Random = field(default_factory=random.Random)

    def __post_init__(self) -> None:
        if not self.scenarios:
            raise InvalidInput("At least one delay scenario is required")
        if any(s.probability < 0.0 for s in self.scenarios):
            raise InvalidInput("Delay probabilities must be non-negative")
        total = math.fsum(s.probability for s in self.scenarios)
        if abs(total - 1.0) > 1e-9:
            raise InvalidInput(f"Delay probabilities must sum to 1, got {total}")

    def sample(self) -> timedelta:
        r = self.rng.random()
        cumulative = 0.0
        for scenario in self.scenarios:
            cumulative += scenario.probability
            if r <= cumulative:
                return scenario.variation
        return timedelta(0)
