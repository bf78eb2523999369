from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import Bus


class IBusRepository(ABC):
    """Persistence port for buses keyed by registration number."""

    @abstractmethod
    def save(self, bus: Bus) -> Bus:
        raise NotImplementedError

    @abstractmethod
    def get(self, registration_number: str) -> Bus | None:
        raise NotImplementedError

    @abstractmethod
    def list(self, *, include_inactive: bool = False) -> tuple[Bus, ...]:
        raise NotImplementedError
