from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from src.domain.exceptions import InvalidInput

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """One slice of an ordered result set (`limit=None` means everything)."""

    items: tuple[T, ...]
    page: int
    limit: int | None
    total: int

    @property
    def total_pages(self) -> int:
        if self.limit is None:
            return 1 if self.total else 0
        return math.ceil(self.total / self.limit)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def paginate(items: Sequence[T], *, page: int = 1, limit: int | None = None) -> Page[T]:
    if page < 1:
        raise InvalidInput("page must be at least 1")
    if limit is not None and limit < 1:
        raise InvalidInput("limit must be at least 1")
    if limit is None:
        return Page(items=tuple(items), page=1, limit=None, total=len(items))
    start = (page - 1) * limit
    return Page(
        items=tuple(items[start : start + limit]),
        page=page,
        limit=limit,
        total=len(items),
    )
