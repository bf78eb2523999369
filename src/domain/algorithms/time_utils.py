from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone


def as_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def round_minutes(delta: timedelta) -> int:
    """Whole minutes in `delta`, rounding halves up (never truncating)."""

    return int(math.floor(delta.total_seconds() / 60.0 + 0.5))
