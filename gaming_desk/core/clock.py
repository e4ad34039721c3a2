# gaming_desk/core/clock.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes coming back from the driver are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
