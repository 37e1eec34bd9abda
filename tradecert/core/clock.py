# tradecert/core/clock.py
from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from tradecert.core.config import settings


def tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now() -> datetime:
    """Current instant in the reference timezone."""
    return datetime.now(tz())


def to_local(value: datetime | None) -> datetime | None:
    """Converts to the reference timezone; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz())


def local_day(value: datetime) -> date:
    return to_local(value).date()


def fmt_day(value: datetime | None) -> str | None:
    return to_local(value).strftime("%Y-%m-%d") if value else None


def fmt_stamp(value: datetime | None) -> str | None:
    return to_local(value).strftime("%Y-%m-%d %H:%M:%S") if value else None
