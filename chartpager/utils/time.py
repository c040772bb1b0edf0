"""Time helper utilities and calendar-aligned bucket arithmetic."""
from __future__ import annotations

from calendar import monthrange
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pandas as pd

UTC = timezone.utc


class TimeUnit(str, Enum):
    """Calendar components used as bucket sizes."""

    HOUR = "hour"
    DAY = "day"
    MONTH = "month"


class CalendarError(ValueError):
    """Raised when a calendar computation cannot resolve to a valid instant."""


def now_utc() -> datetime:
    return datetime.now(UTC)


def as_utc(ts: datetime) -> datetime:
    """Return ``ts`` as an aware UTC datetime; naive values are taken as UTC."""

    if hasattr(ts, "to_pydatetime"):
        ts = ts.to_pydatetime()
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def to_datetime(value: object) -> datetime:
    """Coerce ISO strings, epoch milliseconds or timestamps to aware UTC datetimes."""

    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value) / 1000.0, tz=UTC)
    stamp = pd.Timestamp(value)
    if stamp is pd.NaT:
        raise ValueError(f"Cannot interpret {value!r} as a timestamp")
    if stamp.tzinfo is None:
        stamp = stamp.tz_localize("UTC")
    return stamp.tz_convert("UTC").to_pydatetime()


class Calendar:
    """Wall-clock calendar for one IANA time zone.

    Bucket boundaries are computed on local wall time and converted back to
    UTC, so a DST transition day spans 23 or 25 hours and month buckets
    follow each month's real length. Hour arithmetic is done on elapsed
    time so a repeated wall-clock hour still yields two distinct buckets.
    """

    def __init__(self, timezone_name: str = "UTC") -> None:
        try:
            self.tz = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise CalendarError(f"Unknown timezone: {timezone_name}") from exc
        self.timezone_name = timezone_name

    def __repr__(self) -> str:
        return f"Calendar({self.timezone_name!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Calendar) and other.timezone_name == self.timezone_name

    def __hash__(self) -> int:
        return hash(self.timezone_name)

    def local(self, ts: datetime) -> datetime:
        return as_utc(ts).astimezone(self.tz)

    def start_of(self, unit: TimeUnit, ts: datetime) -> datetime:
        """Floor ``ts`` to the start of its enclosing ``unit`` bucket."""

        unit = TimeUnit(unit)
        try:
            local = self.local(ts)
            if unit is TimeUnit.HOUR:
                floored = local.replace(minute=0, second=0, microsecond=0)
            elif unit is TimeUnit.DAY:
                floored = local.replace(hour=0, minute=0, second=0, microsecond=0, fold=0)
            else:
                floored = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0, fold=0)
            return floored.astimezone(UTC)
        except (OverflowError, ValueError) as exc:
            raise CalendarError(f"Cannot align {ts!r} to {unit.value}") from exc

    def add(self, unit: TimeUnit, ts: datetime, value: int = 1) -> datetime:
        """Add ``value`` calendar units to ``ts``.

        Month addition clamps the day to the target month's length, so
        January 31st plus one month is the last day of February.
        """

        unit = TimeUnit(unit)
        try:
            if unit is TimeUnit.HOUR:
                return as_utc(ts) + timedelta(hours=value)
            local = self.local(ts)
            if unit is TimeUnit.DAY:
                target = local.date() + timedelta(days=value)
                moved = datetime.combine(target, local.time().replace(fold=0), tzinfo=self.tz)
            else:
                months = local.month - 1 + value
                year = local.year + months // 12
                month = months % 12 + 1
                day = min(local.day, monthrange(year, month)[1])
                moved = local.replace(year=year, month=month, day=day, fold=0)
            return moved.astimezone(UTC)
        except (OverflowError, ValueError) as exc:
            raise CalendarError(f"Cannot add {value} {unit.value} to {ts!r}") from exc

    def bucket(self, unit: TimeUnit, ts: datetime) -> Tuple[datetime, datetime]:
        """Return the half-open ``[start, end)`` bucket containing ``ts``."""

        start = self.start_of(unit, ts)
        end = self.add(unit, start, 1)
        if end <= start:
            raise CalendarError(f"Empty {TimeUnit(unit).value} bucket at {start.isoformat()}")
        return start, end
