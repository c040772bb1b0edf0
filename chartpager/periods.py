"""Chart periods and the configuration constants keyed by them."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict

from .utils.time import TimeUnit


class Period(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @property
    def spec(self) -> "PeriodSpec":
        return PERIOD_SPECS[self]


@dataclass(frozen=True, slots=True)
class PeriodSpec:
    """Per-period bucketing, paging and axis constants."""

    bin_unit: TimeUnit
    page_size: timedelta
    visible_length: timedelta
    desired_mark_count: int
    domain_floor: float
    axis_date_format: str
    x_label: str


PERIOD_SPECS: Dict[Period, PeriodSpec] = {
    Period.DAY: PeriodSpec(
        bin_unit=TimeUnit.HOUR,
        page_size=timedelta(days=1),
        visible_length=timedelta(days=1),
        desired_mark_count=6,
        domain_floor=3_000.0,
        axis_date_format="%H",
        x_label="Hour",
    ),
    Period.WEEK: PeriodSpec(
        bin_unit=TimeUnit.DAY,
        page_size=timedelta(days=14),
        visible_length=timedelta(days=7),
        desired_mark_count=4,
        domain_floor=30_000.0,
        axis_date_format="%a",
        x_label="Day",
    ),
    Period.MONTH: PeriodSpec(
        bin_unit=TimeUnit.DAY,
        page_size=timedelta(days=60),
        visible_length=timedelta(days=35),
        desired_mark_count=6,
        domain_floor=30_000.0,
        axis_date_format="%d",
        x_label="Day",
    ),
    Period.YEAR: PeriodSpec(
        bin_unit=TimeUnit.MONTH,
        page_size=timedelta(days=720),
        visible_length=timedelta(days=365),
        desired_mark_count=12,
        domain_floor=40_000.0,
        axis_date_format="%b",
        x_label="Month",
    ),
}

_ALIASES: Dict[str, Period] = {
    "d": Period.DAY,
    "1d": Period.DAY,
    "w": Period.WEEK,
    "1w": Period.WEEK,
    "m": Period.MONTH,
    "1m": Period.MONTH,
    "y": Period.YEAR,
    "1y": Period.YEAR,
}


def parse_period(value: str | Period) -> Period:
    """Resolve a period name such as ``"week"`` or ``"W"`` to a :class:`Period`."""

    if isinstance(value, Period):
        return value
    text = (value or "").strip().lower()
    if text in _ALIASES:
        return _ALIASES[text]
    try:
        return Period(text)
    except ValueError:
        raise ValueError(f"Unsupported period: {value!r}") from None


def period_spec(period: str | Period) -> PeriodSpec:
    return PERIOD_SPECS[parse_period(period)]
