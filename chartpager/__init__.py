"""Windowed, calendar-aligned aggregation and paging for scrollable time-series charts."""

from .entries import AggregatedBin, ChartStatistics, RawSample, TimeRange, VisibleWindow, YDomain
from .periods import PERIOD_SPECS, Period, PeriodSpec, parse_period, period_spec
from .utils.time import Calendar, CalendarError, TimeUnit

__all__ = [
    "AggregatedBin",
    "Calendar",
    "CalendarError",
    "ChartStatistics",
    "PERIOD_SPECS",
    "Period",
    "PeriodSpec",
    "RawSample",
    "TimeRange",
    "TimeUnit",
    "VisibleWindow",
    "YDomain",
    "parse_period",
    "period_spec",
]
