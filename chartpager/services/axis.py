"""Axis helpers: 1-2-5 rounding of the value domain and date tick placement."""
from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, List

from ..entries import TimeRange, YDomain
from ..utils.logging import get_logger
from ..utils.time import Calendar, CalendarError, TimeUnit

LOGGER = get_logger(__name__)

DEFAULT_HEADROOM = 1.2
LOWER_BOUND_FACTOR = 0.9


def nice_ceil(value: float) -> float:
    """Round ``value`` up to the next 1, 2 or 5 times a power of ten."""

    if not math.isfinite(value) or value <= 0:
        return 0.0
    exponent = math.floor(math.log10(value))
    base = 10.0 ** exponent
    mantissa = value / base
    if mantissa <= 1:
        nice = 1.0
    elif mantissa <= 2:
        nice = 2.0
    elif mantissa <= 5:
        nice = 5.0
    else:
        nice = 10.0
    return nice * base


def default_domain(floor: float) -> YDomain:
    return YDomain(lower=0.0, upper=max(0.0, float(floor)))


def compute_y_domain(
    sums: Iterable[float],
    *,
    floor: float,
    headroom: float = DEFAULT_HEADROOM,
) -> YDomain:
    """Domain for the visible bin sums.

    The upper bound is the padded maximum rounded with :func:`nice_ceil`;
    the lower bound is ``max(0.9 * min, 0)``. The upper bound is never
    below ``floor``.
    """

    values = [float(value) for value in sums if math.isfinite(value)]
    if not values:
        return default_domain(floor)
    lower = max(min(values) * LOWER_BOUND_FACTOR, 0.0)
    upper = nice_ceil(max(values) * headroom)
    upper = max(upper, max(0.0, float(floor)))
    return YDomain(lower=lower, upper=upper)


def visible_axis_dates(
    visible_range: TimeRange,
    unit: TimeUnit,
    calendar: Calendar,
    desired_count: int,
) -> List[datetime]:
    """Calendar-aligned tick dates inside ``visible_range``, thinned to about ``desired_count``."""

    if desired_count <= 0:
        return []
    dates: List[datetime] = []
    try:
        current = calendar.start_of(unit, visible_range.start)
    except CalendarError as exc:
        LOGGER.warning("Cannot align axis start %s: %s", visible_range.start.isoformat(), exc)
        current = visible_range.start
    while current <= visible_range.end and len(dates) < desired_count * 2:
        if current >= visible_range.start:
            dates.append(current)
        try:
            current = calendar.add(unit, current, 1)
        except CalendarError as exc:
            LOGGER.warning("Axis ticks truncated at %s: %s", current.isoformat(), exc)
            break
    if len(dates) > desired_count:
        step = max(1, len(dates) // desired_count)
        dates = dates[::step]
    return dates
