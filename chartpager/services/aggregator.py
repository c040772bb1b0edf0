"""Calendar-aligned aggregation of raw samples into chart bins."""
from __future__ import annotations

from bisect import bisect_left, bisect_right
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from ..entries import AggregatedBin, ChartStatistics, RawSample, VisibleWindow
from ..periods import Period, period_spec
from ..utils.logging import get_logger
from ..utils.time import UTC, Calendar, CalendarError, TimeUnit

LOGGER = get_logger(__name__)

_DEFAULT_CALENDAR = Calendar("UTC")
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
BIN_COLUMNS = ["bin_start", "bin_end", "sum", "count", "average"]


def _bucket_bounds(
    calendar: Calendar, unit: TimeUnit, ts: datetime
) -> Optional[Tuple[datetime, datetime]]:
    try:
        return calendar.bucket(unit, ts)
    except CalendarError as exc:
        LOGGER.warning("Skipping %s bucket for %s: %s", unit.value, ts.isoformat(), exc)
        return None


def _make_bin(start: datetime, end: datetime, members: Sequence[RawSample]) -> AggregatedBin:
    total = 0.0
    for sample in members:
        total += sample.value
    return AggregatedBin(
        bin_start=start,
        bin_end=end,
        sum=total,
        count=len(members),
        samples=tuple(members),
    )


def aggregate(
    samples: Iterable[RawSample],
    period: Period | str,
    calendar: Calendar | None = None,
) -> List[AggregatedBin]:
    """Bucket samples into sorted, sparse, calendar-aligned bins.

    Samples are sorted once and swept in a single pass; a new bucket is only
    resolved when a sample falls past the current bucket's end, so gaps in
    the data cost nothing. Empty buckets are never emitted.
    """

    ordered = sorted(samples, key=lambda sample: sample.timestamp)
    if not ordered:
        return []
    calendar = calendar or _DEFAULT_CALENDAR
    unit = period_spec(period).bin_unit

    bins: List[AggregatedBin] = []
    members: List[RawSample] = []
    current: Optional[Tuple[datetime, datetime]] = None
    for sample in ordered:
        if current is not None and sample.timestamp < current[1]:
            members.append(sample)
            continue
        if current is not None and members:
            bins.append(_make_bin(current[0], current[1], members))
        members = []
        current = _bucket_bounds(calendar, unit, sample.timestamp)
        if current is not None:
            members.append(sample)
    if current is not None and members:
        bins.append(_make_bin(current[0], current[1], members))
    return bins


def aggregate_grouped(
    samples: Iterable[RawSample],
    period: Period | str,
    calendar: Calendar | None = None,
) -> List[AggregatedBin]:
    """Group-by variant of :func:`aggregate` keyed on each sample's bucket start."""

    ordered = sorted(samples, key=lambda sample: sample.timestamp)
    if not ordered:
        return []
    calendar = calendar or _DEFAULT_CALENDAR
    unit = period_spec(period).bin_unit

    bounds_by_key: Dict[int, Tuple[datetime, datetime]] = {}
    rows: List[Dict[str, int]] = []
    for position, sample in enumerate(ordered):
        bounds = _bucket_bounds(calendar, unit, sample.timestamp)
        if bounds is None:
            continue
        key = (bounds[0] - _EPOCH) // timedelta(microseconds=1)
        bounds_by_key[key] = bounds
        rows.append({"bin_key": key, "position": position})
    if not rows:
        return []

    frame = pd.DataFrame(rows)
    bins: List[AggregatedBin] = []
    for key, group in frame.groupby("bin_key", sort=True):
        start, end = bounds_by_key[int(key)]
        members = [ordered[int(position)] for position in group["position"]]
        bins.append(_make_bin(start, end, members))
    return bins


def slice_bins(bins: Sequence[AggregatedBin], window: VisibleWindow) -> List[AggregatedBin]:
    """Return the contiguous run of bins overlapping ``window.buffer_range``.

    ``bins`` must be sorted and non-overlapping. Both edges are located by
    binary search over the half-open interval ``[start, end)``.
    """

    start = window.buffer_range.start
    end = window.buffer_range.end
    if start >= end:
        return []
    lo = bisect_right(bins, start, key=lambda entry: entry.bin_end)
    hi = bisect_left(bins, end, key=lambda entry: entry.bin_start)
    if lo >= hi:
        return []
    return list(bins[lo:hi])


def compute_statistics(bins: Sequence[AggregatedBin]) -> ChartStatistics:
    """Summarise bins; ``average`` is the mean of per-bin sums."""

    if not bins:
        return ChartStatistics()
    total = 0.0
    for entry in bins:
        total += entry.sum
    peak = max(entry.sum for entry in bins)
    return ChartStatistics(
        average=total / len(bins),
        peak=peak,
        total=total,
        count=len(bins),
    )


def bins_to_frame(bins: Sequence[AggregatedBin]) -> pd.DataFrame:
    if not bins:
        return pd.DataFrame(columns=BIN_COLUMNS)
    frame = pd.DataFrame(
        {
            "bin_start": [entry.bin_start for entry in bins],
            "bin_end": [entry.bin_end for entry in bins],
            "sum": [entry.sum for entry in bins],
            "count": [entry.count for entry in bins],
            "average": [entry.average for entry in bins],
        }
    )
    frame["bin_start"] = pd.to_datetime(frame["bin_start"], utc=True)
    frame["bin_end"] = pd.to_datetime(frame["bin_end"], utc=True)
    return frame


__all__ = [
    "BIN_COLUMNS",
    "aggregate",
    "aggregate_grouped",
    "bins_to_frame",
    "compute_statistics",
    "slice_bins",
]
