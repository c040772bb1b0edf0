"""Value types for raw samples, aggregated bins and time windows."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Tuple

from .utils.time import as_utc


@dataclass(frozen=True, slots=True)
class RawSample:
    """A single timestamped measurement produced by a data source."""

    timestamp: datetime
    value: float
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True, slots=True)
class AggregatedBin:
    """Samples falling inside one calendar bucket ``[bin_start, bin_end)``."""

    bin_start: datetime
    bin_end: datetime
    sum: float
    count: int
    samples: Tuple[RawSample, ...] = ()

    def __post_init__(self) -> None:
        if self.bin_end <= self.bin_start:
            raise ValueError("bin_end must be after bin_start")

    @property
    def average(self) -> float:
        return self.sum / self.count if self.count > 0 else 0.0

    @property
    def display_date(self) -> datetime:
        return self.bin_start + (self.bin_end - self.bin_start) / 2

    def as_dict(self) -> Dict[str, object]:
        return {
            "bin_start": self.bin_start.isoformat(),
            "bin_end": self.bin_end.isoformat(),
            "sum": self.sum,
            "count": self.count,
            "average": self.average,
        }


@dataclass(frozen=True, slots=True)
class TimeRange:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", as_utc(self.start))
        object.__setattr__(self, "end", as_utc(self.end))
        if self.end < self.start:
            raise ValueError("TimeRange end must not precede start")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, ts: datetime) -> bool:
        ts = as_utc(ts)
        return self.start <= ts <= self.end

    def extended(self, by: timedelta) -> "TimeRange":
        return TimeRange(self.start - by, self.end + by)

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


@dataclass(frozen=True, slots=True)
class VisibleWindow:
    """On-screen range plus the surrounding buffer, both centred on one date."""

    center_date: datetime
    visible_range: TimeRange
    buffer_range: TimeRange

    @classmethod
    def around(
        cls,
        center_date: datetime,
        visible_length: timedelta,
        buffer_multiplier: float = 2.0,
    ) -> "VisibleWindow":
        if buffer_multiplier < 1.0:
            raise ValueError("buffer_multiplier must be at least 1")
        center = as_utc(center_date)
        half_visible = visible_length / 2
        half_buffer = visible_length * buffer_multiplier / 2
        return cls(
            center_date=center,
            visible_range=TimeRange(center - half_visible, center + half_visible),
            buffer_range=TimeRange(center - half_buffer, center + half_buffer),
        )


@dataclass(frozen=True, slots=True)
class ChartStatistics:
    average: float = 0.0
    peak: float = 0.0
    total: float = 0.0
    count: int = 0


@dataclass(frozen=True, slots=True)
class YDomain:
    lower: float
    upper: float

    @property
    def span(self) -> float:
        return self.upper - self.lower


__all__ = [
    "AggregatedBin",
    "ChartStatistics",
    "RawSample",
    "TimeRange",
    "VisibleWindow",
    "YDomain",
]
