"""Sample sources implementing the async ``fetch(range)`` contract, plus file I/O."""
from __future__ import annotations

import asyncio
from bisect import bisect_left
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..entries import RawSample, TimeRange
from ..utils.logging import get_logger
from ..utils.time import Calendar, as_utc

LOGGER = get_logger(__name__)

SAMPLE_COLUMNS = ["id", "timestamp", "value"]

# (first hour, last hour, low, high) of hourly steps; first match wins.
ACTIVITY_PROFILE: Tuple[Tuple[int, int, float, float], ...] = (
    (0, 5, 0.0, 30.0),
    (7, 9, 800.0, 2000.0),
    (17, 19, 600.0, 1500.0),
    (12, 13, 300.0, 800.0),
    (22, 23, 20.0, 100.0),
)
DEFAULT_ACTIVITY = (50.0, 400.0)


def _activity_bounds(hour: int) -> Tuple[float, float]:
    for first, last, low, high in ACTIVITY_PROFILE:
        if first <= hour <= last:
            return low, high
    return DEFAULT_ACTIVITY


class SyntheticSampleSource:
    """Deterministic hourly step counts.

    Each hour is seeded from ``(seed, hours since epoch)`` so overlapping
    fetches return identical samples with identical ids. ``calls`` records
    every requested range.
    """

    def __init__(
        self,
        *,
        seed: int = 0,
        calendar: Optional[Calendar] = None,
        latency: float = 0.0,
    ) -> None:
        self.seed = abs(int(seed))
        self.calendar = calendar or Calendar("UTC")
        self.latency = max(0.0, float(latency))
        self.calls: List[TimeRange] = []

    def sample_at(self, hour_start: datetime) -> RawSample:
        hour_start = as_utc(hour_start)
        hour_index = (int(hour_start.timestamp()) // 3600) & 0xFFFF_FFFF_FFFF
        rng = np.random.default_rng([self.seed, hour_index])
        low, high = _activity_bounds(self.calendar.local(hour_start).hour)
        value = float(np.round(rng.uniform(low, high)))
        return RawSample(timestamp=hour_start, value=value, id=f"synthetic-{self.seed}-{hour_index}")

    def samples_between(self, time_range: TimeRange) -> List[RawSample]:
        """Hourly samples in the half-open ``[start, end)`` range."""

        current = time_range.start.replace(minute=0, second=0, microsecond=0)
        if current < time_range.start:
            current += timedelta(hours=1)
        samples: List[RawSample] = []
        while current < time_range.end:
            samples.append(self.sample_at(current))
            current += timedelta(hours=1)
        return samples

    async def __call__(self, time_range: TimeRange) -> List[RawSample]:
        self.calls.append(time_range)
        if self.latency:
            await asyncio.sleep(self.latency)
        return self.samples_between(time_range)


def frame_to_samples(frame: pd.DataFrame) -> List[RawSample]:
    """Build samples from a ``timestamp``/``value`` table with an optional ``id`` column."""

    missing = {"timestamp", "value"} - set(frame.columns)
    if missing:
        raise ValueError(f"Sample table missing columns: {sorted(missing)}")
    timestamps = pd.to_datetime(frame["timestamp"], utc=True, errors="coerce")
    values = pd.to_numeric(frame["value"], errors="coerce")
    ids = frame["id"].astype(str) if "id" in frame.columns else None
    samples: List[RawSample] = []
    skipped = 0
    for position, (ts, value) in enumerate(zip(timestamps, values)):
        if pd.isna(ts) or pd.isna(value):
            skipped += 1
            continue
        sample_id = ids.iloc[position] if ids is not None else f"row-{position}"
        samples.append(RawSample(timestamp=ts.to_pydatetime(), value=float(value), id=sample_id))
    if skipped:
        LOGGER.warning("Dropped %s rows without a valid timestamp or value", skipped)
    return samples


def samples_to_frame(samples: Sequence[RawSample]) -> pd.DataFrame:
    if not samples:
        return pd.DataFrame(columns=SAMPLE_COLUMNS)
    frame = pd.DataFrame(
        {
            "id": [sample.id for sample in samples],
            "timestamp": [sample.timestamp for sample in samples],
            "value": [sample.value for sample in samples],
        }
    )
    frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
    return frame


def read_samples(path: Path | str) -> List[RawSample]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sample file not found: {path}")
    if path.suffix == ".parquet":
        frame = pd.read_parquet(path)
    else:
        frame = pd.read_csv(path)
    LOGGER.info("Read %s rows from %s", len(frame), path.as_posix())
    return frame_to_samples(frame)


def write_samples(samples: Sequence[RawSample], path: Path | str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = samples_to_frame(samples)
    LOGGER.info("Writing %s samples to %s", len(frame), path.as_posix())
    if path.suffix == ".parquet":
        frame.to_parquet(path, index=False)
    else:
        frame.to_csv(path, index=False)


class FrameSampleSource:
    """Serve ``fetch(range)`` from an in-memory sample table."""

    def __init__(self, frame: pd.DataFrame) -> None:
        self._samples = sorted(frame_to_samples(frame), key=lambda sample: sample.timestamp)
        self._times = [sample.timestamp for sample in self._samples]
        self.calls: List[TimeRange] = []

    @classmethod
    def from_path(cls, path: Path | str) -> "FrameSampleSource":
        return cls(samples_to_frame(read_samples(path)))

    def __len__(self) -> int:
        return len(self._samples)

    async def __call__(self, time_range: TimeRange) -> List[RawSample]:
        self.calls.append(time_range)
        lo = bisect_left(self._times, time_range.start)
        hi = bisect_left(self._times, time_range.end)
        return self._samples[lo:hi]
