"""Sliding window over the loaded history with backward paging."""
from __future__ import annotations

import asyncio
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from ..entries import RawSample, TimeRange
from ..periods import Period, parse_period, period_spec
from ..services.axis import visible_axis_dates
from ..utils.logging import get_logger
from ..utils.time import Calendar, as_utc, now_utc

LOGGER = get_logger(__name__)

DEFAULT_LOAD_THRESHOLD = 0.3
DEFAULT_INITIAL_PAGES = 2

Fetcher = Callable[[TimeRange], Awaitable[Optional[Sequence[RawSample]]]]
PageListener = Callable[[TimeRange, List[RawSample]], None]
StateListener = Callable[["WindowState"], None]


class WindowState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"


class WindowManager:
    """Track one contiguous loaded range and page older history into it.

    The loaded range only grows backward; its end stays at the anchor
    given at construction or :meth:`reset`. At most one fetch is in flight:
    starting a new load cancels the previous task and bumps a generation
    counter, and a result is committed only if its generation is still
    current. Fetch errors leave the range untouched and return to idle.

    All methods must be called from the event loop that owns the chart.
    """

    def __init__(
        self,
        period: Period | str,
        fetcher: Fetcher,
        *,
        anchor: Optional[datetime] = None,
        calendar: Optional[Calendar] = None,
        load_threshold: float = DEFAULT_LOAD_THRESHOLD,
        initial_pages: int = DEFAULT_INITIAL_PAGES,
        on_page: Optional[PageListener] = None,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        if not 0.0 < load_threshold < 1.0:
            raise ValueError("load_threshold must be between 0 and 1")
        self.period = parse_period(period)
        self.page_size = period_spec(self.period).page_size
        self.calendar = calendar or Calendar("UTC")
        self.load_threshold = float(load_threshold)
        self.initial_pages = max(1, int(initial_pages))
        self._fetcher = fetcher
        self._on_page = on_page
        self._on_state_change = on_state_change
        self._loaded_range = self._initial_range(anchor)
        self._state = WindowState.IDLE
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._initial_loaded = False

    @property
    def loaded_range(self) -> TimeRange:
        return self._loaded_range

    @property
    def state(self) -> WindowState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is WindowState.LOADING

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def initial_loaded(self) -> bool:
        return self._initial_loaded

    def normalized_position(self, date: datetime) -> float:
        """Position of ``date`` in the loaded range, 0 at the oldest edge."""

        duration = self._loaded_range.duration.total_seconds()
        if duration <= 0:
            return 0.0
        offset = (as_utc(date) - self._loaded_range.start).total_seconds()
        return offset / duration

    def on_scroll_position_changed(self, date: datetime) -> Optional[asyncio.Task]:
        if self.is_loading:
            return None
        if self.normalized_position(date) < self.load_threshold:
            return self.load_more_history()
        return None

    def load_initial(self) -> asyncio.Task:
        """Fetch the whole initial range without extending it."""

        return self._start_load(self._loaded_range, extend=False)

    def load_more_history(self) -> asyncio.Task:
        """Fetch one page before the loaded range, superseding any in-flight load."""

        start = self._loaded_range.start
        page = TimeRange(start - self.page_size, start)
        return self._start_load(page, extend=True)

    def reset(self, date: Optional[datetime] = None) -> None:
        self._invalidate()
        self._loaded_range = self._initial_range(date)
        self._initial_loaded = False
        self._set_state(WindowState.IDLE)

    def close(self) -> None:
        """Cancel outstanding work and detach the page and state listeners."""

        self._on_page = None
        self._on_state_change = None
        self._invalidate()
        self._set_state(WindowState.IDLE)

    async def wait_idle(self) -> None:
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    def visible_axis_dates(self, visible_range: TimeRange, desired_count: Optional[int] = None) -> List[datetime]:
        spec = period_spec(self.period)
        count = spec.desired_mark_count if desired_count is None else desired_count
        return visible_axis_dates(visible_range, spec.bin_unit, self.calendar, count)

    def _initial_range(self, anchor: Optional[datetime]) -> TimeRange:
        end = as_utc(anchor) if anchor is not None else now_utc()
        return TimeRange(end - self.page_size * self.initial_pages, end)

    def _invalidate(self) -> None:
        self._generation += 1
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    def _start_load(self, page: TimeRange, *, extend: bool) -> asyncio.Task:
        self._invalidate()
        generation = self._generation
        self._set_state(WindowState.LOADING)
        task = asyncio.get_running_loop().create_task(self._run_load(generation, page, extend))
        self._task = task
        return task

    async def _run_load(self, generation: int, page: TimeRange, extend: bool) -> None:
        try:
            fetched = await self._fetcher(page)
        except asyncio.CancelledError:
            LOGGER.debug("Load for %s cancelled", page)
            raise
        except Exception as exc:
            if generation == self._generation:
                LOGGER.warning("Fetch for %s failed: %s", page, exc, exc_info=True)
                self._finish(generation)
            return
        if generation != self._generation:
            LOGGER.debug("Discarding superseded page %s", page)
            return

        samples = list(fetched or [])
        if extend:
            self._loaded_range = TimeRange(page.start, self._loaded_range.end)
        else:
            self._initial_loaded = True
        LOGGER.debug("Committed %s samples for %s (period=%s)", len(samples), page, self.period.value)
        try:
            if self._on_page is not None:
                self._on_page(page, samples)
        finally:
            self._finish(generation)

    def _finish(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._task = None
        self._set_state(WindowState.IDLE)

    def _set_state(self, state: WindowState) -> None:
        if state is self._state:
            return
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)
