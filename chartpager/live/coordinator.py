"""View-state machine that wires paging, aggregation and slicing together."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, List, Optional, Set, Tuple

from ..config import Settings
from ..entries import AggregatedBin, ChartStatistics, RawSample, TimeRange, VisibleWindow, YDomain
from ..periods import Period, parse_period, period_spec
from ..services.aggregator import aggregate, compute_statistics, slice_bins
from ..services.axis import compute_y_domain, visible_axis_dates
from ..utils.logging import get_logger
from ..utils.time import Calendar, as_utc, now_utc
from .debounce import Debouncer
from .monitor import Monitor
from .window import Fetcher, WindowManager, WindowState

LOGGER = get_logger(__name__)


class ChartPhase(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True)
class ChartSnapshot:
    """Read-only view of everything the rendering layer may observe."""

    period: Period
    phase: ChartPhase
    scroll_position: datetime
    selection: Optional[datetime]
    selected_bin: Optional[AggregatedBin]
    visible_bins: Tuple[AggregatedBin, ...]
    statistics: ChartStatistics
    y_domain: YDomain
    is_loading: bool
    loaded_range: TimeRange


class ChartCoordinator:
    """Own the chart's observable state and orchestrate paging and aggregation.

    Intents (:meth:`set_period`, :meth:`set_scroll_position`,
    :meth:`set_selection`, :meth:`reset`) are the only mutation path.
    Every state change is published through :attr:`monitor` as
    ``(event, ChartSnapshot)``. Scroll updates are debounced before they
    reach the window manager; fetched pages are de-duplicated by sample id
    and the whole sample set is re-aggregated.

    The coordinator is confined to the event loop it is used from.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        period: Optional[Period | str] = None,
        settings: Optional[Settings] = None,
        calendar: Optional[Calendar] = None,
        anchor: Optional[datetime] = None,
        monitor: Optional[Monitor] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.calendar = calendar or Calendar(self.settings.calendar.timezone)
        self.monitor = monitor or Monitor()
        self._fetcher = fetcher
        self._period = parse_period(period or self.settings.view.default_period)
        self._scroll_position = as_utc(anchor) if anchor is not None else now_utc()
        self._selection: Optional[datetime] = None
        self._raw_samples: List[RawSample] = []
        self._sample_ids: Set[str] = set()
        self._all_bins: List[AggregatedBin] = []
        self._visible_bins: List[AggregatedBin] = []
        self._statistics = ChartStatistics()
        self._phase = ChartPhase.EMPTY
        self._debouncer = Debouncer(self.settings.view.debounce_ms, self._apply_scroll_position)
        self._window = self._build_window(self._scroll_position)
        self._update_visible()

    # -- observable state -------------------------------------------------

    @property
    def period(self) -> Period:
        return self._period

    @property
    def phase(self) -> ChartPhase:
        return self._phase

    @property
    def scroll_position(self) -> datetime:
        return self._scroll_position

    @property
    def selection(self) -> Optional[datetime]:
        return self._selection

    @property
    def visible_bins(self) -> Tuple[AggregatedBin, ...]:
        return tuple(self._visible_bins)

    @property
    def all_bins(self) -> Tuple[AggregatedBin, ...]:
        return tuple(self._all_bins)

    @property
    def raw_samples(self) -> Tuple[RawSample, ...]:
        return tuple(self._raw_samples)

    @property
    def statistics(self) -> ChartStatistics:
        return self._statistics

    @property
    def is_loading(self) -> bool:
        return self._window.is_loading

    @property
    def loaded_range(self) -> TimeRange:
        return self._window.loaded_range

    @property
    def window_manager(self) -> WindowManager:
        return self._window

    @property
    def visible_window(self) -> VisibleWindow:
        return VisibleWindow.around(
            self._scroll_position,
            period_spec(self._period).visible_length,
            self.settings.view.buffer_multiplier,
        )

    @property
    def selected_bin(self) -> Optional[AggregatedBin]:
        """Visible bin whose midpoint is nearest the selection; ties keep the earliest."""

        if self._selection is None or not self._visible_bins:
            return None
        selection = self._selection
        return min(
            self._visible_bins,
            key=lambda entry: abs((entry.display_date - selection).total_seconds()),
        )

    @property
    def y_domain(self) -> YDomain:
        return compute_y_domain(
            (entry.sum for entry in self._visible_bins),
            floor=self.settings.domain.floor_for(self._period),
            headroom=self.settings.view.headroom,
        )

    @property
    def axis_dates(self) -> List[datetime]:
        spec = period_spec(self._period)
        return visible_axis_dates(
            self.visible_window.visible_range,
            spec.bin_unit,
            self.calendar,
            spec.desired_mark_count,
        )

    def snapshot(self) -> ChartSnapshot:
        return ChartSnapshot(
            period=self._period,
            phase=self._phase,
            scroll_position=self._scroll_position,
            selection=self._selection,
            selected_bin=self.selected_bin,
            visible_bins=self.visible_bins,
            statistics=self._statistics,
            y_domain=self.y_domain,
            is_loading=self.is_loading,
            loaded_range=self.loaded_range,
        )

    def subscribe(self, listener: Callable[[str, ChartSnapshot], None]) -> Callable[[], None]:
        return self.monitor.subscribe(listener)

    # -- intents ----------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Fetch the initial loaded range."""

        return self._window.load_initial()

    def set_period(self, period: Period | str) -> Optional[asyncio.Task]:
        period = parse_period(period)
        if period is self._period:
            return None
        LOGGER.info("Switching period %s -> %s", self._period.value, period.value)
        self._debouncer.cancel()
        self._window.close()
        self._period = period
        self._all_bins = []
        self._visible_bins = []
        self._statistics = ChartStatistics()
        self._set_phase(ChartPhase.EMPTY)
        self._window = self._build_window(self._scroll_position)
        self._reaggregate()
        self._notify("period")
        return self._window.load_initial()

    def set_scroll_position(self, date: datetime) -> None:
        date = as_utc(date)
        if date == self._scroll_position:
            return
        self._scroll_position = date
        self._notify("scroll")
        self._debouncer.schedule(self._scroll_position)

    def scroll_to(self, date: datetime) -> None:
        self.set_scroll_position(date)

    def scroll_to_today(self) -> None:
        self.set_scroll_position(now_utc())

    def set_selection(self, date: Optional[datetime]) -> None:
        self._selection = as_utc(date) if date is not None else None
        self._notify("selection")

    def clear_selection(self) -> None:
        self.set_selection(None)

    def reset(self, date: Optional[datetime] = None) -> asyncio.Task:
        """Drop every held sample and restart paging around ``date``."""

        date = as_utc(date) if date is not None else now_utc()
        self._debouncer.cancel()
        self._raw_samples = []
        self._sample_ids = set()
        self._selection = None
        self._scroll_position = date
        self._reaggregate()
        self._set_phase(ChartPhase.EMPTY)
        self._window.reset(date)
        self._notify("reset")
        return self._window.load_initial()

    def load_samples(self, samples: Iterable[RawSample]) -> None:
        """Replace the sample buffer directly, bypassing the fetch collaborator."""

        self._raw_samples = []
        self._sample_ids = set()
        self._merge(samples)
        self._reaggregate()
        self._set_phase(ChartPhase.READY)
        self._notify("samples")

    async def settle(self) -> None:
        """Wait until no debounced scroll or page load is outstanding."""

        while self._debouncer.pending or self._window.is_loading:
            await self._debouncer.flush()
            await self._window.wait_idle()

    def close(self) -> None:
        self._debouncer.cancel()
        self._window.close()

    # -- internals --------------------------------------------------------

    def _build_window(self, anchor: datetime) -> WindowManager:
        return WindowManager(
            self._period,
            self._fetcher,
            anchor=anchor,
            calendar=self.calendar,
            load_threshold=self.settings.window.load_threshold,
            initial_pages=self.settings.window.initial_pages,
            on_page=self._on_page_loaded,
            on_state_change=self._on_window_state,
        )

    def _apply_scroll_position(self, date: datetime) -> None:
        if not self._window.initial_loaded and not self._window.is_loading:
            self._window.load_initial()
        else:
            self._window.on_scroll_position_changed(date)
        self._update_visible()
        self._notify("visible")

    def _on_page_loaded(self, page: TimeRange, samples: List[RawSample]) -> None:
        added = self._merge(samples)
        LOGGER.debug("Page %s added %s of %s samples", page, added, len(samples))
        if added:
            self._reaggregate()
            self._notify("data")

    def _on_window_state(self, state: WindowState) -> None:
        if state is WindowState.LOADING:
            self._set_phase(ChartPhase.LOADING)
        elif self._phase is not ChartPhase.EMPTY:
            # idle reported by a reset stays empty until the reload starts
            self._set_phase(ChartPhase.READY)

    def _merge(self, samples: Iterable[RawSample]) -> int:
        added = 0
        for sample in samples:
            if sample.id in self._sample_ids:
                continue
            self._sample_ids.add(sample.id)
            self._raw_samples.append(sample)
            added += 1
        if added:
            self._raw_samples.sort(key=lambda sample: sample.timestamp)
        return added

    def _reaggregate(self) -> None:
        self._all_bins = aggregate(self._raw_samples, self._period, self.calendar)
        self._statistics = compute_statistics(self._all_bins)
        self._update_visible()

    def _update_visible(self) -> None:
        self._visible_bins = slice_bins(self._all_bins, self.visible_window)

    def _set_phase(self, phase: ChartPhase) -> None:
        if phase is self._phase:
            return
        self._phase = phase
        self._notify("phase")

    def _notify(self, event: str) -> None:
        if self.monitor.listeners:
            self.monitor.emit(event, self.snapshot())
