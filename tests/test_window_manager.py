import asyncio
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from chartpager.entries import RawSample, TimeRange
from chartpager.live.window import WindowManager, WindowState

UTC = timezone.utc
ANCHOR = datetime(2024, 6, 1, tzinfo=UTC)


class RecordingFetcher:
    def __init__(self, fail: int = 0) -> None:
        self.calls: List[TimeRange] = []
        self.fail = fail

    async def __call__(self, time_range: TimeRange) -> List[RawSample]:
        self.calls.append(time_range)
        if self.fail > 0:
            self.fail -= 1
            raise RuntimeError("source unavailable")
        return [RawSample(timestamp=time_range.start, value=1.0, id=f"s-{time_range.start.isoformat()}")]


class GatedFetcher:
    """Blocks every fetch until ``release`` is called."""

    def __init__(self) -> None:
        self.calls: List[TimeRange] = []
        self.gate = asyncio.Event()

    def release(self) -> None:
        self.gate.set()

    async def __call__(self, time_range: TimeRange) -> List[RawSample]:
        self.calls.append(time_range)
        await self.gate.wait()
        return [RawSample(timestamp=time_range.start, value=2.0, id=f"g-{time_range.start.isoformat()}")]


class StubbornFetcher:
    """Ignores cancellation and still returns a page."""

    def __init__(self) -> None:
        self.calls: List[TimeRange] = []

    async def __call__(self, time_range: TimeRange) -> List[RawSample]:
        self.calls.append(time_range)
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            pass
        return [RawSample(timestamp=time_range.start, value=3.0, id="stale")]


def _manager(fetcher, **kwargs) -> tuple[WindowManager, list, list]:
    pages: list = []
    states: list = []
    manager = WindowManager(
        "day",
        fetcher,
        anchor=ANCHOR,
        on_page=lambda page, samples: pages.append((page, samples)),
        on_state_change=states.append,
        **kwargs,
    )
    return manager, pages, states


def test_initial_range_spans_initial_pages() -> None:
    manager, _, _ = _manager(RecordingFetcher(), initial_pages=3)

    assert manager.loaded_range == TimeRange(ANCHOR - timedelta(days=3), ANCHOR)
    assert manager.state is WindowState.IDLE
    assert not manager.initial_loaded


def test_load_threshold_must_be_a_fraction() -> None:
    for threshold in (0.0, 1.0, -0.2):
        with pytest.raises(ValueError):
            WindowManager("day", RecordingFetcher(), anchor=ANCHOR, load_threshold=threshold)


def test_normalized_position() -> None:
    manager, _, _ = _manager(RecordingFetcher())

    assert manager.normalized_position(ANCHOR - timedelta(days=2)) == 0.0
    assert manager.normalized_position(ANCHOR - timedelta(days=1)) == 0.5
    assert manager.normalized_position(ANCHOR) == 1.0


def test_scrolling_near_the_oldest_edge_fetches_one_page() -> None:
    async def runner():
        fetcher = RecordingFetcher()
        manager, pages, states = _manager(fetcher)
        await manager.load_initial()
        assert manager.initial_loaded

        manager.on_scroll_position_changed(ANCHOR - timedelta(days=1.5))
        await manager.wait_idle()
        return fetcher, manager, pages, states

    fetcher, manager, pages, states = asyncio.run(runner())

    assert fetcher.calls == [
        TimeRange(ANCHOR - timedelta(days=2), ANCHOR),
        TimeRange(ANCHOR - timedelta(days=3), ANCHOR - timedelta(days=2)),
    ]
    assert manager.loaded_range == TimeRange(ANCHOR - timedelta(days=3), ANCHOR)
    assert [page for page, _ in pages] == fetcher.calls
    assert states == [WindowState.LOADING, WindowState.IDLE, WindowState.LOADING, WindowState.IDLE]
    assert manager.state is WindowState.IDLE


def test_scrolling_in_the_middle_does_not_fetch() -> None:
    async def runner():
        fetcher = RecordingFetcher()
        manager, _, _ = _manager(fetcher)
        result = manager.on_scroll_position_changed(ANCHOR - timedelta(hours=12))
        return fetcher, manager, result

    fetcher, manager, result = asyncio.run(runner())

    assert result is None
    assert fetcher.calls == []
    assert manager.loaded_range == TimeRange(ANCHOR - timedelta(days=2), ANCHOR)


def test_scroll_is_ignored_while_loading() -> None:
    async def runner():
        fetcher = GatedFetcher()
        manager, pages, _ = _manager(fetcher)
        task = manager.load_more_history()
        await asyncio.sleep(0)
        assert manager.is_loading
        assert manager.on_scroll_position_changed(ANCHOR - timedelta(days=2)) is None
        fetcher.release()
        await task
        return fetcher, manager, pages

    fetcher, manager, pages = asyncio.run(runner())

    assert len(fetcher.calls) == 1
    assert len(pages) == 1
    assert manager.loaded_range.start == ANCHOR - timedelta(days=3)


def test_failed_fetch_leaves_range_untouched(caplog: pytest.LogCaptureFixture) -> None:
    async def runner():
        fetcher = RecordingFetcher(fail=1)
        manager, pages, states = _manager(fetcher)
        with caplog.at_level("WARNING"):
            await manager.load_more_history()
        after_failure = manager.loaded_range
        await manager.load_more_history()
        return manager, pages, states, after_failure

    manager, pages, states, after_failure = asyncio.run(runner())

    assert after_failure == TimeRange(ANCHOR - timedelta(days=2), ANCHOR)
    assert manager.loaded_range.start == ANCHOR - timedelta(days=3)
    assert len(pages) == 1
    assert states == [WindowState.LOADING, WindowState.IDLE, WindowState.LOADING, WindowState.IDLE]
    assert "failed" in caplog.text


def test_newer_load_supersedes_in_flight_one() -> None:
    async def runner():
        fetcher = GatedFetcher()
        manager, pages, _ = _manager(fetcher)
        first = manager.load_more_history()
        await asyncio.sleep(0)
        second = manager.load_more_history()
        await asyncio.sleep(0)
        fetcher.release()
        await asyncio.gather(first, second, return_exceptions=True)
        return manager, pages, first

    manager, pages, first = asyncio.run(runner())

    assert first.cancelled()
    assert manager.generation == 2
    assert len(pages) == 1
    assert manager.loaded_range.start == ANCHOR - timedelta(days=3)


def test_reset_discards_results_that_ignore_cancellation() -> None:
    async def runner():
        fetcher = StubbornFetcher()
        manager, pages, states = _manager(fetcher)
        task = manager.load_more_history()
        await asyncio.sleep(0)
        manager.reset(ANCHOR + timedelta(days=10))
        await task
        return manager, pages, states

    manager, pages, states = asyncio.run(runner())

    assert pages == []
    new_anchor = ANCHOR + timedelta(days=10)
    assert manager.loaded_range == TimeRange(new_anchor - timedelta(days=2), new_anchor)
    assert not manager.initial_loaded
    assert states == [WindowState.LOADING, WindowState.IDLE]


def test_close_cancels_in_flight_load() -> None:
    async def runner():
        fetcher = GatedFetcher()
        manager, pages, _ = _manager(fetcher)
        task = manager.load_initial()
        await asyncio.sleep(0)
        manager.close()
        await asyncio.gather(task, return_exceptions=True)
        await manager.wait_idle()
        return manager, pages, task

    manager, pages, task = asyncio.run(runner())

    assert task.cancelled()
    assert pages == []
    assert manager.state is WindowState.IDLE
    assert not manager.initial_loaded


def test_window_axis_dates_follow_period_unit() -> None:
    manager, _, _ = _manager(RecordingFetcher())
    visible = TimeRange(ANCHOR - timedelta(hours=6), ANCHOR)

    dates = manager.visible_axis_dates(visible, desired_count=3)

    assert dates == [ANCHOR - timedelta(hours=h) for h in (6, 4, 2)]
