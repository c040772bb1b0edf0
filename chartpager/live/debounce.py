"""Coalesce bursts of updates so only the latest value is acted on."""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional


class Debouncer:
    """Deliver the most recent scheduled value after a quiet period.

    Scheduling cancels any pending delivery. A delay of zero delivers
    synchronously; otherwise :meth:`schedule` must be called from inside a
    running event loop.
    """

    def __init__(self, delay_ms: int, action: Callable[[Any], None]) -> None:
        self.delay = max(0, int(delay_ms)) / 1000.0
        self._action = action
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, value: Any) -> None:
        self.cancel()
        if self.delay <= 0:
            self._action(value)
            return
        self._task = asyncio.get_running_loop().create_task(self._deliver(value))

    def cancel(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    async def flush(self) -> None:
        """Wait for the pending delivery, if any, to run."""

        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def _deliver(self, value: Any) -> None:
        await asyncio.sleep(self.delay)
        self._task = None
        self._action(value)
