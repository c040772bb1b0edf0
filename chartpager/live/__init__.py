"""Stateful paging and view coordination."""

from .coordinator import ChartCoordinator, ChartPhase, ChartSnapshot
from .debounce import Debouncer
from .monitor import Monitor
from .window import WindowManager, WindowState

__all__ = [
    "ChartCoordinator",
    "ChartPhase",
    "ChartSnapshot",
    "Debouncer",
    "Monitor",
    "WindowManager",
    "WindowState",
]
