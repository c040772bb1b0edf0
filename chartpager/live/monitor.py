"""Observer list used to publish chart state changes."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List

from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

Listener = Callable[[str, Any], None]


@dataclass
class Monitor:
    listeners: List[Listener] = field(default_factory=list)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable removes it again."""

        self.listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self.listeners:
                self.listeners.remove(listener)

        return _unsubscribe

    def emit(self, event: str, payload: Any) -> None:
        LOGGER.debug("%s | listeners=%s", event, len(self.listeners))
        for listener in list(self.listeners):
            listener(event, payload)
