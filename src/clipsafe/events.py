import logging
from collections.abc import Callable
from dataclasses import asdict
from typing import Any

from clipsafe.models import Progress

logger = logging.getLogger(__name__)

PROGRESS_EVENT = "progress"

Listener = Callable[[str, Any], None]


class EventBus:
    """Broadcasts named events to every subscribed listener.

    Emitting is fire-and-forget: a listener that raises is logged and the
    remaining listeners still receive the event.
    """

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: str, payload: Any = None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                logger.exception("Listener failed for event %s", event)

    def emit_progress(self, label: str, total: int, current: int) -> None:
        self.emit(PROGRESS_EVENT, asdict(Progress(label=label, total=total, current=current)))
