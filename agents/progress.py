"""Progress event channel for profile synthesis."""

import logging
from typing import Callable, List, Optional

from schemas.responses import ProgressEvent

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], None]


class ProgressReporter:
    """
    Ordered sequence of progress events.

    Percent never decreases, and nothing is emitted after a terminal
    (completed or failed) event.
    """

    def __init__(self, listener: Optional[ProgressListener] = None):
        self.listeners: List[ProgressListener] = [listener] if listener else []
        self.events: List[ProgressEvent] = []
        self._percent = 0.0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def percent(self) -> float:
        return self._percent

    def subscribe(self, listener: ProgressListener):
        self.listeners.append(listener)

    def emit(self, phase: str, percent: float, detail: Optional[str] = None) -> Optional[ProgressEvent]:
        """Publish an intermediate event; ignored once the channel is closed."""
        return self._publish(ProgressEvent(
            phase=phase,
            percent=max(self._percent, min(float(percent), 100.0)),
            detail=detail,
        ))

    def complete(self, phase: str = "done", detail: Optional[str] = None) -> Optional[ProgressEvent]:
        return self._publish(ProgressEvent(phase=phase, percent=100.0, terminal=True, detail=detail))

    def fail(self, detail: Optional[str] = None, phase: str = "failed") -> Optional[ProgressEvent]:
        return self._publish(ProgressEvent(
            phase=phase,
            percent=self._percent,
            terminal=True,
            failed=True,
            detail=detail,
        ))

    def _publish(self, event: ProgressEvent) -> Optional[ProgressEvent]:
        if self._closed:
            logger.debug(f"Dropping progress event after terminal state: {event.phase}")
            return None

        self._percent = event.percent
        self._closed = event.terminal
        self.events.append(event)

        for listener in self.listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Progress listener failed: {e}")
        return event
