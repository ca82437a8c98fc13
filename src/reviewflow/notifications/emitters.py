"""Basic notification emitters: no-op, recording, and fan-out."""

from __future__ import annotations

import logging

from reviewflow.core.exceptions import NotificationError
from reviewflow.core.protocols import INotificationEmitter
from reviewflow.models.events import EventType, ReviewEvent

logger = logging.getLogger(__name__)


class NullNotificationEmitter:
    """Drops every event."""

    def emit(self, event: ReviewEvent) -> None:
        return None


class RecordingNotificationEmitter:
    """Keeps emitted events in memory. Used by tests and local runs."""

    def __init__(self) -> None:
        self.events: list[ReviewEvent] = []

    def emit(self, event: ReviewEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[ReviewEvent]:
        return [e for e in self.events if e.type == event_type]


class CombinedNotificationEmitter:
    """Delivers to every child emitter; one failing child does not starve the others."""

    def __init__(self, emitters: list[INotificationEmitter]) -> None:
        self._emitters = list(emitters)

    def emit(self, event: ReviewEvent) -> None:
        failures: list[str] = []
        for emitter in self._emitters:
            try:
                emitter.emit(event)
            except Exception as exc:
                logger.warning(
                    "notification_child_failed",
                    extra={"emitter": type(emitter).__name__, "event_type": event.type.value},
                    exc_info=True,
                )
                failures.append(f"{type(emitter).__name__}: {exc}")
        if failures:
            raise NotificationError("; ".join(failures))
