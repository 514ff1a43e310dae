from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from typing import Any, Protocol

ZONE_CHANGE_EVENT = "zone-change"
PHASE_TRANSITION_EVENT = "phase-transition"

Notification = tuple[str, Any]
NotificationQueue = queue.Queue[Notification]


class EventSinkError(RuntimeError):
    pass


class EventSink(Protocol):
    def emit(self, event: str, payload: Any) -> None: ...


@dataclass
class QueueEventSink:
    notifications: NotificationQueue = field(default_factory=queue.Queue)

    def emit(self, event: str, payload: Any) -> None:
        try:
            self.notifications.put_nowait((event, payload))
        except queue.Full as exc:
            raise EventSinkError(f"failed to emit {event}") from exc

    def drain(self) -> list[Notification]:
        items: list[Notification] = []
        while True:
            try:
                items.append(self.notifications.get_nowait())
            except queue.Empty:
                return items


@dataclass
class LoggingEventSink:
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def emit(self, event: str, payload: Any) -> None:
        if payload:
            self.logger.info("%s: %s", event, getattr(payload, "value", payload))
        else:
            self.logger.info("%s", event)
