"""Queue lifecycle events and the dispatcher that delivers them.

The offline client reports what happens to its queue through
:class:`QueueEvent` objects handed to every registered listener, in
registration order:

* ``ENQUEUED`` -- a request was queued while offline.
* ``PERSISTED`` / ``PERSIST_FAILED`` -- a queue snapshot was (or could not
  be) saved. A failed save never fails the enqueue itself; the queue stays
  valid in memory.
* ``DRAIN_STARTED`` / ``DRAIN_FINISHED`` -- a drain pass began or ended.
* ``ITEM_SUCCEEDED`` / ``ITEM_FAILED`` -- one queued request was replayed.

A listener that raises is logged and skipped so that it cannot break the
queue it is observing.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from offlinekit.models import NetworkRequest

logger = logging.getLogger(__name__)


class QueueEventType(str, enum.Enum):
    ENQUEUED = "enqueued"
    PERSISTED = "persisted"
    PERSIST_FAILED = "persist_failed"
    DRAIN_STARTED = "drain_started"
    ITEM_SUCCEEDED = "item_succeeded"
    ITEM_FAILED = "item_failed"
    DRAIN_FINISHED = "drain_finished"


@dataclass
class QueueEvent:
    """Something that happened to the offline queue.

    Attributes:
        type: What happened.
        request: The request concerned, for per-item events.
        queue_size: Number of requests still queued when the event fired.
        error: The exception behind ``PERSIST_FAILED`` and ``ITEM_FAILED``.
        timestamp: When the event was created (UTC).
    """

    type: QueueEventType
    request: Optional[NetworkRequest] = None
    queue_size: int = 0
    error: Optional[BaseException] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[QueueEvent], None]


class EventDispatcher:
    """Delivers :class:`QueueEvent` objects to listeners in registration order."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def add(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove(self, listener: Listener) -> None:
        """Unregister *listener*. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: QueueEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                logger.warning("Queue event listener failed on %s: %s", event.type.value, exc)
