"""Offline request queue: queued items and pluggable persistence.

Classes:
    :class:`QueuedRequest` -- a request waiting for connectivity, plus the
    single-assignment future its original caller awaits.
    :class:`QueueStore` -- the persistence contract (``initialize``,
    ``load``, ``save``, ``clear``).
    :class:`MemoryQueueStore` -- non-durable default.
    :class:`FileQueueStore` -- atomic JSON file.
    :class:`DiskQueueStore` -- :mod:`diskcache` directory.

Use :func:`create_store` to build the store selected by a
:class:`~offlinekit.models.QueueConfig`.
"""

from offlinekit.queue.models import QueuedRequest
from offlinekit.queue.serialization import (
    deserialize_queue,
    deserialize_request,
    serialize_queue,
    serialize_request,
)
from offlinekit.queue.store import (
    DiskQueueStore,
    FileQueueStore,
    MemoryQueueStore,
    QueueStore,
    create_store,
)

__all__ = [
    "QueuedRequest",
    "QueueStore",
    "MemoryQueueStore",
    "FileQueueStore",
    "DiskQueueStore",
    "create_store",
    "serialize_request",
    "deserialize_request",
    "serialize_queue",
    "deserialize_queue",
]
