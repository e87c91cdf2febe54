"""Pluggable persistence for the offline queue.

A :class:`QueueStore` persists the *entire* pending queue on every
:meth:`~QueueStore.save` -- saves replace, they never append -- and hands
back whatever was last saved from :meth:`~QueueStore.load`. The offline
client snapshots its queue before each save and serialises saves, so a store
only has to make each individual save atomic.

Three implementations ship:

* :class:`MemoryQueueStore` -- a plain copy of the last saved list. Not
  durable; the default when nothing else is configured.
* :class:`FileQueueStore` -- a JSON document replaced atomically via
  :func:`~offlinekit.config.atomic_write`.
* :class:`DiskQueueStore` -- a :class:`diskcache.Cache` directory holding
  the queue under a single key.

Blocking I/O in the durable stores runs in a worker thread
(:func:`asyncio.to_thread`) so the event loop keeps serving other requests.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

import diskcache

from offlinekit.config import atomic_write, default_queue_path
from offlinekit.exceptions import PersistenceError
from offlinekit.models import NetworkRequest, QueueBackend, QueueConfig
from offlinekit.queue.serialization import deserialize_queue, serialize_queue

logger = logging.getLogger(__name__)


class QueueStore(ABC):
    """Durable representation of the pending offline queue."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the underlying storage. Safe to call more than once."""

    @abstractmethod
    async def load(self) -> list[NetworkRequest]:
        """Return the last saved queue, or an empty list if nothing was saved."""

    @abstractmethod
    async def save(self, requests: Sequence[NetworkRequest]) -> None:
        """Replace the persisted queue with *requests*."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove the persisted queue."""

    def close(self) -> None:
        """Release any resources held by the store."""


class MemoryQueueStore(QueueStore):
    """Non-durable store: ``load`` is only meaningful within one process."""

    def __init__(self) -> None:
        self._buffer: list[NetworkRequest] = []

    async def initialize(self) -> None:
        pass

    async def load(self) -> list[NetworkRequest]:
        return list(self._buffer)

    async def save(self, requests: Sequence[NetworkRequest]) -> None:
        self._buffer = list(requests)

    async def clear(self) -> None:
        self._buffer = []


class FileQueueStore(QueueStore):
    """Queue persisted as a single JSON file.

    Each save writes a temporary file next to *path* and renames it over the
    previous queue, so readers see either the old or the new queue, never a
    mix of both.

    Args:
        path: Location of the queue file. Parent directories are created on
            :meth:`initialize`.

    Example::

        store = FileQueueStore(Path("~/.local/share/offlinekit/queue.json").expanduser())
        await store.initialize()
        await store.save([request])
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def initialize(self) -> None:
        await asyncio.to_thread(self._path.parent.mkdir, parents=True, exist_ok=True)

    async def load(self) -> list[NetworkRequest]:
        """Read the queue file.

        Raises:
            PersistenceError: If the file exists but cannot be read or
                parsed.
        """
        return await asyncio.to_thread(self._read)

    async def save(self, requests: Sequence[NetworkRequest]) -> None:
        text = json.dumps(serialize_queue(requests), indent=2) + "\n"
        try:
            await asyncio.to_thread(atomic_write, self._path, text)
        except OSError as exc:
            raise PersistenceError(f"Cannot write queue file {self._path}: {exc}") from exc

    async def clear(self) -> None:
        await asyncio.to_thread(self._path.unlink, missing_ok=True)

    def _read(self) -> list[NetworkRequest]:
        if not self._path.is_file():
            return []
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Cannot read queue file {self._path}: {exc}") from exc
        return deserialize_queue(document)


class DiskQueueStore(QueueStore):
    """Queue persisted in a :mod:`diskcache` directory.

    The serialised queue document is stored under a single key, so each save
    is one SQLite transaction.

    Args:
        directory: The diskcache directory. Opened lazily by
            :meth:`initialize`.
    """

    _KEY = "offline_queue"

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._cache: Optional[diskcache.Cache] = None

    @property
    def directory(self) -> Path:
        return self._directory

    async def initialize(self) -> None:
        if self._cache is None:
            self._cache = await asyncio.to_thread(diskcache.Cache, str(self._directory))

    async def load(self) -> list[NetworkRequest]:
        cache = self._require_open()
        document = await asyncio.to_thread(cache.get, self._KEY)
        if document is None:
            return []
        return deserialize_queue(document)

    async def save(self, requests: Sequence[NetworkRequest]) -> None:
        cache = self._require_open()
        await asyncio.to_thread(cache.set, self._KEY, serialize_queue(requests))

    async def clear(self) -> None:
        cache = self._require_open()
        await asyncio.to_thread(cache.delete, self._KEY)

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None

    def _require_open(self) -> diskcache.Cache:
        if self._cache is None:
            raise PersistenceError("DiskQueueStore used before initialize()")
        return self._cache


def create_store(config: QueueConfig) -> QueueStore:
    """Build the queue store selected by *config*.

    Args:
        config: Backend choice and optional location. When ``path`` is unset
            the store lives in the data directory
            (:func:`~offlinekit.config.default_queue_path`).

    Returns:
        An uninitialised :class:`QueueStore`.
    """
    if config.backend == QueueBackend.MEMORY:
        return MemoryQueueStore()
    path = Path(config.path).expanduser() if config.path else default_queue_path(config.backend)
    logger.debug("Using %s queue store at %s", config.backend.value, path)
    if config.backend == QueueBackend.DISKCACHE:
        return DiskQueueStore(path)
    return FileQueueStore(path)
