"""Offline-aware request orchestrator.

:class:`OfflineClient` sits in front of a :class:`~offlinekit.client.Transport`
and decides the fate of each request:

1. **Pass-through** -- when a flag source is attached and the
   ``offline_networking`` flag is off, the request goes straight to the
   transport.
2. **Cache hit** -- a live cached response for the same fingerprint is
   returned without touching the transport.
3. **Queue** -- while offline, non-GET requests are appended to a FIFO queue,
   persisted, and the caller waits until a later drain replays them.
4. **Attempt** -- otherwise the request runs through the retry engine;
   successful GET responses are cached.

Connectivity is never probed: the host application reports it through
:meth:`OfflineClient.set_online`. Going online starts a drain that replays
queued requests one at a time, in the order they were queued. Each queued
request is attempted once per drain (with the default retry policy) and its
caller receives the outcome; a failed request is not requeued and does not
hold up the requests behind it.

All state is owned by one event loop. Queue and cache mutations happen
between await points, so no lock is needed for them; only persistence saves
are serialised with an :class:`asyncio.Lock` so that snapshots reach the
store in the order they were taken.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from offlinekit.cache import ResponseCache, fingerprint
from offlinekit.events import EventDispatcher, Listener, QueueEvent, QueueEventType
from offlinekit.flags import OFFLINE_NETWORKING, FlagSource
from offlinekit.models import (
    DISABLED_CACHE_POLICY,
    CachePolicy,
    HTTPMethod,
    NetworkRequest,
    NetworkResponse,
    RetryPolicy,
)
from offlinekit.queue import MemoryQueueStore, QueuedRequest, QueueStore
from offlinekit.retry import Sleep, run_with_retry

from offlinekit.client.transport import Transport

logger = logging.getLogger(__name__)


class OfflineClient:
    """Cache, retry and offline-queue layer over a transport.

    Construct one per application (there is no global instance) and pass it
    to whatever needs to make requests.

    Args:
        transport: Performs the actual requests.
        store: Persists the offline queue. Defaults to a non-durable
            :class:`~offlinekit.queue.MemoryQueueStore`.
        flags: Optional flag source. When given, the ``offline_networking``
            flag must be on for caching, retrying and queueing to apply.
        cache_policy: Default cache policy for :meth:`execute`.
        retry_policy: Default retry policy for :meth:`execute` and for
            draining the queue.
        cache: Response cache to use; a fresh one by default.
        sleep: Awaitable sleep used between retries.

    Example::

        async with HttpxTransport(base_url="https://api.example.com") as transport:
            client = OfflineClient(transport, store=FileQueueStore(path))
            await client.initialize()
            client.set_online(False)
            pending = asyncio.create_task(
                client.execute(NetworkRequest(method="POST", url="/notes", body={"text": "hi"}))
            )
            ...
            client.set_online(True)   # replays the POST; ``pending`` resolves
    """

    def __init__(
        self,
        transport: Transport,
        store: Optional[QueueStore] = None,
        flags: Optional[FlagSource] = None,
        cache_policy: Optional[CachePolicy] = None,
        retry_policy: Optional[RetryPolicy] = None,
        cache: Optional[ResponseCache] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._store = store if store is not None else MemoryQueueStore()
        self._flags = flags
        self.default_cache_policy = cache_policy if cache_policy is not None else CachePolicy()
        self.default_retry_policy = retry_policy if retry_policy is not None else RetryPolicy()
        self._cache = cache if cache is not None else ResponseCache()
        self._sleep = sleep

        self._queue: list[QueuedRequest] = []
        self._online = True
        self._draining = False
        self._drain_task: Optional[asyncio.Task] = None
        self._persist_lock = asyncio.Lock()
        self._persist_tasks: set[asyncio.Task] = set()
        self._events = EventDispatcher()

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def is_draining(self) -> bool:
        return self._draining

    @property
    def pending(self) -> tuple[NetworkRequest, ...]:
        """Queued requests in the order they will be replayed."""
        return tuple(q.request for q in self._queue)

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def store(self) -> QueueStore:
        return self._store

    def add_listener(self, listener: Listener) -> None:
        """Register a callback receiving every :class:`~offlinekit.events.QueueEvent`."""
        self._events.add(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._events.remove(listener)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def initialize(self) -> None:
        """Prepare the store and restore any persisted queue.

        Restored requests are appended behind anything already queued. Their
        futures have no waiting caller; they are replayed on the next drain
        like any other queued request.

        Raises:
            PersistenceError: If the store cannot be read.
        """
        await self._store.initialize()
        restored = await self._store.load()
        for request in restored:
            self._queue.append(QueuedRequest(request))
        if restored:
            logger.info("Restored %d queued request(s) from %s", len(restored), type(self._store).__name__)

    def set_online(self, online: bool) -> None:
        """Report connectivity.

        Reporting ``True`` starts a drain of the queue unless one is already
        running. Must be called from within the running event loop.
        """
        if online != self._online:
            logger.info("Connectivity changed: %s", "online" if online else "offline")
        self._online = online
        if online:
            self._start_drain()

    async def wait_idle(self) -> None:
        """Wait until no persistence save or drain is in flight."""
        while True:
            pending: list[asyncio.Task] = list(self._persist_tasks)
            if self._drain_task is not None and not self._drain_task.done():
                pending.append(self._drain_task)
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        """Wait for in-flight work, then release the store.

        Requests still queued stay in the store for the next
        :meth:`initialize`. Their callers in this process are left waiting.
        """
        await self.wait_idle()
        self._store.close()

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def execute(
        self,
        request: NetworkRequest,
        cache_policy: Optional[CachePolicy] = None,
        retry_policy: Optional[RetryPolicy] = None,
        queue_if_offline: bool = True,
    ) -> NetworkResponse:
        """Execute *request* through the cache, the queue, or the transport.

        Args:
            request: The request to execute.
            cache_policy: Overrides :attr:`default_cache_policy` for this call.
                Pass :data:`~offlinekit.models.DISABLED_CACHE_POLICY` to skip
                the cache entirely.
            retry_policy: Overrides :attr:`default_retry_policy` for this call.
            queue_if_offline: Queue non-GET requests while offline. When
                ``False`` the request is attempted (and will usually fail)
                even though the client is offline.

        Returns:
            The response: cached, fresh, or replayed from the queue. For a
            queued request this call does not return until a drain has
            replayed it.

        Raises:
            Exception: The failure of the last attempt, unchanged. For queued
                requests, the failure of the drain attempt.
        """
        if self._flags is not None and not self._flags.is_enabled(OFFLINE_NETWORKING):
            return await self._transport.request(request)

        applied_cache = cache_policy if cache_policy is not None else self.default_cache_policy
        applied_retry = retry_policy if retry_policy is not None else self.default_retry_policy

        key = fingerprint(request)
        if applied_cache.enabled:
            entry = self._cache.lookup(key)
            if entry is not None:
                return entry.response

        if not self._online and queue_if_offline and request.method != HTTPMethod.GET:
            queued = self._enqueue(request)
            # Shielded: a caller giving up must not cancel the queue slot.
            return await asyncio.shield(queued.future)

        return await self._attempt(request, applied_cache, applied_retry, key)

    async def _attempt(
        self,
        request: NetworkRequest,
        cache_policy: CachePolicy,
        retry_policy: RetryPolicy,
        key: str,
    ) -> NetworkResponse:
        response = await run_with_retry(
            lambda: self._transport.request(request), retry_policy, sleep=self._sleep,
        )
        if cache_policy.enabled and request.method == HTTPMethod.GET:
            self._cache.store(key, response, cache_policy.ttl_seconds)
        return response

    # ------------------------------------------------------------------ #
    # Queue
    # ------------------------------------------------------------------ #

    def _enqueue(self, request: NetworkRequest) -> QueuedRequest:
        queued = QueuedRequest(request)
        self._queue.append(queued)
        logger.info("Offline: queued %s (%d pending)", request, len(self._queue))
        self._events.emit(
            QueueEvent(QueueEventType.ENQUEUED, request=request, queue_size=len(self._queue))
        )
        self._schedule_persist()
        return queued

    def _schedule_persist(self) -> None:
        snapshot = [q.request for q in self._queue]
        task = asyncio.get_running_loop().create_task(self._persist(snapshot))
        self._persist_tasks.add(task)
        task.add_done_callback(self._persist_tasks.discard)

    async def _persist(self, snapshot: list[NetworkRequest]) -> bool:
        """Save *snapshot*, reporting instead of raising on failure.

        The queue in memory stays authoritative when a save fails; the next
        successful save catches the store up.
        """
        async with self._persist_lock:
            try:
                await self._store.save(snapshot)
            except Exception as exc:
                logger.warning("Failed to persist offline queue (%d request(s)): %s", len(snapshot), exc)
                self._events.emit(
                    QueueEvent(QueueEventType.PERSIST_FAILED, queue_size=len(snapshot), error=exc)
                )
                return False
        self._events.emit(QueueEvent(QueueEventType.PERSISTED, queue_size=len(snapshot)))
        return True

    def _start_drain(self) -> None:
        if self._draining or not self._queue:
            return
        self._draining = True
        self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        logger.debug("Draining offline queue (%d pending)", len(self._queue))
        self._events.emit(QueueEvent(QueueEventType.DRAIN_STARTED, queue_size=len(self._queue)))
        succeeded = failed = 0
        try:
            while self._queue and self._online:
                queued = self._queue.pop(0)
                queued.attempts += 1
                try:
                    response = await self._attempt(
                        queued.request,
                        DISABLED_CACHE_POLICY,
                        self.default_retry_policy,
                        fingerprint(queued.request),
                    )
                except Exception as exc:
                    failed += 1
                    logger.warning("Queued request %s failed: %s", queued.request, exc)
                    queued.reject(exc)
                    self._events.emit(
                        QueueEvent(
                            QueueEventType.ITEM_FAILED,
                            request=queued.request,
                            queue_size=len(self._queue),
                            error=exc,
                        )
                    )
                else:
                    succeeded += 1
                    logger.debug("Queued request %s replayed: %d", queued.request, response.status_code)
                    queued.resolve(response)
                    self._events.emit(
                        QueueEvent(
                            QueueEventType.ITEM_SUCCEEDED,
                            request=queued.request,
                            queue_size=len(self._queue),
                        )
                    )
            await self._persist([q.request for q in self._queue])
        finally:
            self._draining = False

        logger.info(
            "Drain finished: %d succeeded, %d failed, %d still queued",
            succeeded, failed, len(self._queue),
        )
        self._events.emit(QueueEvent(QueueEventType.DRAIN_FINISHED, queue_size=len(self._queue)))

        # Connectivity may have dropped and returned while the last item was
        # in flight; that set_online(True) found a drain running.
        if self._online and self._queue:
            self._start_drain()
