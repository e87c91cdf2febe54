"""The in-memory representation of a queued request."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from offlinekit.models import NetworkRequest, NetworkResponse


@dataclass
class QueuedRequest:
    """A request held back while offline.

    The ``future`` is a single-assignment result channel: the drain step
    writes it exactly once (:meth:`resolve` or :meth:`reject`), and the
    original caller of :meth:`~offlinekit.client.OfflineClient.execute`
    reads it. Writes after the first are ignored.

    Must be created while an event loop is running, since the future is
    bound to it.

    Attributes:
        request: The request to replay.
        enqueued_at: When the request entered the queue (UTC).
        attempts: Number of drain passes that dequeued this item.
        future: Resolved with the replayed response or the final failure.
    """

    request: NetworkRequest
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attempts: int = 0
    future: Optional[asyncio.Future] = None

    def __post_init__(self) -> None:
        if self.future is None:
            self.future = asyncio.get_running_loop().create_future()
        # Requests restored from a store, or whose caller went away, have no
        # reader; mark their failure as retrieved so asyncio does not log it.
        self.future.add_done_callback(_retrieve_exception)

    @property
    def done(self) -> bool:
        return self.future.done()

    def resolve(self, response: NetworkResponse) -> None:
        if not self.future.done():
            self.future.set_result(response)

    def reject(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


def _retrieve_exception(future: asyncio.Future) -> None:
    if not future.cancelled():
        future.exception()
