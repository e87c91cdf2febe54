"""TTL-based in-memory response cache.

Entries expire lazily: :meth:`ResponseCache.lookup` checks the expiry
instant on every read and simply stops returning stale entries. There is no
background sweep and no size bound; an expired entry lingers until the same
fingerprint is stored again or the cache is cleared.

Cache keys are produced by :func:`fingerprint` from the request method, URL,
a SHA-256 hash of the body, and the query parameters serialised as JSON with
sorted keys, so identical requests always resolve to the same entry
regardless of parameter ordering, and the key is stable across processes.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from offlinekit.models import NetworkRequest, NetworkResponse

logger = logging.getLogger(__name__)


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def fingerprint(request: NetworkRequest) -> str:
    """Derive the cache key for *request*.

    Args:
        request: The request to fingerprint.

    Returns:
        ``"METHOD:url:body_hash:query_json"``. ``body_hash`` is empty when
        the request has no body.
    """
    if request.body is None:
        body_hash = ""
    else:
        body_hash = hashlib.sha256(_canonical_json(request.body).encode()).hexdigest()
    query = _canonical_json(request.query_params or {})
    return f"{request.method.value}:{request.url}:{body_hash}:{query}"


@dataclass(frozen=True)
class CacheEntry:
    """A cached response and the instant after which it is no longer live.

    ``expires_at`` is expressed on the cache's clock (``time.monotonic`` by
    default), not wall-clock time.
    """

    response: NetworkResponse
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class ResponseCache:
    """Map from request fingerprint to a timestamped response.

    The cache is policy-agnostic: :meth:`store` inserts whatever it is given.
    Callers decide which responses are eligible.

    Args:
        clock: Zero-argument callable returning the current time in seconds.
            Tests inject a fake clock to step past TTLs.

    Example::

        cache = ResponseCache()
        key = fingerprint(request)
        cache.store(key, response, ttl_seconds=300)
        entry = cache.lookup(key)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry stored under *key*, or ``None``.

        Args:
            key: A fingerprint produced by :func:`fingerprint`.

        Returns:
            The :class:`CacheEntry` if present and not expired, otherwise
            ``None``.
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache miss: %s", key)
            return None
        if entry.is_expired(self._clock()):
            logger.debug("Cache entry expired: %s", key)
            return None
        logger.debug("Cache hit: %s", key)
        return entry

    def store(self, key: str, response: NetworkResponse, ttl_seconds: float) -> CacheEntry:
        """Insert or overwrite the entry for *key*.

        Args:
            key: A fingerprint produced by :func:`fingerprint`.
            response: The response to cache.
            ttl_seconds: Lifetime of the entry, counted from now.

        Returns:
            The stored :class:`CacheEntry`.
        """
        entry = CacheEntry(response=response, expires_at=self._clock() + ttl_seconds)
        self._entries[key] = entry
        return entry

    def clear(self) -> None:
        """Remove all entries, live or expired."""
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``size`` (all stored entries) and ``live``
            (entries that have not yet expired).
        """
        now = self._clock()
        live = sum(1 for entry in self._entries.values() if not entry.is_expired(now))
        return {"size": len(self._entries), "live": live}

    def __len__(self) -> int:
        return len(self._entries)
