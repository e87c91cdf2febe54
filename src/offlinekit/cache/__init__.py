"""In-memory response caching for offlinekit.

This package provides :class:`ResponseCache`, a TTL-based map from request
fingerprint to response, and :func:`fingerprint`, which derives the cache
key from a :class:`~offlinekit.models.NetworkRequest`.

The cache is owned by :class:`~offlinekit.client.OfflineClient`, which
decides what is eligible for caching (successful GET responses while the
effective :class:`~offlinekit.models.CachePolicy` is enabled).
"""

from offlinekit.cache.cache import CacheEntry, ResponseCache, fingerprint

__all__ = ["CacheEntry", "ResponseCache", "fingerprint"]
