"""Feature flag registry.

The offline client consults a single flag, :data:`OFFLINE_NETWORKING`,
before doing anything else: when it is off, every request is handed straight
to the transport with no caching, retrying or queueing. Any object with an
``is_enabled(name) -> bool`` method can stand in for :class:`FeatureFlags`.
"""

from __future__ import annotations

from typing import Mapping, Optional, Protocol

OFFLINE_NETWORKING = "offline_networking"
"""Gates cache, retry and offline-queue behaviour of the offline client."""

DEFAULT_FLAGS: dict[str, bool] = {
    OFFLINE_NETWORKING: True,
}


class FlagSource(Protocol):
    """Anything that can answer whether a named feature is on."""

    def is_enabled(self, name: str) -> bool: ...


class FeatureFlags:
    """Read-only view of configured flags over the defaults.

    Unknown flags read as disabled.

    Args:
        flags: Initial values layered over :data:`DEFAULT_FLAGS`, typically
            :attr:`~offlinekit.models.GlobalConfig.features`.
    """

    def __init__(self, flags: Optional[Mapping[str, bool]] = None) -> None:
        self._flags = dict(DEFAULT_FLAGS)
        if flags:
            self._flags.update(flags)

    def is_enabled(self, name: str) -> bool:
        return self._flags.get(name) is True

    def all(self) -> dict[str, bool]:
        """Return a copy of every known flag and its value."""
        return dict(self._flags)
