"""Client construction shared by the CLI commands.

Every command that touches the network or the queue builds its objects from
the :class:`~offlinekit.models.GlobalConfig` resolved by
:func:`~offlinekit.app.main_callback`, so that ``--queue-backend``,
``OFFLINEKIT_BASE_URL`` and the ``features`` table apply uniformly.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import typer

from offlinekit.client import HttpxTransport, OfflineClient
from offlinekit.flags import FeatureFlags
from offlinekit.models import GlobalConfig
from offlinekit.queue import create_store


def get_config(ctx: typer.Context) -> GlobalConfig:
    """Return the config resolved by the root callback.

    Falls back to a fresh :func:`~offlinekit.config.resolve_config` when the
    command runs without the root callback (e.g. mounted on another app).

    Raises:
        ConfigError: If the root callback could not resolve the config.
    """
    if ctx.obj:
        if ctx.obj.get("config_error") is not None:
            raise ctx.obj["config_error"]
        if ctx.obj.get("config") is not None:
            return ctx.obj["config"]
    from offlinekit.config import resolve_config

    return resolve_config()


def is_forced(ctx: typer.Context) -> bool:
    return bool(ctx.obj.get("force", False)) if ctx.obj else False


@asynccontextmanager
async def open_client(config: GlobalConfig) -> AsyncIterator[OfflineClient]:
    """Yield an initialised :class:`OfflineClient` wired from *config*.

    The persisted queue is loaded on entry. On exit the client waits for
    in-flight saves and drains, then the transport and store are closed.
    """
    async with HttpxTransport(
        base_url=config.base_url or "",
        timeout=config.request.timeout,
        verify=config.request.verify_ssl,
    ) as transport:
        client = OfflineClient(
            transport,
            store=create_store(config.queue),
            flags=FeatureFlags(config.features),
            cache_policy=config.cache,
            retry_policy=config.retry,
        )
        try:
            await client.initialize()
            yield client
        finally:
            await client.close()
