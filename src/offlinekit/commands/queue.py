"""Queue commands -- inspect, drain and clear the persisted offline queue.

Provides the ``offlinekit queue`` sub-command group. All three commands act
on the store selected by the resolved configuration (``queue.backend`` /
``queue.path``, or ``--queue-backend`` / ``--queue-path``).
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import typer

from offlinekit.commands.runtime import get_config, is_forced, open_client
from offlinekit.events import QueueEvent, QueueEventType
from offlinekit.exit_codes import EXIT_GENERIC_FAILURE
from offlinekit.models import GlobalConfig, NetworkRequest, QueueBackend, QueueConfig
from offlinekit.output import info, print_table, success, warning
from offlinekit.queue import create_store

queue_app = typer.Typer(no_args_is_help=True)

_BODY_PREVIEW = 40


@queue_app.command("list")
def queue_list(ctx: typer.Context) -> None:
    """List queued requests in replay order.

    Example::

        offlinekit queue list
        offlinekit --json queue list
    """
    config = get_config(ctx)
    _warn_if_memory(config.queue)
    requests = asyncio.run(_load(config.queue))
    if not requests:
        info("Offline queue is empty.")
        return

    rows = [
        [
            str(position),
            request.method.value,
            request.url,
            _preview(request.body),
            str(request.priority),
        ]
        for position, request in enumerate(requests, start=1)
    ]
    print_table(["#", "Method", "URL", "Body", "Priority"], rows, title="Offline queue")


@queue_app.command("drain")
def queue_drain(ctx: typer.Context) -> None:
    """Replay every queued request, in order, through the offline client.

    Each request is tried with the configured retry policy. Requests that
    still fail are reported and dropped from the queue; they are not
    queued again.

    Raises:
        typer.Exit: With code 1 if any request failed.

    Example::

        offlinekit queue drain
    """
    config = get_config(ctx)
    _warn_if_memory(config.queue)
    succeeded, failed = asyncio.run(_drain(config))
    if not succeeded and not failed:
        info("Offline queue is empty.")
        return

    for request, exc in failed:
        warning(f"{request} failed and was dropped: {exc}")
    if failed:
        info(f"Replayed {len(succeeded)} request(s), {len(failed)} failed.")
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)
    success(f"Replayed {len(succeeded)} request(s).")


@queue_app.command("clear")
def queue_clear(ctx: typer.Context) -> None:
    """Discard every queued request without sending it.

    Asks for confirmation unless ``--force`` is active.

    Example::

        offlinekit --force queue clear
    """
    config = get_config(ctx)
    if not is_forced(ctx):
        confirmed = typer.confirm("Discard all queued requests?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    asyncio.run(_clear(config.queue))
    success("Offline queue cleared.")


# ------------------------------------------------------------------ #
# Async helpers
# ------------------------------------------------------------------ #


async def _load(queue_config: QueueConfig) -> list[NetworkRequest]:
    store = create_store(queue_config)
    try:
        await store.initialize()
        return await store.load()
    finally:
        store.close()


async def _clear(queue_config: QueueConfig) -> None:
    store = create_store(queue_config)
    try:
        await store.initialize()
        await store.clear()
    finally:
        store.close()


async def _drain(
    config: GlobalConfig,
) -> tuple[list[NetworkRequest], list[tuple[NetworkRequest, BaseException]]]:
    """Drain the persisted queue and return the replayed and failed requests."""
    succeeded: list[NetworkRequest] = []
    failed: list[tuple[NetworkRequest, BaseException]] = []

    def _on_event(event: QueueEvent) -> None:
        if event.type == QueueEventType.ITEM_SUCCEEDED and event.request is not None:
            succeeded.append(event.request)
        elif event.type == QueueEventType.ITEM_FAILED and event.request is not None:
            failed.append((event.request, event.error))

    async with open_client(config) as client:
        client.add_listener(_on_event)
        client.set_online(True)
        await client.wait_idle()
    return succeeded, failed


def _warn_if_memory(queue_config: QueueConfig) -> None:
    if queue_config.backend == QueueBackend.MEMORY:
        warning("The memory queue backend keeps nothing between commands")


def _preview(body: Any) -> str:  # noqa: ANN401
    if body is None:
        return ""
    text = body if isinstance(body, str) else json.dumps(body, ensure_ascii=False, default=str)
    if len(text) > _BODY_PREVIEW:
        return text[: _BODY_PREVIEW - 3] + "..."
    return text
