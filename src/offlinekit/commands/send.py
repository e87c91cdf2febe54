"""Send command -- one request through the offline client.

``offlinekit send`` builds a :class:`~offlinekit.models.NetworkRequest` from
its arguments and executes it with the cache and retry policies from the
resolved configuration. With ``--offline`` the request is queued in the
configured durable store instead, to be replayed later by
``offlinekit queue drain``.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from typing import Any, List, Optional

import typer

from offlinekit.commands.runtime import get_config, open_client
from offlinekit.events import QueueEvent, QueueEventType
from offlinekit.exceptions import InvalidUsageError, PersistenceError
from offlinekit.flags import OFFLINE_NETWORKING, FeatureFlags
from offlinekit.models import (
    DISABLED_CACHE_POLICY,
    GlobalConfig,
    HTTPMethod,
    NetworkRequest,
    NetworkResponse,
    QueueBackend,
)
from offlinekit.output import debug, format_response, info, success, warning


def send_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method (GET, POST, PUT, PATCH, DELETE, ...)."),
    url: str = typer.Argument(help="Absolute URL, or a path relative to base_url."),
    body: Optional[str] = typer.Option(
        None, "--body", "-d", help="Request body. Parsed as JSON when possible."
    ),
    param: Optional[List[str]] = typer.Option(
        None, "--param", "-p", help="Query parameter as key=value. Repeatable."
    ),
    header: Optional[List[str]] = typer.Option(
        None, "--header", "-H", help="Header as 'Name: value'. Repeatable."
    ),
    offline: bool = typer.Option(
        False, "--offline", help="Queue the request instead of sending it."
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Bypass the response cache."
    ),
) -> None:
    """Send a request, or queue it with ``--offline``.

    The response body goes to stdout; the status line goes to stderr.

    Raises:
        InvalidUsageError: On an unknown method or malformed ``--param`` /
            ``--header``.
        TransportError: When the request still fails after retries.

    Example::

        offlinekit send GET https://api.example.com/notes -p limit=10
        offlinekit send POST /notes -d '{"text": "hi"}' --offline
    """
    config = get_config(ctx)
    request = build_request(method, url, body, param or [], header or [])

    if offline:
        if not FeatureFlags(config.features).is_enabled(OFFLINE_NETWORKING):
            raise InvalidUsageError(
                f"--offline needs the '{OFFLINE_NETWORKING}' feature; "
                f"run: offlinekit config set features.{OFFLINE_NETWORKING} true"
            )
        if request.method == HTTPMethod.GET:
            raise InvalidUsageError("GET requests are never queued; send them online")
        if config.queue.backend == QueueBackend.MEMORY:
            warning("The memory queue backend does not outlive this command")
        pending = asyncio.run(_queue(config, request))
        success(f"Queued {request} ({pending} pending)")
        return

    response = asyncio.run(_send(config, request, no_cache))
    info(f"{response.status_code} {response.metadata.get('reason_phrase', '')}".rstrip())
    debug(f"Response headers: {response.headers}")
    format_response(response.body)


def build_request(
    method: str,
    url: str,
    body: Optional[str],
    params: list[str],
    headers: list[str],
) -> NetworkRequest:
    """Turn raw CLI arguments into a :class:`NetworkRequest`.

    Raises:
        InvalidUsageError: On an unknown method or a malformed pair.
    """
    try:
        http_method = HTTPMethod(method.upper())
    except ValueError:
        raise InvalidUsageError(
            f"Unknown HTTP method '{method}' "
            f"(expected one of: {', '.join(m.value for m in HTTPMethod)})"
        ) from None

    query: dict[str, Any] = {}
    for item in params:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Invalid --param '{item}', expected key=value")
        query[key] = value

    header_map: dict[str, str] = {}
    for item in headers:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Invalid --header '{item}', expected 'Name: value'")
        header_map[name.strip()] = value.strip()

    return NetworkRequest(
        method=http_method,
        url=url,
        body=_parse_body(body),
        headers=header_map or None,
        query_params=query or None,
    )


def _parse_body(body: Optional[str]) -> Any:  # noqa: ANN401
    """Parse *body* as JSON if possible, returning the raw string on failure."""
    if body is None:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return body


async def _send(config: GlobalConfig, request: NetworkRequest, no_cache: bool) -> NetworkResponse:
    async with open_client(config) as client:
        return await client.execute(
            request, cache_policy=DISABLED_CACHE_POLICY if no_cache else None
        )


async def _queue(config: GlobalConfig, request: NetworkRequest) -> int:
    """Enqueue *request*, wait for the save, and return the queue length.

    Raises:
        PersistenceError: If the queue could not be saved.
    """
    save_errors: list[BaseException] = []

    def _on_event(event: QueueEvent) -> None:
        if event.type == QueueEventType.PERSIST_FAILED and event.error is not None:
            save_errors.append(event.error)

    async with open_client(config) as client:
        client.add_listener(_on_event)
        client.set_online(False)
        caller = asyncio.create_task(client.execute(request))
        # One loop turn lets execute() reach its queue slot.
        await asyncio.sleep(0)
        await client.wait_idle()
        # Nobody in this process waits for the replay.
        caller.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await caller
        if save_errors:
            raise PersistenceError(f"Request was not saved: {save_errors[-1]}")
        return client.pending_count
