"""Transport adapters: the boundary between the offline client and the wire.

A transport performs exactly one request and either returns a
:class:`~offlinekit.models.NetworkResponse` or raises. It has no retry,
caching or queueing of its own; those belong to
:class:`~offlinekit.client.OfflineClient`, which treats any exception from a
transport as a failed attempt.

:class:`HttpxTransport` is the implementation shipped out of the box. It
wraps :class:`httpx.AsyncClient` and maps unsuccessful responses onto the
:class:`~offlinekit.exceptions.TransportError` hierarchy.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from offlinekit.exceptions import (
    AuthError,
    ClientError,
    ConnectionError_,
    NotFoundError,
    ServerError,
    TransportError,
)
from offlinekit.models import NetworkRequest, NetworkResponse


@runtime_checkable
class Transport(Protocol):
    """Performs one request. Raises on non-2xx responses and network failures."""

    async def request(self, request: NetworkRequest) -> NetworkResponse: ...


class HttpxTransport:
    """Transport backed by :class:`httpx.AsyncClient`.

    Must be used as an async context manager unless an already-open
    ``client`` is supplied, in which case the caller keeps ownership of it.

    Args:
        base_url: Prefix for relative request URLs.
        timeout: Default timeout in seconds; a request's own
            ``timeout_seconds`` wins when set.
        verify: Verify SSL certificates.
        client: Pre-built client (e.g. one using :class:`httpx.MockTransport`
            in tests).

    Example::

        async with HttpxTransport(base_url="https://api.example.com") as transport:
            client = OfflineClient(transport)
            response = await client.execute(NetworkRequest(method="GET", url="/users"))
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        verify: bool = True,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._verify = verify
        self._client = client
        self._owns_client = client is None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpxTransport:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                verify=self._verify,
                follow_redirects=True,
            )
            self._owns_client = True
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    async def request(self, request: NetworkRequest) -> NetworkResponse:
        """Send *request* and return the parsed response.

        Dict and list bodies are sent as JSON, strings and bytes as raw
        content, and other scalars as JSON.

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ClientError: On any other 4xx.
            TransportError: On any other non-2xx status left after redirects.
            ServerError: On 5xx.
            ConnectionError_: On network / timeout errors.
        """
        if self._client is None:
            raise RuntimeError("Transport not opened -- use as async context manager")

        kwargs: dict[str, Any] = {
            "method": request.method.value,
            "url": request.url,
            "headers": request.headers,
            "params": request.query_params,
        }
        if request.timeout_seconds is not None:
            kwargs["timeout"] = request.timeout_seconds
        if isinstance(request.body, (str, bytes)):
            kwargs["content"] = request.body
        elif request.body is not None:
            kwargs["json"] = request.body

        try:
            response = await self._client.request(**kwargs)
        except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
            raise ConnectionError_(f"{request}: {exc}") from exc

        body = _parse_body(response)
        self._map_response_error(request, response.status_code, body)
        return NetworkResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=body,
            metadata={
                "url": str(response.url),
                "reason_phrase": response.reason_phrase,
            },
        )

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _map_response_error(request: NetworkRequest, status: int, body: Any) -> None:
        """Raise a typed exception for error HTTP status codes."""
        if 200 <= status < 300:
            return

        if isinstance(body, dict):
            msg = body.get("message") or body.get("error") or body.get("detail") or ""
        elif body:
            msg = str(body)[:200]
        else:
            msg = ""

        prefix = f"HTTP {status} for {request}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status in (401, 403):
            raise AuthError(full_msg, status_code=status)
        if status == 404:
            raise NotFoundError(full_msg, status_code=status)
        if status >= 500:
            raise ServerError(full_msg, status_code=status)
        if status >= 400:
            raise ClientError(full_msg, status_code=status)
        raise TransportError(full_msg, status_code=status)


def _parse_body(response: httpx.Response) -> Any:
    """Return the JSON payload of *response*, falling back to its text."""
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text
