"""Lossless JSON mapping for persisted queues.

Every :class:`~offlinekit.models.NetworkRequest` field is written, including
the ones the offline client does not act on (``priority``, ``max_retries``,
...), so that a queue saved by one process replays identically in another.

A persisted queue is the document::

    {"version": 1, "requests": [{"method": "POST", "url": "...", ...}, ...]}

A ``bytes`` body is written as base64 text and tagged with
``"body_encoding": "base64"`` so that it comes back as ``bytes``.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Iterable

from pydantic import ValidationError

from offlinekit.exceptions import PersistenceError
from offlinekit.models import NetworkRequest

FORMAT_VERSION = 1

_BODY_ENCODING = "body_encoding"
_BASE64 = "base64"


def serialize_request(request: NetworkRequest) -> dict[str, Any]:
    if not isinstance(request.body, bytes):
        return request.model_dump(mode="json")
    data = request.model_dump(mode="json", exclude={"body"})
    data["body"] = base64.b64encode(request.body).decode("ascii")
    data[_BODY_ENCODING] = _BASE64
    return data


def deserialize_request(data: dict[str, Any]) -> NetworkRequest:
    """Rebuild a request from :func:`serialize_request` output.

    Raises:
        PersistenceError: If *data* does not describe a valid request.
    """
    if not isinstance(data, dict):
        raise PersistenceError(f"Invalid queued request: {data!r}")
    data = dict(data)
    encoding = data.pop(_BODY_ENCODING, None)
    if encoding is not None:
        if encoding != _BASE64 or not isinstance(data.get("body"), str):
            raise PersistenceError(f"Invalid queued request: unknown body encoding {encoding!r}")
        try:
            data["body"] = base64.b64decode(data["body"], validate=True)
        except binascii.Error as exc:
            raise PersistenceError(f"Invalid queued request: bad base64 body: {exc}") from exc
    try:
        return NetworkRequest.model_validate(data)
    except ValidationError as exc:
        raise PersistenceError(f"Invalid queued request: {exc}") from exc


def serialize_queue(requests: Iterable[NetworkRequest]) -> dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "requests": [serialize_request(r) for r in requests],
    }


def deserialize_queue(document: Any) -> list[NetworkRequest]:
    """Rebuild the request list from a :func:`serialize_queue` document.

    Raises:
        PersistenceError: If the document is malformed or was written by an
            unknown format version.
    """
    if not isinstance(document, dict) or not isinstance(document.get("requests"), list):
        raise PersistenceError("Persisted queue is not a queue document")
    version = document.get("version")
    if version != FORMAT_VERSION:
        raise PersistenceError(f"Unsupported queue format version: {version}")
    return [deserialize_request(item) for item in document["requests"]]
