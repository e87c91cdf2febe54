"""Canonical Pydantic models shared across all offlinekit modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Request/response and policy models** -- immutable values passed through the
offline client:
    :class:`HTTPMethod`, :class:`NetworkRequest`, :class:`NetworkResponse`,
    :class:`CachePolicy`, and :class:`RetryPolicy`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`QueueBackend`, :class:`QueueConfig`, :class:`RequestConfig`,
    :class:`OutputConfig`, and :class:`GlobalConfig`.

All models use Pydantic v2. The value models are ``frozen`` so that a request
captured in the offline queue cannot be mutated behind the queue's back.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Request / response values ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods understood by the offline client.

    Only :attr:`GET` responses are ever cached, and only non-GET requests are
    queued while offline.
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class NetworkRequest(BaseModel):
    """A single request to be executed by a transport.

    Requests are identified for caching and queueing by their fingerprint
    (see :func:`~offlinekit.cache.fingerprint`), never by identity.

    The retry, queueing, caching and priority fields are carried along with
    the request and survive persistence, but the offline client acts on the
    effective :class:`CachePolicy` and :class:`RetryPolicy` passed to
    :meth:`~offlinekit.client.OfflineClient.execute` instead. ``priority`` in
    particular does not reorder the offline queue, which always drains FIFO.

    Example::

        NetworkRequest(
            method=HTTPMethod.POST,
            url="https://api.example.com/notes",
            body={"text": "hello"},
            headers={"Content-Type": "application/json"},
        )
    """

    model_config = ConfigDict(frozen=True)

    method: HTTPMethod
    url: str
    body: Any = Field(default=None, description="JSON-compatible payload, or raw bytes")
    headers: Optional[dict[str, str]] = None
    query_params: Optional[dict[str, Any]] = None
    retry_on_failure: bool = False
    max_retries: int = Field(default=3, ge=0)
    queue_offline: bool = False
    priority: int = Field(default=0, description="Higher is more important; not used for ordering")
    cache_response: bool = False
    cache_ttl_seconds: Optional[float] = None
    timeout_seconds: Optional[float] = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    def __str__(self) -> str:
        return f"{self.method.value} {self.url}"


class NetworkResponse(BaseModel):
    """A response returned by a transport.

    Treated as opaque data by the offline client: it is cached and handed
    back to callers, never interpreted.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Transport-specific details (elapsed time, URL, ...)"
    )

    @property
    def is_success(self) -> bool:
        """Whether the status code is in the 2xx range."""
        return 200 <= self.status_code < 300


# --- Policies ---


class CachePolicy(BaseModel):
    """How responses to GET requests are cached."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Serve and store cached GET responses")
    ttl_seconds: float = Field(default=300.0, ge=0, description="Cache entry lifetime in seconds")


class RetryPolicy(BaseModel):
    """How failed attempts are retried.

    With ``exponential_backoff`` the delay before retry *n* (1-indexed) is
    ``base_delay_seconds * n``. The growth is linear despite the name.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    base_delay_seconds: float = Field(default=0.4, ge=0)
    exponential_backoff: bool = True


DISABLED_CACHE_POLICY = CachePolicy(enabled=False, ttl_seconds=0)
"""Opts a single call out of caching. Queued writes always drain with it."""

NO_RETRY_POLICY = RetryPolicy(max_retries=0, base_delay_seconds=0, exponential_backoff=False)
"""Exactly one attempt, no delay."""


# --- Configuration ---


class QueueBackend(str, enum.Enum):
    """Storage backends for the offline queue."""

    MEMORY = "memory"
    FILE = "file"
    DISKCACHE = "diskcache"


class QueueConfig(BaseModel):
    """Offline queue persistence settings stored in :class:`GlobalConfig`."""

    backend: QueueBackend = Field(
        default=QueueBackend.FILE, description="Queue store: memory, file, diskcache"
    )
    path: Optional[str] = Field(
        default=None,
        description="File (file backend) or directory (diskcache backend); "
        "defaults to the data directory",
    )


class RequestConfig(BaseModel):
    """Default transport settings applied to every request."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/offlinekit/config.json``.

    Loaded and saved by :func:`~offlinekit.config.load_global_config` and
    :func:`~offlinekit.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~offlinekit.config.resolve_config`
    for the full precedence chain.
    """

    base_url: Optional[str] = Field(
        default=None, description="Prefix for relative request URLs"
    )
    cache: CachePolicy = Field(default_factory=CachePolicy)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    features: dict[str, bool] = Field(
        default_factory=lambda: {"offline_networking": True},
        description="Feature flags; offline_networking=false makes the client a pass-through",
    )
