"""offlinekit -- offline-first HTTP requests for asyncio applications.

This package wraps any request transport with three behaviours: a TTL
response cache keyed by request fingerprint, a retry engine with linear
backoff, and a persistent FIFO queue that holds non-GET requests while the
application reports itself offline and replays them once it is back online.

Typical use::

    async with HttpxTransport(base_url="https://api.example.com") as transport:
        client = OfflineClient(transport, store=FileQueueStore(path))
        await client.initialize()
        response = await client.execute(NetworkRequest(method="GET", url="/notes"))

The ``offlinekit`` command line tool exposes the same client for sending
requests and managing a durable queue.

Modules:
    models: Pydantic models for requests, responses, policies and config.
    cache: Response cache and request fingerprints.
    retry: Retry engine.
    queue: Queued requests and pluggable queue stores.
    client: Transports and the offline client.
    flags: Feature flag registry.
    events: Queue lifecycle events.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    app: Typer application and CLI entry point.
"""

__version__ = "0.1.0"
