"""Exception hierarchy for offlinekit.

All exceptions inherit from :class:`OfflinekitError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`offlinekit.exit_codes`.
The CLI entry point in :func:`offlinekit.app.main` catches
``OfflinekitError`` and exits with the appropriate code.

Transport failures are raised by :class:`~offlinekit.client.HttpxTransport`
and travel through the retry engine and the offline queue *unchanged*: the
caller of :meth:`~offlinekit.client.OfflineClient.execute` receives the very
exception object raised by the last failed attempt.

Subclass hierarchy::

    OfflinekitError (exit 1)
    +-- InvalidUsageError     (exit 2)
    +-- ConfigError           (exit 1)
    +-- PersistenceError      (exit 8)
    +-- TransportError        (exit 1)
        +-- AuthError         (exit 3)
        +-- NotFoundError     (exit 4)
        +-- ServerError       (exit 5)
        +-- ConnectionError_  (exit 6)
        +-- ClientError       (exit 7)
"""

from __future__ import annotations

from typing import Optional

from offlinekit.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CLIENT_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PERSISTENCE_ERROR,
    EXIT_SERVER_ERROR,
)


class OfflinekitError(Exception):
    """Base exception for all offlinekit errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`offlinekit.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(OfflinekitError):
    """Raised for invalid CLI arguments (bad ``--param`` syntax, unknown method)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(OfflinekitError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE


class PersistenceError(OfflinekitError):
    """Raised when a queue store cannot read or write its durable medium."""

    exit_code = EXIT_PERSISTENCE_ERROR


class TransportError(OfflinekitError):
    """Base class for failures raised by a transport adapter.

    Args:
        message: Human-readable error description.
        status_code: HTTP status of the failed response, ``None`` for
            network-level failures.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(TransportError):
    """Raised when the server answers HTTP 401 or 403."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(TransportError):
    """Raised when the server answers HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(TransportError):
    """Raised when the server answers with an HTTP 5xx status."""

    exit_code = EXIT_SERVER_ERROR


class ClientError(TransportError):
    """Raised for any other HTTP 4xx status."""

    exit_code = EXIT_CLIENT_ERROR


class ConnectionError_(TransportError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR
