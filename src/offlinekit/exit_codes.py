"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~offlinekit.exceptions.OfflinekitError` subclass.
Shell scripts driving the ``offlinekit`` CLI can inspect the exit code to
tell a rejected request from an unreachable server without parsing stderr.

Example::

    $ offlinekit send GET https://api.example.com/users/42
    $ echo $?
    4   # EXIT_NOT_FOUND -- the server answered 404
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The server rejected the request's credentials (HTTP 401/403)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The server answered with an HTTP 5xx error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CLIENT_ERROR = 7
"""The server rejected the request with another HTTP 4xx status."""

EXIT_PERSISTENCE_ERROR = 8
"""The offline queue could not be read from or written to its store."""
