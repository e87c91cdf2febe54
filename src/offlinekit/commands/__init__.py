"""Built-in CLI sub-commands for offlinekit.

* :mod:`~offlinekit.commands.send` -- send one request through the offline
  client, or queue it for later.
* :mod:`~offlinekit.commands.queue` -- list, drain and clear the durable
  offline queue.
* :mod:`~offlinekit.commands.config` -- view and modify global settings.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``queue`` and ``config``) or a plain callback
function registered directly on the root app (for ``send``).
:mod:`~offlinekit.commands.runtime` builds the transport, store and client
those commands share.
"""
