"""Request execution for offlinekit.

:class:`OfflineClient` adds caching, retries and the offline queue on top of
any :class:`Transport`. :class:`HttpxTransport` is the default transport.
"""

from offlinekit.client.offline_client import OfflineClient
from offlinekit.client.transport import HttpxTransport, Transport

__all__ = ["OfflineClient", "HttpxTransport", "Transport"]
