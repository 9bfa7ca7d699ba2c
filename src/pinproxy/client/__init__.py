"""Request dispatcher for pinproxy.

Provides :class:`PinboardClient`, a blocking client backed by
:class:`httpx.Client` that checks every request against the allow-list,
the response cache, and the cooldown policy before sending it.

Example::

    from pinproxy.client import PinboardClient

    with PinboardClient(config) as client:
        result = client.perform("posts/get", {"tag": "python"})
"""

from pinproxy.client.sync_client import PinboardClient, request_fingerprint

__all__ = ["PinboardClient", "request_fingerprint"]
