"""
Relay Channel
=============

Real-time link between the voice page that produces orders and the cashier
pages that consume them.

- **hub**: server-side fan-out to every other connected peer
- **endpoint**: client connection with fixed-interval reconnection
- **reconnect**: retry policy and injectable schedulers
"""

from .hub import RelayHub
from .endpoint import RelayEndpoint, websockets_connector
from .reconnect import AsyncioScheduler, ManualScheduler, ReconnectPolicy

__all__ = [
    "RelayHub",
    "RelayEndpoint",
    "websockets_connector",
    "AsyncioScheduler",
    "ManualScheduler",
    "ReconnectPolicy",
]
