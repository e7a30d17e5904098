"""
Consuming side of the relay: feeds ADD_ITEM events into a cashier cart.
"""

import logging

from .cart import CartAggregator
from .errors import MalformedPayload
from .relay.endpoint import RelayEndpoint
from .schemas.relay import ADD_ITEM, RelayMessage

logger = logging.getLogger(__name__)


class CashierSession:
    """One cashier page: a cart bound to a relay endpoint."""

    def __init__(self, cart: CartAggregator, endpoint: RelayEndpoint):
        self.cart = cart
        self.endpoint = endpoint
        self.connected = False
        endpoint.on_receive(self.handle_message)
        endpoint.on_status(self._on_status)

    async def start(self) -> None:
        await self.endpoint.start()

    async def stop(self) -> None:
        await self.endpoint.close()

    def _on_status(self, connected: bool) -> None:
        self.connected = connected
        logger.info("Cashier relay %s", "connected" if connected else "disconnected")

    def handle_message(self, message: RelayMessage) -> bool:
        """Apply one relay message to the cart. Returns True if an item was added."""
        if message.type != ADD_ITEM:
            logger.info("Unknown message type: %s", message.type)
            return False
        try:
            data = message.add_item_data()
        except MalformedPayload as e:
            logger.error("Dropping malformed %s message: %s", ADD_ITEM, e)
            return False

        self.cart.add_item(data.name, data.price, data.quantity)
        return True
