"""
Server side of the relay channel.

Every page (the voice page producing orders, any number of cashier pages
consuming them) holds one WebSocket to the hub. A frame received from one
peer is forwarded to every OTHER open peer; nothing is echoed back to its
sender and nothing is stored for peers that connect later.

Thread Safety:
--------------
The peer set is changed by connect/disconnect and read during fan-out. All
changes happen under an asyncio.Lock; fan-out sends to a snapshot taken
under the same lock. A peer whose send fails is dropped and its socket
closed without affecting delivery to the others.
"""

import asyncio
import json
import logging
from typing import Any, List, Protocol, Set

from ..errors import MalformedPayload
from ..schemas.relay import decode_frame

logger = logging.getLogger(__name__)


class Peer(Protocol):
    async def send_text(self, data: str) -> None:
        ...

    async def close(self) -> None:
        ...


class RelayHub:
    """Fan-out of relay frames between connected peers."""

    def __init__(self):
        self._peers: Set[Peer] = set()
        self._lock = asyncio.Lock()

    @property
    def peer_count(self) -> int:
        return len(self._peers)

    async def connect(self, peer: Peer) -> None:
        async with self._lock:
            self._peers.add(peer)
            count = len(self._peers)
        logger.info("Client connected to relay (%d connected)", count)

    async def disconnect(self, peer: Peer) -> None:
        async with self._lock:
            if peer not in self._peers:
                return
            self._peers.discard(peer)
            count = len(self._peers)
        logger.info("Client disconnected from relay (%d connected)", count)

    async def _snapshot(self, exclude: Peer) -> List[Peer]:
        async with self._lock:
            return [p for p in self._peers if p is not exclude]

    async def broadcast(self, sender: Peer, text: str) -> int:
        """
        Send ``text`` to every connected peer except ``sender``.

        Returns:
            Number of peers the frame was delivered to.
        """
        delivered = 0
        for peer in await self._snapshot(exclude=sender):
            try:
                await peer.send_text(text)
            except Exception as e:
                logger.warning("Dropping relay peer after failed send: %s", e)
                await self.disconnect(peer)
                await self._close_quietly(peer)
                continue
            delivered += 1
        return delivered

    async def _close_quietly(self, peer: Peer) -> None:
        try:
            await peer.close()
        except Exception as e:
            logger.debug("Error closing dropped relay peer: %s", e)

    async def handle_frame(self, sender: Peer, raw: Any) -> int:
        """
        Validate a frame from ``sender`` and fan it out.

        Malformed frames are logged and dropped; the sender stays connected.
        """
        try:
            message = decode_frame(raw)
        except MalformedPayload as e:
            logger.error("Error parsing relay message: %s", e)
            return 0
        logger.debug("Received relay message: %s", message)
        return await self.broadcast(sender, json.dumps(message))
