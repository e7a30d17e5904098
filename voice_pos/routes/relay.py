"""
Relay WebSocket Route
=====================

- WS /ws: Relay channel between the voice page and cashier pages

Each connection is registered with the application's RelayHub for its whole
lifetime. Text and binary frames are both accepted; malformed frames are
dropped by the hub without closing the socket.
"""

import logging

from fastapi import APIRouter, WebSocket

from ..config import RELAY_PATH
from ..relay.hub import RelayHub

logger = logging.getLogger(__name__)

relay_router = APIRouter(tags=["Relay"])


def _describe(websocket: WebSocket) -> str:
    client = websocket.client
    if client is None:
        return "unknown client"
    return f"{client.host}:{client.port}"


@relay_router.websocket(RELAY_PATH)
async def relay_socket(websocket: WebSocket) -> None:
    hub: RelayHub = websocket.app.state.relay_hub
    await websocket.accept()
    peer = _describe(websocket)
    logger.info("Relay socket opened from %s", peer)
    await hub.connect(websocket)
    frames = 0
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            frames += 1
            await hub.handle_frame(websocket, raw)
    finally:
        await hub.disconnect(websocket)
        logger.info("Relay socket from %s closed after %d frames", peer, frames)
