"""WebSocket endpoint for live market, PCR and sentiment updates."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .gateway import ConnectionGateway

logger = logging.getLogger(__name__)


def create_stream_router(gateway: ConnectionGateway) -> APIRouter:
    """Create the WebSocket router with a reference to the connection gateway.

    This factory pattern lets us inject the gateway without globals.
    """
    router = APIRouter(tags=["streaming"])

    @router.websocket("/ws")
    async def stream(websocket: WebSocket) -> None:
        """Persistent JSON channel.

        Client frames: {"type": "subscribe", "symbols": [...]},
        {"type": "unsubscribe"}, {"type": "ping"}, {"type": "heartbeat_ack"}.
        Server frames: acknowledgements plus market_update / pcr_update /
        sentiment_update broadcasts and heartbeat frames.
        """
        await websocket.accept()
        origin = websocket.client.host if websocket.client else "unknown"
        connection = await gateway.connect(websocket, origin)

        try:
            while connection in gateway:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                # Binary frames go through the same parser and get the same error reply
                raw = message.get("text") or message.get("bytes") or ""
                await gateway.handle_message(connection, raw)
        except WebSocketDisconnect:
            pass
        except RuntimeError as e:
            # receive after the gateway closed the socket (heartbeat termination)
            logger.debug("WebSocket %s receive ended: %s", connection.id, e)
        finally:
            gateway.disconnect(connection)

    return router
