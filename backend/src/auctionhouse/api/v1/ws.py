"""WebSocket endpoint for live auction updates."""

import logging
import uuid
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from auctionhouse.services.ws_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/auctions/{auction_id}")
async def auction_websocket(websocket: WebSocket, auction_id: str):
    """Live price feed for one auction.

    Connection URL: ws://host/ws/auctions/{auction_id}

    Events pushed to client:
    - bid_placed: An item's current price moved

    Client can send:
    - ping: Server responds with pong (heartbeat)

    Watching is public, so no token is required.
    """
    try:
        UUID(auction_id)
    except ValueError:
        await websocket.close(code=4002, reason="Invalid auction ID")
        return

    connection_id = str(uuid.uuid4())
    await manager.connect(auction_id, connection_id, websocket)

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")

    except WebSocketDisconnect:
        logger.info(f"WebSocket closed by client: auction={auction_id}, connection={connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error: auction={auction_id}, connection={connection_id}, error={e}")
    finally:
        await manager.disconnect(auction_id, connection_id)
