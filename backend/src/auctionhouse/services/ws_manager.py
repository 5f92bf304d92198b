"""WebSocket connection manager for live auction updates."""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from fastapi import WebSocket

from auctionhouse.schemas.ws import BidPlacedData, BidPlacedEvent

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections organized by auction rooms.

    Structure: {auction_id: {connection_id: WebSocket}}
    """

    def __init__(self):
        self.active_connections: dict[str, dict[str, WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(
        self, auction_id: str, connection_id: str, websocket: WebSocket
    ) -> None:
        """Accept connection and add it to the auction room."""
        await websocket.accept()

        async with self._lock:
            room = self.active_connections.setdefault(auction_id, {})
            room[connection_id] = websocket
            logger.info(
                f"WebSocket connected: auction={auction_id}, connection={connection_id}, "
                f"room_size={len(room)}"
            )

    async def disconnect(self, auction_id: str, connection_id: str) -> None:
        """Remove connection from the auction room, dropping empty rooms."""
        async with self._lock:
            room = self.active_connections.get(auction_id)
            if room is None:
                return
            if room.pop(connection_id, None) is not None:
                logger.info(
                    f"WebSocket disconnected: auction={auction_id}, connection={connection_id}"
                )
            if not room:
                del self.active_connections[auction_id]

    async def broadcast_to_auction(self, auction_id: str, message: dict[str, Any]) -> int:
        """Send a message to every connection in an auction room concurrently.

        Returns:
            Number of connections successfully sent to
        """
        connections = dict(self.active_connections.get(auction_id, {}))
        if not connections:
            return 0

        async def send_to_one(connection_id: str, ws: WebSocket) -> tuple[str, bool]:
            try:
                await ws.send_json(message)
                return (connection_id, True)
            except Exception as e:
                logger.warning(f"Failed to broadcast to connection {connection_id}: {e}")
                return (connection_id, False)

        results = await asyncio.gather(
            *[send_to_one(cid, ws) for cid, ws in connections.items()]
        )

        sent_count = 0
        for connection_id, success in results:
            if success:
                sent_count += 1
            else:
                await self.disconnect(auction_id, connection_id)

        return sent_count

    def get_room_size(self, auction_id: str) -> int:
        """Get number of connections in an auction room."""
        return len(self.active_connections.get(auction_id, {}))


# Global singleton instance
manager = ConnectionManager()


async def broadcast_bid_placed(
    auction_id: str,
    item_id: str,
    bid_id: str,
    amount: Decimal,
    new_current_price: Decimal,
) -> int:
    """Tell everyone watching an auction that an item's price moved.

    Returns:
        Number of connections notified
    """
    event = BidPlacedEvent(
        data=BidPlacedData(
            auction_id=auction_id,
            item_id=item_id,
            bid_id=bid_id,
            amount=amount,
            new_current_price=new_current_price,
            timestamp=datetime.now(timezone.utc),
        )
    )
    return await manager.broadcast_to_auction(auction_id, event.model_dump(mode="json"))
