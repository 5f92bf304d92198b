"""WebSocket event schemas for real-time auction updates."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel


class BidPlacedData(BaseModel):
    """Data payload for bid placed event."""

    auction_id: str
    item_id: str
    bid_id: str
    amount: Decimal
    new_current_price: Decimal
    timestamp: datetime


class BidPlacedEvent(BaseModel):
    """Bid placed event pushed to every subscriber of the auction room."""

    event: Literal["bid_placed"] = "bid_placed"
    data: BidPlacedData
