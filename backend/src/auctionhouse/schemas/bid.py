"""Bid schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class BidCreate(BaseModel):
    """Schema for bid submission. The bidder comes from the session token."""

    item_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class BidReceiptResponse(BaseModel):
    """Schema for an accepted bid."""

    bid_id: UUID
    item_id: UUID
    amount: Decimal
    new_current_price: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class BidResponse(BaseModel):
    """Schema for a bid in an item's history."""

    bid_id: UUID
    item_id: UUID
    bidder_id: UUID
    bidder_name: str | None = None
    amount: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class BidHistoryResponse(BaseModel):
    """Schema for bid history response, highest amount first."""

    bids: list[BidResponse]
    total: int


class ItemReconciliationResponse(BaseModel):
    """Whether an item's current price equals its highest accepted bid."""

    item_id: UUID
    consistent: bool
