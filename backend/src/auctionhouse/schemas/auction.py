"""Auction and auction item schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class AuctionCreate(BaseModel):
    """Schema for auction creation request."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    start_time: datetime
    end_time: datetime


class AuctionResponse(BaseModel):
    """Schema for auction response."""

    auction_id: UUID
    title: str
    description: str | None
    start_time: datetime
    end_time: datetime
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuctionListResponse(BaseModel):
    """Schema for auction list response."""

    auctions: list[AuctionResponse]
    total: int


class AuctionItemCreate(BaseModel):
    """Schema for item creation request."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    image_url: str | None = Field(None, max_length=500)
    starting_price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class AuctionItemResponse(BaseModel):
    """Schema for item response."""

    item_id: UUID
    auction_id: UUID
    title: str
    description: str | None
    image_url: str | None
    starting_price: Decimal
    current_price: Decimal | None
    reference_price: Decimal
    updated_at: datetime

    model_config = {"from_attributes": True}


class AuctionItemListResponse(BaseModel):
    """Schema for item list response."""

    items: list[AuctionItemResponse]
    total: int
