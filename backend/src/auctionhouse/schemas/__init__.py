"""Pydantic schemas for request/response validation."""

from auctionhouse.schemas.auction import (
    AuctionCreate,
    AuctionItemCreate,
    AuctionItemListResponse,
    AuctionItemResponse,
    AuctionListResponse,
    AuctionResponse,
)
from auctionhouse.schemas.bid import (
    BidCreate,
    BidHistoryResponse,
    BidReceiptResponse,
    BidResponse,
    ItemReconciliationResponse,
)
from auctionhouse.schemas.user import (
    PhoneSendRequest,
    PhoneSendResponse,
    PhoneVerificationResponse,
    PhoneVerifyRequest,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "TokenResponse",
    "PhoneSendRequest",
    "PhoneSendResponse",
    "PhoneVerifyRequest",
    "PhoneVerificationResponse",
    "AuctionCreate",
    "AuctionResponse",
    "AuctionListResponse",
    "AuctionItemCreate",
    "AuctionItemResponse",
    "AuctionItemListResponse",
    "BidCreate",
    "BidReceiptResponse",
    "BidResponse",
    "BidHistoryResponse",
    "ItemReconciliationResponse",
]
