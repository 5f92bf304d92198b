"""Business logic services."""

from auctionhouse.services.bid_service import BidLedgerService, BidReceipt
from auctionhouse.services.bid_store import BidStore, SqlBidStore
from auctionhouse.services.redis_service import RedisService

__all__ = [
    "BidLedgerService",
    "BidReceipt",
    "BidStore",
    "SqlBidStore",
    "RedisService",
]
