"""SQLAlchemy ORM models."""

from auctionhouse.models.auction import Auction
from auctionhouse.models.auction_item import AuctionItem
from auctionhouse.models.base import CreatedAtMixin, TimestampMixin
from auctionhouse.models.bid import Bid
from auctionhouse.models.phone_verification import PhoneVerification
from auctionhouse.models.user import User

__all__ = [
    "CreatedAtMixin",
    "TimestampMixin",
    "User",
    "Auction",
    "AuctionItem",
    "Bid",
    "PhoneVerification",
]
