"""API v1 routers."""

from auctionhouse.api.v1 import auctions, auth, bids, items, ws

__all__ = ["auctions", "auth", "bids", "items", "ws"]
