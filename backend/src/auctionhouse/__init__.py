"""Auction house backend: auctions, items, bids and phone-verified bidders."""

__version__ = "1.0.0"
