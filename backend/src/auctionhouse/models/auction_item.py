"""Auction item model holding the starting and current price."""

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auctionhouse.core.database import Base
from auctionhouse.models.base import TimestampMixin

if TYPE_CHECKING:
    from auctionhouse.models.auction import Auction
    from auctionhouse.models.bid import Bid


class AuctionItem(Base, TimestampMixin):
    """An item up for bidding.

    current_price is NULL until the first bid is accepted and afterwards always
    equals the amount of the highest accepted bid.
    """

    __tablename__ = "auction_items"

    item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    auction_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("auctions.auction_id"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    image_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    starting_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    current_price: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2),
        nullable=True,
    )

    # Relationships
    auction: Mapped["Auction"] = relationship("Auction", back_populates="items")
    bids: Mapped[List["Bid"]] = relationship("Bid", back_populates="item")

    @property
    def reference_price(self) -> Decimal:
        """Price a new bid must exceed."""
        return self.current_price if self.current_price is not None else self.starting_price

    __table_args__ = (
        CheckConstraint("starting_price > 0", name="chk_item_starting_price_positive"),
        CheckConstraint(
            "current_price IS NULL OR current_price > starting_price",
            name="chk_item_current_price_above_start",
        ),
        Index("idx_auction_items_auction", "auction_id"),
    )
