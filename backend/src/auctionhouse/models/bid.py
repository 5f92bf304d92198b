"""Bid model for the append-only bid ledger."""

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auctionhouse.core.database import Base
from auctionhouse.models.base import CreatedAtMixin

if TYPE_CHECKING:
    from auctionhouse.models.auction_item import AuctionItem
    from auctionhouse.models.user import User


class Bid(Base, CreatedAtMixin):
    """An accepted bid. Rows are never updated or deleted."""

    __tablename__ = "bids"

    bid_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("auction_items.item_id"),
        nullable=False,
    )
    bidder_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )

    # Relationships
    item: Mapped["AuctionItem"] = relationship("AuctionItem", back_populates="bids")
    bidder: Mapped["User"] = relationship("User", back_populates="bids")

    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_bid_amount_positive"),
        Index("idx_bids_item_amount", "item_id", "amount"),
        Index("idx_bids_bidder", "bidder_id"),
    )
