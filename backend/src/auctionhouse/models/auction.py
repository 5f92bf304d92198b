"""Auction model for scheduled sale events."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auctionhouse.core.database import Base
from auctionhouse.models.base import TimestampMixin

if TYPE_CHECKING:
    from auctionhouse.models.auction_item import AuctionItem


class Auction(Base, TimestampMixin):
    """Auction model grouping items under one bidding window."""

    __tablename__ = "auctions"

    auction_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
    )
    end_time: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id"),
        nullable=True,
    )

    # Relationships
    items: Mapped[List["AuctionItem"]] = relationship(
        "AuctionItem", back_populates="auction"
    )

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="chk_auction_time"),
        Index("idx_auctions_time", "start_time", "end_time"),
    )
