"""User model for bidders and organizers."""

import uuid
from typing import TYPE_CHECKING, List

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auctionhouse.core.database import Base
from auctionhouse.models.base import TimestampMixin

if TYPE_CHECKING:
    from auctionhouse.models.bid import Bid


class User(Base, TimestampMixin):
    """A registered user.

    Accounts are created either by email sign-up (password_hash set) or by a
    verified phone OTP (phone_number set, no password).
    """

    __tablename__ = "users"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(16),
        unique=True,
        nullable=True,
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    full_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
    )

    # Relationships
    bids: Mapped[List["Bid"]] = relationship("Bid", back_populates="bidder")

    __table_args__ = (
        Index("idx_users_status", "status"),
    )
