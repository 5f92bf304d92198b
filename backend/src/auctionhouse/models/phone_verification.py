"""Phone verification model tracking OTP-based identity binding."""

import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from auctionhouse.core.database import Base
from auctionhouse.models.base import TimestampMixin


class PhoneVerification(Base, TimestampMixin):
    """Pending or confirmed verification of a phone number.

    The one-time code itself lives in Redis; this row only records state.
    """

    __tablename__ = "phone_verifications"

    phone_number: Mapped[str] = mapped_column(
        String(16),
        primary_key=True,
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id"),
        nullable=True,
    )
    verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    attempt_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
