"""Auction service for listing and creating auctions."""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from auctionhouse.models.auction import Auction
from auctionhouse.schemas.auction import AuctionCreate


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _to_naive_utc(value: datetime) -> datetime:
    """Database columns are TIMESTAMP WITHOUT TIME ZONE holding UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def get_auction_status(auction: Auction, now: datetime | None = None) -> str:
    """Derive the auction status from the clock: upcoming, active or ended."""
    now = now or datetime.now(timezone.utc)
    if now < _as_utc(auction.start_time):
        return "upcoming"
    if now >= _as_utc(auction.end_time):
        return "ended"
    return "active"


class AuctionService:
    """Service class for auction operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all(self, skip: int = 0, limit: int = 100) -> tuple[list[Auction], int]:
        """Get auctions ordered by start time, soonest first.

        Returns:
            Tuple of (auctions list, total count)
        """
        count_result = await self.db.execute(select(func.count(Auction.auction_id)))
        total = count_result.scalar_one()

        result = await self.db.execute(
            select(Auction)
            .order_by(Auction.start_time.asc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_by_id(self, auction_id: UUID) -> Auction | None:
        """Get auction by ID."""
        result = await self.db.execute(
            select(Auction).where(Auction.auction_id == auction_id)
        )
        return result.scalar_one_or_none()

    async def create(self, auction_data: AuctionCreate, created_by: UUID | None = None) -> Auction:
        """Create a new auction.

        Raises:
            ValueError: If end_time is not after start_time
        """
        start_time = _to_naive_utc(auction_data.start_time)
        end_time = _to_naive_utc(auction_data.end_time)
        if end_time <= start_time:
            raise ValueError("end_time must be after start_time")

        auction = Auction(
            title=auction_data.title,
            description=auction_data.description,
            start_time=start_time,
            end_time=end_time,
            created_by=created_by,
        )

        self.db.add(auction)
        await self.db.commit()
        await self.db.refresh(auction)
        return auction
