"""Auction item service for listing and creating items."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auctionhouse.models.auction_item import AuctionItem
from auctionhouse.schemas.auction import AuctionItemCreate


class ItemService:
    """Service class for auction item operations.

    Items are created without a current price; only the bid ledger moves it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_for_auction(self, auction_id: UUID) -> list[AuctionItem]:
        """Get all items of an auction in creation order."""
        result = await self.db.execute(
            select(AuctionItem)
            .where(AuctionItem.auction_id == auction_id)
            .order_by(AuctionItem.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_by_id(self, item_id: UUID) -> AuctionItem | None:
        """Get item by ID."""
        result = await self.db.execute(
            select(AuctionItem).where(AuctionItem.item_id == item_id)
        )
        return result.scalar_one_or_none()

    async def create(self, auction_id: UUID, item_data: AuctionItemCreate) -> AuctionItem:
        """Create a new item in an existing auction."""
        item = AuctionItem(
            auction_id=auction_id,
            title=item_data.title,
            description=item_data.description,
            image_url=item_data.image_url,
            starting_price=item_data.starting_price,
            current_price=None,
        )

        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item)
        return item
