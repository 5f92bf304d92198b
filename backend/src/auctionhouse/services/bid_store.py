"""Persistence interface used by the bid ledger, and its PostgreSQL implementation."""

import asyncio
import logging
import uuid
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, Protocol

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from auctionhouse.models.auction_item import AuctionItem
from auctionhouse.models.bid import Bid
from auctionhouse.services.bid_service import BidConflict, BidRejected, StoreUnavailable

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATEs that mean another transaction got there first
CONFLICT_SQLSTATES = {
    "23505",  # unique_violation
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
}


class BidStore(Protocol):
    """What the bid ledger needs from persistence.

    Writes are staged in a transaction that only becomes visible on
    :meth:`commit`; :meth:`rollback` discards them.
    """

    async def get_item(
        self, item_id: uuid.UUID, for_update: bool = False
    ) -> AuctionItem | None: ...

    async def get_highest_accepted_amount(self, item_id: uuid.UUID) -> Decimal | None: ...

    async def insert_bid(
        self, item_id: uuid.UUID, bidder_id: uuid.UUID, amount: Decimal
    ) -> Bid: ...

    async def update_item_current_price(
        self,
        item_id: uuid.UUID,
        amount: Decimal,
        expected_prior_price: Decimal | None,
    ) -> None: ...

    async def list_bids(self, item_id: uuid.UUID, limit: int | None = None) -> list[Bid]: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


def _sqlstate(e: DBAPIError) -> str | None:
    """SQLSTATE of the driver error wrapped by ``e``, if it carries one."""
    return getattr(e.orig, "sqlstate", None) or getattr(e.orig, "pgcode", None)


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Map driver and SQLAlchemy failures onto ledger errors."""
    try:
        yield
    except DBAPIError as e:
        if _sqlstate(e) in CONFLICT_SQLSTATES:
            raise BidConflict(f"{operation}: concurrent write") from e
        if isinstance(e, IntegrityError):
            logger.warning(f"Store rejected {operation}: {e.orig}")
            raise BidRejected(f"Bid rejected by the store during {operation}") from e
        logger.warning(f"Store failure during {operation}: {e}")
        raise StoreUnavailable(f"Store unavailable during {operation}") from e
    except (SQLAlchemyError, OSError, asyncio.TimeoutError, TimeoutError) as e:
        logger.warning(f"Store failure during {operation}: {e}")
        raise StoreUnavailable(f"Store unavailable during {operation}") from e


class SqlBidStore:
    """BidStore backed by an async SQLAlchemy session on PostgreSQL.

    Two layers serialize bids on the same item:
    1. ``SELECT ... FOR UPDATE`` on the item row when reading for a bid
    2. Compare-and-set ``UPDATE`` on current_price (zero rows -> BidConflict)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_item(
        self, item_id: uuid.UUID, for_update: bool = False
    ) -> AuctionItem | None:
        stmt = (
            select(AuctionItem)
            .options(selectinload(AuctionItem.auction))
            .where(AuctionItem.item_id == item_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=AuctionItem)

        with _translate_errors("get_item"):
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()

    async def get_highest_accepted_amount(self, item_id: uuid.UUID) -> Decimal | None:
        with _translate_errors("get_highest_accepted_amount"):
            result = await self.db.execute(
                select(func.max(Bid.amount)).where(Bid.item_id == item_id)
            )
            return result.scalar_one_or_none()

    async def insert_bid(
        self, item_id: uuid.UUID, bidder_id: uuid.UUID, amount: Decimal
    ) -> Bid:
        stmt = (
            insert(Bid)
            .values(
                bid_id=uuid.uuid4(),
                item_id=item_id,
                bidder_id=bidder_id,
                amount=amount,
            )
            .returning(Bid)
        )
        with _translate_errors("insert_bid"):
            result = await self.db.execute(stmt)
            return result.scalar_one()

    async def update_item_current_price(
        self,
        item_id: uuid.UUID,
        amount: Decimal,
        expected_prior_price: Decimal | None,
    ) -> None:
        """Set current_price only if it still equals ``expected_prior_price``.

        Raises:
            BidConflict: The price changed since it was read
        """
        stmt = update(AuctionItem).where(AuctionItem.item_id == item_id)
        if expected_prior_price is None:
            stmt = stmt.where(AuctionItem.current_price.is_(None))
        else:
            stmt = stmt.where(AuctionItem.current_price == expected_prior_price)
        stmt = (
            stmt.values(current_price=amount, updated_at=func.now())
            .returning(AuctionItem.item_id)
            .execution_options(synchronize_session=False)
        )

        with _translate_errors("update_item_current_price"):
            result = await self.db.execute(stmt)
            updated = result.first()

        if updated is None:
            raise BidConflict(f"Concurrent price change on item {item_id}")

    async def list_bids(self, item_id: uuid.UUID, limit: int | None = None) -> list[Bid]:
        stmt = (
            select(Bid)
            .options(selectinload(Bid.bidder))
            .where(Bid.item_id == item_id)
            .order_by(Bid.amount.desc(), Bid.created_at.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        with _translate_errors("list_bids"):
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

    async def commit(self) -> None:
        with _translate_errors("commit"):
            await self.db.commit()

    async def rollback(self) -> None:
        with _translate_errors("rollback"):
            await self.db.rollback()
