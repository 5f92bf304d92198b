"""Pytest configuration and fixtures for testing."""

import asyncio
import uuid
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from auctionhouse.core.security import Identity
from auctionhouse.services.bid_service import BidConflict, BidLedgerService, StoreUnavailable


@dataclass
class FakeItem:
    """Stand-in for AuctionItem carrying only what the ledger reads."""

    item_id: uuid.UUID
    auction_id: uuid.UUID
    starting_price: Decimal
    current_price: Decimal | None = None
    auction: SimpleNamespace | None = None

    @property
    def reference_price(self) -> Decimal:
        return self.current_price if self.current_price is not None else self.starting_price


class FakeLedgerDatabase:
    """Committed state shared by every FakeBidStore session.

    Behaves like PostgreSQL under READ COMMITTED for the statements the ledger
    issues: reads see committed data only, a conditional price update holds
    the row until commit or rollback and re-checks the committed price once it
    gets the row.

    Knobs:
        unavailable: operation names that raise StoreUnavailable
        forced_conflicts: number of upcoming price updates that fail
    """

    def __init__(self):
        self.items: dict[uuid.UUID, FakeItem] = {}
        self.bids: list[SimpleNamespace] = []
        self.row_locks: dict[uuid.UUID, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.unavailable: set[str] = set()
        self.forced_conflicts = 0
        self.reads = 0
        self._clock = datetime(2026, 1, 1, 12, 0, 0)

    def now(self) -> datetime:
        """Strictly increasing timestamps so created_at never ties by accident."""
        self._clock += timedelta(milliseconds=1)
        return self._clock

    def add_item(
        self,
        starting_price: str | Decimal = "100.00",
        current_price: str | Decimal | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> FakeItem:
        auction_id = uuid.uuid4()
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        auction = SimpleNamespace(
            auction_id=auction_id,
            start_time=start_time or now - timedelta(hours=1),
            end_time=end_time or now + timedelta(hours=1),
        )
        item = FakeItem(
            item_id=uuid.uuid4(),
            auction_id=auction_id,
            starting_price=Decimal(starting_price),
            current_price=Decimal(current_price) if current_price is not None else None,
            auction=auction,
        )
        self.items[item.item_id] = item
        return item

    def add_bid(
        self,
        item_id: uuid.UUID,
        amount: str | Decimal,
        created_at: datetime | None = None,
    ) -> SimpleNamespace:
        """Insert a committed bid directly, bypassing the acceptance rule."""
        bid = SimpleNamespace(
            bid_id=uuid.uuid4(),
            item_id=item_id,
            bidder_id=uuid.uuid4(),
            amount=Decimal(amount),
            created_at=created_at or self.now(),
            bidder=None,
        )
        self.bids.append(bid)
        return bid

    def accepted_amounts(self, item_id: uuid.UUID) -> list[Decimal]:
        """Amounts of committed bids on an item in insertion order."""
        return [b.amount for b in self.bids if b.item_id == item_id]

    def session(self) -> "FakeBidStore":
        return FakeBidStore(self)


class FakeBidStore:
    """One transaction-scoped session on a FakeLedgerDatabase."""

    def __init__(self, db: FakeLedgerDatabase):
        self.db = db
        self._staged_bids: list[SimpleNamespace] = []
        self._staged_prices: dict[uuid.UUID, Decimal] = {}
        self._held: list[asyncio.Lock] = []

    def _check(self, operation: str) -> None:
        if operation in self.db.unavailable:
            raise StoreUnavailable(f"Store unavailable during {operation}")

    async def get_item(self, item_id, for_update=False):
        self._check("get_item")
        self.db.reads += 1
        item = self.db.items.get(item_id)
        snapshot = replace(item) if item is not None else None
        # Let other sessions run between the read and whatever follows it
        await asyncio.sleep(0)
        return snapshot

    async def get_highest_accepted_amount(self, item_id):
        self._check("get_highest_accepted_amount")
        self.db.reads += 1
        amounts = self.db.accepted_amounts(item_id)
        return max(amounts) if amounts else None

    async def insert_bid(self, item_id, bidder_id, amount):
        self._check("insert_bid")
        bid = SimpleNamespace(
            bid_id=uuid.uuid4(),
            item_id=item_id,
            bidder_id=bidder_id,
            amount=amount,
            created_at=self.db.now(),
            bidder=None,
        )
        self._staged_bids.append(bid)
        return bid

    async def update_item_current_price(self, item_id, amount, expected_prior_price):
        self._check("update_item_current_price")
        lock = self.db.row_locks[item_id]
        await lock.acquire()

        if self.db.forced_conflicts > 0:
            self.db.forced_conflicts -= 1
            lock.release()
            raise BidConflict(f"Concurrent price change on item {item_id}")

        if self.db.items[item_id].current_price != expected_prior_price:
            lock.release()
            raise BidConflict(f"Concurrent price change on item {item_id}")

        self._held.append(lock)
        self._staged_prices[item_id] = amount

    async def list_bids(self, item_id, limit=None):
        self._check("list_bids")
        bids = sorted(
            (b for b in self.db.bids if b.item_id == item_id),
            key=lambda b: (-b.amount, b.created_at),
        )
        return bids[:limit] if limit is not None else bids

    async def commit(self):
        self._check("commit")
        self.db.bids.extend(self._staged_bids)
        for item_id, price in self._staged_prices.items():
            self.db.items[item_id].current_price = price
        self._reset()

    async def rollback(self):
        self._reset()

    def _reset(self) -> None:
        self._staged_bids = []
        self._staged_prices = {}
        for lock in self._held:
            lock.release()
        self._held = []


@pytest.fixture
def ledger_db() -> FakeLedgerDatabase:
    """Empty in-memory bid ledger database."""
    return FakeLedgerDatabase()


@pytest.fixture
def make_ledger(ledger_db: FakeLedgerDatabase):
    """Build a BidLedgerService on a fresh session of ``ledger_db``."""

    def _make(max_attempts: int = 3, enforce_auction_window: bool = True) -> BidLedgerService:
        return BidLedgerService(
            ledger_db.session(),
            max_attempts=max_attempts,
            enforce_auction_window=enforce_auction_window,
        )

    return _make


@pytest.fixture
def identity() -> Identity:
    """A signed-in bidder."""
    return Identity(user_id=uuid.uuid4(), phone_number="+15551234567")


# Mock Redis client fixture
@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create a mock Redis client."""
    redis = AsyncMock()

    # Mock common Redis operations
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.hset = AsyncMock(return_value=1)
    redis.hgetall = AsyncMock(return_value={})
    redis.expire = AsyncMock(return_value=True)

    # Pipelines queue commands synchronously and run them on execute()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[])
    redis.pipeline = MagicMock(return_value=pipe)

    return redis


# Mock user fixture
@pytest.fixture
def mock_user() -> MagicMock:
    """Create a mock user object."""
    user = MagicMock()
    user.user_id = uuid.uuid4()
    user.email = "test@example.com"
    user.phone_number = None
    user.full_name = "Test User"
    user.status = "active"
    return user
