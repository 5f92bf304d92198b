"""Tests for the bid ledger acceptance rule and its concurrency behaviour.

The ledger runs against FakeBidStore sessions (see conftest.py) that share one
committed state, so interleavings between bidders can be driven with
asyncio.gather.
"""

import asyncio
import random
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from auctionhouse.core.security import Identity
from auctionhouse.services.bid_service import (
    AuctionClosed,
    AuctionNotOpen,
    BidConflict,
    BidLedgerService,
    BidRejected,
    BidTooLow,
    InvalidAmount,
    ItemNotFound,
    StoreUnavailable,
    Unauthenticated,
    validate_amount,
)


def _bidder() -> Identity:
    return Identity(user_id=uuid.uuid4())


class TestAcceptanceRule:
    """A bid is accepted only when it beats the reference price."""

    @pytest.mark.asyncio
    async def test_bidding_sequence_from_starting_price(self, ledger_db, make_ledger, identity):
        """95 rejected, 105 accepted, 105 again rejected, 110 accepted."""
        item = ledger_db.add_item(starting_price="100.00")
        ledger = make_ledger()

        with pytest.raises(BidTooLow) as exc_info:
            await ledger.submit_bid(identity, item.item_id, "95")
        assert exc_info.value.reference_price == Decimal("100.00")

        receipt = await ledger.submit_bid(identity, item.item_id, "105")
        assert receipt.new_current_price == Decimal("105.00")
        assert ledger_db.items[item.item_id].current_price == Decimal("105.00")

        with pytest.raises(BidTooLow) as exc_info:
            await ledger.submit_bid(identity, item.item_id, "105")
        assert exc_info.value.reference_price == Decimal("105.00")

        receipt = await ledger.submit_bid(identity, item.item_id, "110")
        assert receipt.new_current_price == Decimal("110.00")

        assert ledger_db.items[item.item_id].current_price == Decimal("110.00")
        assert ledger_db.accepted_amounts(item.item_id) == [Decimal("105.00"), Decimal("110.00")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "starting_price,current_price,amount,accepted",
        [
            ("100.00", None, "100.00", False),
            ("100.00", None, "99.99", False),
            ("100.00", None, "100.01", True),
            ("100.00", "150.00", "150.00", False),
            ("100.00", "150.00", "149.99", False),
            ("100.00", "150.00", "150.01", True),
            # Above the starting price is not enough once a bid exists
            ("100.00", "150.00", "120.00", False),
        ],
    )
    async def test_boundaries(
        self, ledger_db, make_ledger, identity, starting_price, current_price, amount, accepted
    ):
        item = ledger_db.add_item(starting_price=starting_price, current_price=current_price)
        before = ledger_db.items[item.item_id].current_price
        ledger = make_ledger()

        if accepted:
            receipt = await ledger.submit_bid(identity, item.item_id, amount)
            assert receipt.new_current_price == Decimal(amount)
            assert ledger_db.items[item.item_id].current_price == Decimal(amount)
        else:
            with pytest.raises(BidTooLow) as exc_info:
                await ledger.submit_bid(identity, item.item_id, amount)
            expected_reference = Decimal(current_price or starting_price)
            assert exc_info.value.reference_price == expected_reference
            assert ledger_db.items[item.item_id].current_price == before
            assert ledger_db.accepted_amounts(item.item_id) == []

    @pytest.mark.asyncio
    async def test_receipt_fields(self, ledger_db, make_ledger, identity):
        item = ledger_db.add_item(starting_price="10.00")

        receipt = await make_ledger().submit_bid(identity, item.item_id, Decimal("12.5"))

        assert receipt.item_id == item.item_id
        assert receipt.auction_id == item.auction_id
        assert receipt.amount == Decimal("12.50")
        [bid] = ledger_db.bids
        assert bid.bid_id == receipt.bid_id
        assert bid.bidder_id == identity.user_id
        assert bid.created_at == receipt.created_at

    @pytest.mark.asyncio
    async def test_item_not_found(self, make_ledger, identity):
        with pytest.raises(ItemNotFound) as exc_info:
            await make_ledger().submit_bid(identity, uuid.uuid4(), "10")
        assert exc_info.value.code == "item_not_found"


class TestUnauthenticated:

    @pytest.mark.asyncio
    async def test_rejected_before_any_store_read(self, ledger_db, make_ledger):
        item = ledger_db.add_item()

        with pytest.raises(Unauthenticated):
            await make_ledger().submit_bid(None, item.item_id, "500")

        assert ledger_db.reads == 0
        assert ledger_db.bids == []

    @pytest.mark.asyncio
    async def test_rejected_even_when_store_is_down(self, ledger_db, make_ledger):
        ledger_db.unavailable = {"get_item", "insert_bid", "commit"}

        with pytest.raises(Unauthenticated):
            await make_ledger().submit_bid(None, uuid.uuid4(), "500")


class TestAmountValidation:

    @pytest.mark.parametrize(
        "amount",
        [
            "0", "0.00", "-5", "10.001", "NaN", "Infinity", "abc", True,
            "100000000", "1E+30",
        ],
    )
    def test_invalid_amounts(self, amount):
        with pytest.raises(InvalidAmount):
            validate_amount(amount)

    @pytest.mark.parametrize(
        "amount,expected",
        [
            (100, Decimal("100.00")),
            ("10.5", Decimal("10.50")),
            (Decimal("0.01"), Decimal("0.01")),
            ("99.990", Decimal("99.99")),
            ("99999999.99", Decimal("99999999.99")),
        ],
    )
    def test_valid_amounts_are_quantized(self, amount, expected):
        assert validate_amount(amount) == expected

    @pytest.mark.asyncio
    async def test_invalid_amount_does_not_touch_store(self, ledger_db, make_ledger, identity):
        item = ledger_db.add_item()

        with pytest.raises(InvalidAmount):
            await make_ledger().submit_bid(identity, item.item_id, "-1")

        assert ledger_db.reads == 0


class TestAuctionWindow:

    @pytest.mark.asyncio
    async def test_not_started(self, ledger_db, make_ledger, identity):
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        item = ledger_db.add_item(
            start_time=now + timedelta(hours=1), end_time=now + timedelta(hours=2)
        )

        with pytest.raises(AuctionNotOpen):
            await make_ledger().submit_bid(identity, item.item_id, "500")
        assert ledger_db.bids == []

    @pytest.mark.asyncio
    async def test_ended(self, ledger_db, make_ledger, identity):
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        item = ledger_db.add_item(
            start_time=now - timedelta(hours=2), end_time=now - timedelta(hours=1)
        )

        with pytest.raises(AuctionClosed):
            await make_ledger().submit_bid(identity, item.item_id, "500")
        assert ledger_db.items[item.item_id].current_price is None

    @pytest.mark.asyncio
    async def test_window_check_can_be_disabled(self, ledger_db, make_ledger, identity):
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        item = ledger_db.add_item(
            start_time=now - timedelta(hours=2), end_time=now - timedelta(hours=1)
        )

        receipt = await make_ledger(enforce_auction_window=False).submit_bid(
            identity, item.item_id, "500"
        )

        assert receipt.new_current_price == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_window_check_runs_before_price_check(self, ledger_db, make_ledger, identity):
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        item = ledger_db.add_item(
            start_time=now - timedelta(hours=2), end_time=now - timedelta(hours=1)
        )

        with pytest.raises(AuctionClosed):
            await make_ledger().submit_bid(identity, item.item_id, "1")


class TestConflicts:

    @pytest.mark.asyncio
    async def test_retries_after_conflict(self, ledger_db, make_ledger, identity):
        item = ledger_db.add_item(starting_price="100.00")
        ledger_db.forced_conflicts = 2

        receipt = await make_ledger(max_attempts=3).submit_bid(identity, item.item_id, "120")

        assert receipt.new_current_price == Decimal("120.00")
        # Bids staged by the failed attempts were rolled back
        assert ledger_db.accepted_amounts(item.item_id) == [Decimal("120.00")]

    @pytest.mark.asyncio
    async def test_exhausted_attempts_still_winning_is_unavailable(
        self, ledger_db, make_ledger, identity
    ):
        item = ledger_db.add_item(starting_price="100.00")
        ledger_db.forced_conflicts = 3

        with pytest.raises(StoreUnavailable):
            await make_ledger(max_attempts=3).submit_bid(identity, item.item_id, "120")

        assert ledger_db.bids == []
        assert ledger_db.items[item.item_id].current_price is None

    @pytest.mark.asyncio
    async def test_exhausted_attempts_outbid_is_too_low(self, identity):
        item_id = uuid.uuid4()

        def item_at(price):
            return SimpleNamespace(
                item_id=item_id,
                auction_id=uuid.uuid4(),
                current_price=Decimal(price),
                reference_price=Decimal(price),
                auction=None,
            )

        store = AsyncMock()
        store.get_item = AsyncMock(
            side_effect=[item_at("100"), item_at("100"), item_at("200")]
        )
        store.insert_bid = AsyncMock(
            return_value=SimpleNamespace(
                bid_id=uuid.uuid4(),
                created_at=datetime.now(timezone.utc).replace(tzinfo=None),
            )
        )
        store.update_item_current_price = AsyncMock(side_effect=BidConflict("lost race"))

        ledger = BidLedgerService(store, max_attempts=2)
        with pytest.raises(BidTooLow) as exc_info:
            await ledger.submit_bid(identity, item_id, "150")

        assert exc_info.value.reference_price == Decimal("200")
        store.commit.assert_not_called()
        assert store.rollback.await_count >= 2

    @pytest.mark.asyncio
    async def test_max_attempts_must_be_positive(self, ledger_db):
        with pytest.raises(ValueError):
            BidLedgerService(ledger_db.session(), max_attempts=0)


class TestConcurrentBids:

    @pytest.mark.asyncio
    async def test_lower_then_higher_both_accepted(self, ledger_db, make_ledger):
        item = ledger_db.add_item(starting_price="100.00")

        low, high = await asyncio.gather(
            make_ledger().submit_bid(_bidder(), item.item_id, "110"),
            make_ledger().submit_bid(_bidder(), item.item_id, "120"),
        )

        assert low.new_current_price == Decimal("110.00")
        assert high.new_current_price == Decimal("120.00")
        assert ledger_db.items[item.item_id].current_price == Decimal("120.00")
        assert ledger_db.accepted_amounts(item.item_id) == [Decimal("110.00"), Decimal("120.00")]

    @pytest.mark.asyncio
    async def test_higher_then_lower_rejects_lower(self, ledger_db, make_ledger):
        item = ledger_db.add_item(starting_price="100.00")

        high, low = await asyncio.gather(
            make_ledger().submit_bid(_bidder(), item.item_id, "120"),
            make_ledger().submit_bid(_bidder(), item.item_id, "110"),
            return_exceptions=True,
        )

        assert high.new_current_price == Decimal("120.00")
        assert isinstance(low, BidTooLow)
        assert low.reference_price == Decimal("120.00")
        assert ledger_db.items[item.item_id].current_price == Decimal("120.00")
        assert ledger_db.accepted_amounts(item.item_id) == [Decimal("120.00")]

    @pytest.mark.asyncio
    async def test_many_bidders_end_at_highest_amount(self, ledger_db, make_ledger):
        item = ledger_db.add_item(starting_price="1.00")
        rng = random.Random(7)
        amounts = [Decimal(rng.randint(101, 5000)) / 100 for _ in range(12)]

        results = await asyncio.gather(
            *(
                make_ledger(max_attempts=len(amounts)).submit_bid(_bidder(), item.item_id, a)
                for a in amounts
            ),
            return_exceptions=True,
        )

        for result in results:
            assert not isinstance(result, (StoreUnavailable, BidConflict))

        accepted = ledger_db.accepted_amounts(item.item_id)
        assert accepted == sorted(set(accepted))
        assert ledger_db.items[item.item_id].current_price == max(amounts).quantize(Decimal("0.01"))
        assert await make_ledger().check_reconciliation(item.item_id)


class TestStoreFailures:

    @pytest.mark.asyncio
    async def test_insert_failure_is_not_retried(self, ledger_db, make_ledger, identity):
        item = ledger_db.add_item(starting_price="100.00")
        ledger_db.unavailable = {"insert_bid"}

        with pytest.raises(StoreUnavailable):
            await make_ledger().submit_bid(identity, item.item_id, "150")

        assert ledger_db.reads == 1
        assert ledger_db.bids == []
        assert ledger_db.items[item.item_id].current_price is None

    @pytest.mark.asyncio
    async def test_commit_failure_releases_the_item(self, ledger_db, make_ledger, identity):
        item = ledger_db.add_item(starting_price="100.00")
        ledger_db.unavailable = {"commit"}

        with pytest.raises(StoreUnavailable):
            await make_ledger().submit_bid(identity, item.item_id, "150")

        assert ledger_db.bids == []
        ledger_db.unavailable = set()
        receipt = await asyncio.wait_for(
            make_ledger().submit_bid(identity, item.item_id, "150"), timeout=1
        )
        assert receipt.new_current_price == Decimal("150.00")

    @pytest.mark.asyncio
    async def test_rejected_write_is_not_retried(self, identity):
        item_id = uuid.uuid4()
        store = AsyncMock()
        store.get_item = AsyncMock(
            return_value=SimpleNamespace(
                item_id=item_id,
                auction_id=uuid.uuid4(),
                current_price=None,
                reference_price=Decimal("100"),
                auction=None,
            )
        )
        store.insert_bid = AsyncMock(side_effect=BidRejected("bidder row is gone"))

        ledger = BidLedgerService(store, max_attempts=3)
        with pytest.raises(BidRejected):
            await ledger.submit_bid(identity, item_id, "150")

        store.get_item.assert_awaited_once()
        store.update_item_current_price.assert_not_called()
        store.commit.assert_not_called()
        store.rollback.assert_awaited()


class TestQueries:

    @pytest.mark.asyncio
    async def test_highest_bids_order(self, ledger_db, make_ledger):
        item = ledger_db.add_item(starting_price="50.00", current_price="150.00")
        b100 = ledger_db.add_bid(item.item_id, "100")
        b150_early = ledger_db.add_bid(item.item_id, "150")
        b120 = ledger_db.add_bid(item.item_id, "120")
        b150_late = ledger_db.add_bid(item.item_id, "150")
        ledger_db.add_bid(ledger_db.add_item().item_id, "999")

        bids = await make_ledger().highest_bids(item.item_id)

        assert [b.bid_id for b in bids] == [
            b150_early.bid_id,
            b150_late.bid_id,
            b120.bid_id,
            b100.bid_id,
        ]

        top = await make_ledger().highest_bids(item.item_id, limit=2)
        assert [b.bid_id for b in top] == [b150_early.bid_id, b150_late.bid_id]

    @pytest.mark.asyncio
    async def test_highest_bids_unknown_item(self, make_ledger):
        with pytest.raises(ItemNotFound):
            await make_ledger().highest_bids(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_reconciliation_without_bids(self, ledger_db, make_ledger):
        item = ledger_db.add_item()
        assert await make_ledger().check_reconciliation(item.item_id)

    @pytest.mark.asyncio
    async def test_reconciliation_detects_drift(self, ledger_db, make_ledger):
        item = ledger_db.add_item(starting_price="100.00", current_price="150.00")
        ledger_db.add_bid(item.item_id, "200")

        assert not await make_ledger().check_reconciliation(item.item_id)

    @pytest.mark.asyncio
    async def test_current_price_tracks_highest_bid(self, ledger_db, make_ledger):
        item = ledger_db.add_item(starting_price="10.00")
        ledger = make_ledger()
        rng = random.Random(42)

        for _ in range(60):
            amount = Decimal(rng.randint(500, 20000)) / 100
            try:
                await ledger.submit_bid(_bidder(), item.item_id, amount)
            except BidTooLow:
                pass
            assert await ledger.check_reconciliation(item.item_id)

        accepted = ledger_db.accepted_amounts(item.item_id)
        assert accepted == sorted(accepted)
        assert len(accepted) == len(set(accepted))
        assert ledger_db.items[item.item_id].current_price == max(accepted)
