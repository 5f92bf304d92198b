"""Bid ledger service: accepts or rejects bids and advances item prices."""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from auctionhouse.core.security import Identity
from auctionhouse.middleware.metrics import record_bid_conflict, record_bid_outcome
from auctionhouse.models.auction_item import AuctionItem
from auctionhouse.models.bid import Bid

if TYPE_CHECKING:
    from auctionhouse.services.bid_store import BidStore

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
# Largest value a Numeric(10, 2) column holds
MAX_AMOUNT = Decimal("99999999.99")
DEFAULT_MAX_ATTEMPTS = 3


# =============================================================================
# Errors
# =============================================================================

class BidError(Exception):
    """Base class for bid ledger errors. ``code`` is stable and user-facing."""

    code = "bid_error"


class Unauthenticated(BidError):
    """Raised when no identity is bound to the submission."""

    code = "unauthenticated"


class ItemNotFound(BidError):
    """Raised when the referenced item does not exist."""

    code = "item_not_found"

    def __init__(self, item_id: uuid.UUID):
        super().__init__(f"Item {item_id} not found")
        self.item_id = item_id


class InvalidAmount(BidError):
    """Raised when the amount is not a positive value in whole cents."""

    code = "invalid_amount"


class AuctionNotOpen(BidError):
    """Raised when the item's auction has not started yet."""

    code = "auction_not_started"


class AuctionClosed(BidError):
    """Raised when the item's auction has already ended."""

    code = "auction_ended"


class BidTooLow(BidError):
    """Raised when the amount does not exceed the reference price."""

    code = "bid_too_low"

    def __init__(self, amount: Decimal, reference_price: Decimal):
        super().__init__(f"Bid of {amount} must be higher than {reference_price}")
        self.amount = amount
        self.reference_price = reference_price


class BidConflict(BidError):
    """Raised by the store when a concurrent bid changed the item first."""

    code = "conflict"


class BidRejected(BidError):
    """Raised when the store refuses the bid for a reason other than a price
    race, such as a bidder or item row that no longer exists. Not retried.
    """

    code = "bid_rejected"


class StoreUnavailable(BidError):
    """Raised when the backing store fails or times out."""

    code = "unavailable"


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class BidReceipt:
    """Outcome of an accepted bid."""

    bid_id: uuid.UUID
    item_id: uuid.UUID
    auction_id: uuid.UUID
    amount: Decimal
    new_current_price: Decimal
    created_at: datetime


def validate_amount(amount: Decimal | int | str) -> Decimal:
    """Normalize a bid amount to a positive Decimal in whole cents.

    Raises:
        InvalidAmount: If the value is not finite, not positive, above
            MAX_AMOUNT, or has sub-cent precision
    """
    if isinstance(amount, bool):
        raise InvalidAmount("Bid amount must be a number")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Bid amount {amount!r} is not a number")

    if not value.is_finite() or value <= 0:
        raise InvalidAmount("Bid amount must be a positive, finite value")
    if value > MAX_AMOUNT:
        raise InvalidAmount(f"Bid amount may not exceed {MAX_AMOUNT}")
    if value != value.quantize(CENT):
        raise InvalidAmount("Bid amount may have at most two decimal places")
    return value.quantize(CENT)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class BidLedgerService:
    """Applies the bid acceptance rule against a :class:`BidStore`.

    A bid is accepted only if its amount is strictly greater than the item's
    reference price (current price, or starting price before the first bid).
    Acceptance inserts the bid and moves ``current_price`` in one store
    transaction; the price update is a compare-and-set against the price that
    was read, so a concurrent bid that got there first causes a conflict and
    the whole read-compare-write cycle is re-run against the fresh price.
    """

    def __init__(
        self,
        store: "BidStore",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        enforce_auction_window: bool = True,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.max_attempts = max_attempts
        self.enforce_auction_window = enforce_auction_window

    async def submit_bid(
        self,
        identity: Identity | None,
        item_id: uuid.UUID,
        amount: Decimal | int | str,
    ) -> BidReceipt:
        """Submit a bid on behalf of ``identity``.

        Args:
            identity: Authenticated caller, None if the request has no session
            item_id: Item being bid on
            amount: Offered amount

        Returns:
            Receipt with the new bid id and the item's new current price

        Raises:
            Unauthenticated: No identity; raised before any store access
            InvalidAmount: Amount is not positive, too large or not in whole cents
            ItemNotFound: Item does not exist
            AuctionNotOpen, AuctionClosed: Outside the auction window
            BidTooLow: Amount does not exceed the reference price
            BidRejected: Store refused the write for a reason other than a race
            StoreUnavailable: Store failed; nothing was applied
        """
        started = time.perf_counter()
        try:
            receipt = await self._submit(identity, item_id, amount)
        except BidError as e:
            record_bid_outcome(e.code, time.perf_counter() - started)
            raise
        record_bid_outcome("accepted", time.perf_counter() - started)
        return receipt

    async def _submit(
        self,
        identity: Identity | None,
        item_id: uuid.UUID,
        amount: Decimal | int | str,
    ) -> BidReceipt:
        if identity is None:
            raise Unauthenticated("Authentication is required to place a bid")

        value = validate_amount(amount)

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._attempt(identity, item_id, value)
            except BidConflict:
                await self._safe_rollback()
                record_bid_conflict()
                logger.warning(
                    f"Bid conflict on item {item_id} (attempt {attempt}/{self.max_attempts}), "
                    f"amount={value}"
                )
            except Exception:
                await self._safe_rollback()
                raise

        # Out of attempts: judge the bid against the freshest price we can read
        try:
            item = await self._load_item(item_id, for_update=False)
        finally:
            await self._safe_rollback()
        if value <= item.reference_price:
            logger.info(
                f"Bid rejected after {self.max_attempts} conflicts: item={item_id} "
                f"amount={value} reference={item.reference_price}"
            )
            raise BidTooLow(value, item.reference_price)
        raise StoreUnavailable(
            f"Item {item_id} is under heavy contention, please retry"
        )

    async def _attempt(
        self, identity: Identity, item_id: uuid.UUID, value: Decimal
    ) -> BidReceipt:
        """One read-compare-write cycle inside a single store transaction."""
        item = await self._load_item(item_id, for_update=True)
        expected_prior_price = item.current_price
        reference_price = item.reference_price

        if self.enforce_auction_window:
            self._check_auction_window(item)

        if value <= reference_price:
            logger.info(
                f"Bid rejected: item={item_id} bidder={identity.user_id} "
                f"amount={value} reference={reference_price}"
            )
            raise BidTooLow(value, reference_price)

        bid = await self.store.insert_bid(item_id, identity.user_id, value)
        await self.store.update_item_current_price(
            item_id, value, expected_prior_price=expected_prior_price
        )
        await self.store.commit()

        logger.info(
            f"Bid accepted: item={item_id} bidder={identity.user_id} "
            f"amount={value} previous={reference_price}"
        )
        return BidReceipt(
            bid_id=bid.bid_id,
            item_id=item_id,
            auction_id=item.auction_id,
            amount=value,
            new_current_price=value,
            created_at=bid.created_at,
        )

    async def _load_item(self, item_id: uuid.UUID, for_update: bool) -> AuctionItem:
        item = await self.store.get_item(item_id, for_update=for_update)
        if item is None:
            raise ItemNotFound(item_id)
        return item

    def _check_auction_window(self, item: AuctionItem) -> None:
        auction = item.auction
        if auction is None:
            return
        now = datetime.now(timezone.utc)
        if now < _as_utc(auction.start_time):
            raise AuctionNotOpen(f"Auction {auction.auction_id} has not started yet")
        if now >= _as_utc(auction.end_time):
            raise AuctionClosed(f"Auction {auction.auction_id} has ended")

    async def _safe_rollback(self) -> None:
        """Roll back the store transaction without masking the error that caused it."""
        try:
            await self.store.rollback()
        except StoreUnavailable as e:
            logger.warning(f"Rollback failed: {e}")

    # ==================== Queries ====================

    async def highest_bids(
        self, item_id: uuid.UUID, limit: int | None = None
    ) -> list[Bid]:
        """Bids for an item, highest amount first, earliest first on ties.

        Raises:
            ItemNotFound: Item does not exist
        """
        await self._load_item(item_id, for_update=False)
        return await self.store.list_bids(item_id, limit=limit)

    async def check_reconciliation(self, item_id: uuid.UUID) -> bool:
        """Whether the item's current price equals its highest accepted bid."""
        item = await self._load_item(item_id, for_update=False)
        highest = await self.store.get_highest_accepted_amount(item_id)
        if item.current_price is None or highest is None:
            return item.current_price is None and highest is None
        return Decimal(item.current_price) == Decimal(highest)
