"""Bidding API endpoints."""

import asyncio
import logging

from fastapi import APIRouter, HTTPException, status

from auctionhouse.api.deps import BidLedgerDep, OptionalIdentity
from auctionhouse.schemas.bid import BidCreate, BidReceiptResponse
from auctionhouse.services.bid_service import (
    AuctionClosed,
    AuctionNotOpen,
    BidError,
    BidReceipt,
    BidRejected,
    BidTooLow,
    InvalidAmount,
    ItemNotFound,
    StoreUnavailable,
    Unauthenticated,
)
from auctionhouse.services.ws_manager import broadcast_bid_placed

logger = logging.getLogger(__name__)

router = APIRouter()

# Keeps references to fire-and-forget broadcasts until they finish
_background_tasks: set[asyncio.Task] = set()


def bid_error_to_http(e: BidError) -> HTTPException:
    """Translate a bid ledger error into an HTTP error with a structured detail."""
    detail: dict = {"error": e.code, "message": str(e)}
    headers = None

    if isinstance(e, BidTooLow):
        status_code = status.HTTP_400_BAD_REQUEST
        detail["reference_price"] = str(e.reference_price)
    elif isinstance(e, Unauthenticated):
        status_code = status.HTTP_401_UNAUTHORIZED
        headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(e, ItemNotFound):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, (AuctionNotOpen, AuctionClosed)):
        status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(e, InvalidAmount):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(e, BidRejected):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(e, StoreUnavailable):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        headers = {"Retry-After": "1"}
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return HTTPException(status_code=status_code, detail=detail, headers=headers)


async def _announce(receipt: BidReceipt) -> None:
    """Push the new price to the item's auction room. Failures are only logged."""
    try:
        await broadcast_bid_placed(
            auction_id=str(receipt.auction_id),
            item_id=str(receipt.item_id),
            bid_id=str(receipt.bid_id),
            amount=receipt.amount,
            new_current_price=receipt.new_current_price,
        )
    except Exception as e:
        logger.warning(f"Failed to broadcast bid {receipt.bid_id}: {e}")


@router.post("", response_model=BidReceiptResponse, status_code=status.HTTP_201_CREATED)
async def submit_bid(
    bid_data: BidCreate,
    identity: OptionalIdentity,
    ledger: BidLedgerDep,
):
    """Place a bid on an item. The bidder is taken from the session token.

    Responses:
        201: {bid_id, item_id, amount, new_current_price, created_at}
        400: {"error": "bid_too_low", "reference_price": ...}
        401: not signed in
        403: auction not open
        404: item not found
        409: bid refused by the store, e.g. the bidder account is gone
        503: store unavailable, retry
    """
    try:
        receipt = await ledger.submit_bid(identity, bid_data.item_id, bid_data.amount)
    except BidError as e:
        raise bid_error_to_http(e)

    task = asyncio.create_task(_announce(receipt))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return BidReceiptResponse(
        bid_id=receipt.bid_id,
        item_id=receipt.item_id,
        amount=receipt.amount,
        new_current_price=receipt.new_current_price,
        created_at=receipt.created_at,
    )
