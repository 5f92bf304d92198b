"""Auction item API endpoints: item detail, bid history and price reconciliation."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from auctionhouse.api.deps import BidLedgerDep, DbSession
from auctionhouse.api.v1.bids import bid_error_to_http
from auctionhouse.schemas.auction import AuctionItemResponse
from auctionhouse.schemas.bid import BidHistoryResponse, BidResponse, ItemReconciliationResponse
from auctionhouse.services.bid_service import BidError
from auctionhouse.services.item_service import ItemService

router = APIRouter()


@router.get("/{item_id}", response_model=AuctionItemResponse)
async def get_item(item_id: UUID, db: DbSession):
    """Get item by ID with its current price."""
    item = await ItemService(db).get_by_id(item_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found",
        )
    return AuctionItemResponse.model_validate(item)


@router.get("/{item_id}/bids", response_model=BidHistoryResponse)
async def get_item_bids(
    item_id: UUID,
    ledger: BidLedgerDep,
    limit: int | None = Query(None, ge=1, le=500),
):
    """Get the bid history of an item, highest amount first."""
    try:
        bids = await ledger.highest_bids(item_id, limit=limit)
    except BidError as e:
        raise bid_error_to_http(e)

    return BidHistoryResponse(
        bids=[
            BidResponse(
                bid_id=bid.bid_id,
                item_id=bid.item_id,
                bidder_id=bid.bidder_id,
                bidder_name=bid.bidder.full_name if bid.bidder else None,
                amount=bid.amount,
                created_at=bid.created_at,
            )
            for bid in bids
        ],
        total=len(bids),
    )


@router.get("/{item_id}/reconciliation", response_model=ItemReconciliationResponse)
async def get_item_reconciliation(item_id: UUID, ledger: BidLedgerDep):
    """Check that the item's current price matches its highest accepted bid.

    An item with no bids is consistent while it has no current price.

    Raises:
        404: Item not found
    """
    try:
        consistent = await ledger.check_reconciliation(item_id)
    except BidError as e:
        raise bid_error_to_http(e)

    return ItemReconciliationResponse(item_id=item_id, consistent=consistent)
