"""Auction API endpoints: browse auctions and manage their items."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from auctionhouse.api.deps import CurrentIdentity, DbSession
from auctionhouse.models.auction import Auction
from auctionhouse.schemas.auction import (
    AuctionCreate,
    AuctionItemCreate,
    AuctionItemListResponse,
    AuctionItemResponse,
    AuctionListResponse,
    AuctionResponse,
)
from auctionhouse.services.auction_service import AuctionService, get_auction_status
from auctionhouse.services.item_service import ItemService

router = APIRouter()


def _to_response(auction: Auction) -> AuctionResponse:
    return AuctionResponse(
        auction_id=auction.auction_id,
        title=auction.title,
        description=auction.description,
        start_time=auction.start_time,
        end_time=auction.end_time,
        status=get_auction_status(auction),
        created_at=auction.created_at,
    )


async def _get_auction_or_404(service: AuctionService, auction_id: UUID) -> Auction:
    auction = await service.get_by_id(auction_id)
    if not auction:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Auction not found",
        )
    return auction


@router.get("", response_model=AuctionListResponse)
async def list_auctions(
    db: DbSession,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
):
    """Get auctions ordered by start time."""
    service = AuctionService(db)
    auctions, total = await service.get_all(skip=skip, limit=limit)
    return AuctionListResponse(
        auctions=[_to_response(a) for a in auctions],
        total=total,
    )


@router.post("", response_model=AuctionResponse, status_code=status.HTTP_201_CREATED)
async def create_auction(
    auction_data: AuctionCreate,
    db: DbSession,
    identity: CurrentIdentity,
):
    """Create a new auction (organizer must be signed in)."""
    service = AuctionService(db)
    try:
        auction = await service.create(auction_data, created_by=identity.user_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return _to_response(auction)


@router.get("/{auction_id}", response_model=AuctionResponse)
async def get_auction(auction_id: UUID, db: DbSession):
    """Get auction by ID."""
    auction = await _get_auction_or_404(AuctionService(db), auction_id)
    return _to_response(auction)


@router.get("/{auction_id}/items", response_model=AuctionItemListResponse)
async def list_auction_items(auction_id: UUID, db: DbSession):
    """Get all items of an auction with their current prices."""
    await _get_auction_or_404(AuctionService(db), auction_id)
    items = await ItemService(db).get_for_auction(auction_id)
    return AuctionItemListResponse(
        items=[AuctionItemResponse.model_validate(item) for item in items],
        total=len(items),
    )


@router.post(
    "/{auction_id}/items",
    response_model=AuctionItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_auction_item(
    auction_id: UUID,
    item_data: AuctionItemCreate,
    db: DbSession,
    identity: CurrentIdentity,
):
    """Add an item to an auction (organizer must be signed in)."""
    await _get_auction_or_404(AuctionService(db), auction_id)
    item = await ItemService(db).create(auction_id, item_data)
    return AuctionItemResponse.model_validate(item)
