"""Marketplace endpoints for listings and sales."""

from decimal import Decimal
from fastapi import APIRouter, HTTPException, status, Depends
from typing import Optional
from pydantic import Field

from market import MarketManager, MarketError
from ..dependencies import get_market_manager
from ..models import APIModel

router = APIRouter(
    prefix="/market",
    tags=["Market"]
)

class ListingCreate(APIModel):
    """Model for listing a minted riff."""
    riff_id: int
    seller_address: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0)
    currency: Optional[str] = None

class ListingUpdate(APIModel):
    price: Optional[Decimal] = Field(None, gt=0)
    currency: Optional[str] = None
    is_active: Optional[bool] = None

class PurchaseRequest(APIModel):
    """Model for buying a listing."""
    listing_id: int
    buyer_address: str = Field(..., min_length=1)

@router.get("/listings")
async def list_listings(riff_id: Optional[int] = None, manager: MarketManager = Depends(get_market_manager)):
    """Get active listings, optionally for one riff."""
    return await manager.list_listings(riff_id)

@router.post("/listings", status_code=status.HTTP_201_CREATED)
async def create_listing(listing: ListingCreate, manager: MarketManager = Depends(get_market_manager)):
    """List a minted riff for sale."""
    try:
        return await manager.create_listing(
            listing.riff_id,
            listing.seller_address,
            listing.price,
            currency=listing.currency
        )
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except MarketError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.get("/listings/{listing_id}")
async def get_listing(listing_id: int, manager: MarketManager = Depends(get_market_manager)):
    """Get a listing by id."""
    try:
        return await manager.get_listing(listing_id)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.put("/listings/{listing_id}")
async def update_listing(
    listing_id: int,
    update: ListingUpdate,
    manager: MarketManager = Depends(get_market_manager)
):
    """Update a listing's price, currency or active flag."""
    try:
        return await manager.update_listing(
            listing_id,
            price=update.price,
            currency=update.currency,
            is_active=update.is_active
        )
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except MarketError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.post("/buy")
async def buy(purchase: PurchaseRequest, manager: MarketManager = Depends(get_market_manager)):
    """Buy a listed riff."""
    try:
        return await manager.buy(purchase.listing_id, purchase.buyer_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except MarketError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.get("/sales/{riff_id}")
async def get_sales_history(riff_id: int, manager: MarketManager = Depends(get_market_manager)):
    """Get the completed sales of a riff."""
    return await manager.get_sales_history(riff_id)
