"""Tipping endpoints: artist tiers and tips."""

from decimal import Decimal
from fastapi import APIRouter, HTTPException, status, Depends
from typing import List, Optional
from pydantic import Field

from tipping import TipManager, TipError
from ..dependencies import get_tip_manager
from ..models import APIModel, WalletRequest

tiers_router = APIRouter(
    prefix="/tipping-tiers",
    tags=["Tipping"]
)

tips_router = APIRouter(
    prefix="/tips",
    tags=["Tipping"]
)

class TierCreate(WalletRequest):
    """Model for creating a tipping tier."""
    name: str = Field(..., min_length=1, max_length=100)
    amount: int = Field(..., gt=0)
    description: Optional[str] = None
    perks: List[str] = []

class TierUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[int] = Field(None, gt=0)
    description: Optional[str] = None
    perks: Optional[List[str]] = None

class TipCreate(APIModel):
    """Model for sending a tip."""
    sender_address: str = Field(..., min_length=1)
    recipient_address: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    riff_id: Optional[int] = None
    currency: Optional[str] = None
    message: Optional[str] = None
    tier_id: Optional[int] = None

@tiers_router.get("/{wallet_address}")
async def get_tiers(wallet_address: str, manager: TipManager = Depends(get_tip_manager)):
    """Get an artist's tipping tiers, falling back to the defaults."""
    try:
        return await manager.get_tiers(wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@tiers_router.post("/", status_code=status.HTTP_201_CREATED)
async def create_tier(tier: TierCreate, manager: TipManager = Depends(get_tip_manager)):
    """Create a tipping tier."""
    try:
        return await manager.create_tier(
            tier.wallet_address,
            tier.name,
            tier.amount,
            description=tier.description,
            perks=tier.perks
        )
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except TipError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@tiers_router.put("/{tier_id}")
async def update_tier(tier_id: int, update: TierUpdate, manager: TipManager = Depends(get_tip_manager)):
    """Update a tipping tier."""
    try:
        return await manager.update_tier(tier_id, update.model_dump(exclude_unset=True))
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except TipError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@tiers_router.delete("/{tier_id}")
async def delete_tier(tier_id: int, manager: TipManager = Depends(get_tip_manager)):
    """Delete a tipping tier."""
    try:
        return await manager.delete_tier(tier_id)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@tips_router.post("/", status_code=status.HTTP_201_CREATED)
async def send_tip(tip: TipCreate, manager: TipManager = Depends(get_tip_manager)):
    """Send a tip to an artist, optionally for a riff or tier."""
    try:
        return await manager.send_tip(
            tip.sender_address,
            tip.recipient_address,
            tip.amount,
            riff_id=tip.riff_id,
            currency=tip.currency,
            message=tip.message,
            tier_id=tip.tier_id
        )
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except TipError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

__all__ = ['tiers_router', 'tips_router']
