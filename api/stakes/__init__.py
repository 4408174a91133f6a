"""Staking endpoints."""

from decimal import Decimal
from fastapi import APIRouter, HTTPException, status, Depends
from typing import List
from pydantic import Field

from database.lib.records import to_iso
from staking import StakeManager, StakeError, StakeLockedError
from ..dependencies import get_stake_manager
from ..models import APIModel

router = APIRouter(
    prefix="/stakes",
    tags=["Staking"]
)

class StakeRequest(APIModel):
    """Model for creating a stake."""
    amount: Decimal = Field(..., gt=0)

class RoyaltyClaim(APIModel):
    stake_id: int
    amount: Decimal = Field(..., gt=0)

class ClaimRequest(APIModel):
    """Model for claiming royalties from several stakes."""
    claims: List[RoyaltyClaim] = Field(..., min_length=1)

def _stake_error(e: StakeError) -> HTTPException:
    if isinstance(e, LookupError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, StakeLockedError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={'error': str(e), 'unlockAt': to_iso(e.unlock_at)}
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.get("/riff/{riff_id}")
async def get_riff_staking_info(riff_id: int, manager: StakeManager = Depends(get_stake_manager)):
    """Get a riff's staking terms, totals and top stakers."""
    try:
        return await manager.get_riff_staking_info(riff_id)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.post("/riff/{riff_id}/{wallet_address}", status_code=status.HTTP_201_CREATED)
async def create_stake(
    riff_id: int,
    wallet_address: str,
    request: StakeRequest,
    manager: StakeManager = Depends(get_stake_manager)
):
    """Stake tokens on a riff."""
    try:
        return await manager.stake(riff_id, wallet_address, request.amount)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except StakeError as e:
        raise _stake_error(e)

@router.post("/riff/{riff_id}/{wallet_address}/unstake")
async def unstake(riff_id: int, wallet_address: str, manager: StakeManager = Depends(get_stake_manager)):
    """Withdraw a wallet's active stake on a riff once it is unlocked."""
    try:
        return await manager.unstake(riff_id, wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except StakeError as e:
        raise _stake_error(e)

@router.post("/{stake_id}/unstake/{wallet_address}")
async def unstake_by_id(stake_id: int, wallet_address: str, manager: StakeManager = Depends(get_stake_manager)):
    """Withdraw a stake by id once it is unlocked."""
    try:
        return await manager.unstake_by_id(stake_id, wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except StakeError as e:
        raise _stake_error(e)

@router.get("/user/{wallet_address}")
async def get_user_stakes(wallet_address: str, manager: StakeManager = Depends(get_stake_manager)):
    """Get a user's active stakes."""
    try:
        return await manager.get_user_stakes(wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.get("/user/{wallet_address}/royalties")
async def get_total_royalties(wallet_address: str, manager: StakeManager = Depends(get_stake_manager)):
    """Get the unclaimed royalties across all of a user's stakes."""
    try:
        return await manager.get_total_royalties(wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.post("/user/{wallet_address}/claim")
async def claim_royalties(
    wallet_address: str,
    request: ClaimRequest,
    manager: StakeManager = Depends(get_stake_manager)
):
    """Claim royalties from several stakes at once."""
    claims = [{'stake_id': claim.stake_id, 'amount': claim.amount} for claim in request.claims]
    try:
        return await manager.claim_royalties(wallet_address, claims)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except StakeError as e:
        raise _stake_error(e)
