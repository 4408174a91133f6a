"""Favorites endpoints."""

from fastapi import APIRouter, HTTPException, status, Depends, Query

from favorites import FavoriteManager, FavoriteError
from ..dependencies import get_favorite_manager
from ..models import WalletRequest

router = APIRouter(
    prefix="/favorites",
    tags=["Favorites"]
)

class FavoriteCreate(WalletRequest):
    riff_id: int

@router.get("/user/{wallet_address}")
async def list_favorites(
    wallet_address: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    manager: FavoriteManager = Depends(get_favorite_manager)
):
    """Get a user's favorite riffs, most recently added first."""
    try:
        return await manager.list_favorites(wallet_address, limit=limit, offset=offset)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.post("/add", status_code=status.HTTP_201_CREATED)
async def add_favorite(favorite: FavoriteCreate, manager: FavoriteManager = Depends(get_favorite_manager)):
    """Add a riff to a user's favorites."""
    try:
        return await manager.add(favorite.riff_id, favorite.wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except FavoriteError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.post("/remove/{riff_id}/{wallet_address}")
async def remove_favorite(riff_id: int, wallet_address: str, manager: FavoriteManager = Depends(get_favorite_manager)):
    """Remove a riff from a user's favorites."""
    try:
        return await manager.remove(riff_id, wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.get("/check/{riff_id}/{wallet_address}")
async def check_favorite(riff_id: int, wallet_address: str, manager: FavoriteManager = Depends(get_favorite_manager)):
    """Check whether a riff is in a user's favorites."""
    try:
        return await manager.check(riff_id, wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
