"""Activity feed endpoints."""

from fastapi import APIRouter, HTTPException, status, Depends, Query

from activity import ActivityManager
from ..dependencies import get_activity_manager

router = APIRouter(
    prefix="/activity",
    tags=["Activity"]
)

@router.get("/")
async def get_all_activity(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    manager: ActivityManager = Depends(get_activity_manager)
):
    """Get the platform-wide activity feed."""
    return await manager.get_all_activity(limit=limit, offset=offset)

@router.get("/{wallet_address}")
async def get_user_activity(
    wallet_address: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    manager: ActivityManager = Depends(get_activity_manager)
):
    """Get the activity feed of one user."""
    try:
        return await manager.get_user_activity(wallet_address, limit=limit, offset=offset)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
