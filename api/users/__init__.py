"""User profile endpoints."""

from fastapi import APIRouter, HTTPException, status, Depends, Query, UploadFile, File, Form
from typing import List, Optional
from pydantic import Field, field_validator

from activity import ActivityManager
from favorites import FavoriteManager
from staking import StakingSettingsManager
from storage import MediaStore, UploadError, ImageStorageError, IPFSError
from tipping import TipManager
from users import UserManager
from ..dependencies import (
    get_user_manager, get_activity_manager, get_favorite_manager,
    get_staking_settings_manager, get_tip_manager, get_media
)
from ..models import APIModel

router = APIRouter(
    prefix="/users",
    tags=["Users"]
)

class UserUpdate(APIModel):
    """Model for profile updates."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = None
    location: Optional[str] = None
    ens_name: Optional[str] = None
    twitter_url: Optional[str] = None
    instagram_url: Optional[str] = None
    website_url: Optional[str] = None
    genres: Optional[List[str]] = None
    influences: Optional[List[str]] = None
    
    @field_validator('twitter_url', 'instagram_url', 'website_url')
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        if value and not value.startswith(('http://', 'https://')):
            raise ValueError('must be an http(s) URL')
        return value

class StakingSettingsUpdate(APIModel):
    """Model for artist staking defaults."""
    default_staking_enabled: Optional[bool] = None
    default_royalty_share: Optional[int] = Field(None, ge=0, le=100)
    lock_period_days: Optional[int] = Field(None, ge=0)
    minimum_stake_amount: Optional[int] = Field(None, ge=0)

@router.post("/upload-avatar")
async def upload_avatar(
    wallet_address: str = Form(..., alias="walletAddress", min_length=1),
    avatar: UploadFile = File(...),
    manager: UserManager = Depends(get_user_manager),
    media: MediaStore = Depends(get_media)
):
    """Upload a profile avatar, replacing the previous one."""
    return await _replace_image(wallet_address, avatar, 'avatar', manager, media)

@router.post("/upload-cover")
async def upload_cover(
    wallet_address: str = Form(..., alias="walletAddress", min_length=1),
    cover: UploadFile = File(...),
    manager: UserManager = Depends(get_user_manager),
    media: MediaStore = Depends(get_media)
):
    """Upload a profile cover image, replacing the previous one."""
    return await _replace_image(wallet_address, cover, 'cover', manager, media)

async def _replace_image(wallet_address: str, upload: UploadFile, field: str,
                         manager: UserManager, media: MediaStore):
    try:
        stored, url, _ = await media.store_image(upload, field, folder=f"{field}s")
        if field == 'avatar':
            previous = await manager.set_avatar(wallet_address, url)
        else:
            previous = await manager.set_cover(wallet_address, url)
        if previous and previous != url:
            await media.discard_image(previous)
        return {
            'message': f"{field.capitalize()} uploaded successfully",
            field: url,
            'file': stored.describe()
        }
    except UploadError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except (ImageStorageError, IPFSError) as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )

@router.get("/{wallet_address}")
async def get_user(wallet_address: str, manager: UserManager = Depends(get_user_manager)):
    """Get a user's profile and stats; unknown wallets get a fresh profile."""
    return await manager.get_profile(wallet_address)

@router.put("/{wallet_address}")
async def update_user(
    wallet_address: str,
    update: UserUpdate,
    manager: UserManager = Depends(get_user_manager)
):
    """Update a user's profile."""
    try:
        user = await manager.update_profile(wallet_address, update.model_dump(exclude_unset=True))
        return {'message': 'User updated successfully', 'user': user}
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.get("/{wallet_address}/nfts")
async def get_user_nfts(wallet_address: str, manager: UserManager = Depends(get_user_manager)):
    """Get the riffs a user has minted."""
    try:
        return await manager.get_user_nfts(wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.get("/{wallet_address}/collections")
async def get_user_collections(wallet_address: str, manager: UserManager = Depends(get_user_manager)):
    """Get a user's collections."""
    try:
        return await manager.get_user_collections(wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.get("/{wallet_address}/activity")
async def get_user_activity(
    wallet_address: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    manager: ActivityManager = Depends(get_activity_manager)
):
    """Get a user's activity feed."""
    try:
        return await manager.get_user_activity(wallet_address, limit=limit, offset=offset)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.get("/{wallet_address}/tipping-tiers")
async def get_user_tipping_tiers(wallet_address: str, manager: TipManager = Depends(get_tip_manager)):
    """Get an artist's tipping tiers."""
    try:
        return await manager.get_tiers(wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.get("/{wallet_address}/favorites")
async def get_user_favorites(
    wallet_address: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    manager: FavoriteManager = Depends(get_favorite_manager)
):
    """Get a user's favorite riffs."""
    try:
        return await manager.list_favorites(wallet_address, limit=limit, offset=offset)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.get("/{wallet_address}/staking-settings")
async def get_staking_settings(
    wallet_address: str,
    manager: StakingSettingsManager = Depends(get_staking_settings_manager)
):
    """Get an artist's effective staking defaults."""
    try:
        return await manager.get_settings(wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.put("/{wallet_address}/staking-settings")
async def update_staking_settings(
    wallet_address: str,
    update: StakingSettingsUpdate,
    manager: StakingSettingsManager = Depends(get_staking_settings_manager)
):
    """Update an artist's staking defaults."""
    try:
        settings = await manager.update_settings(wallet_address, update.model_dump(exclude_unset=True))
        return {'message': 'Staking settings updated successfully', 'settings': settings}
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
