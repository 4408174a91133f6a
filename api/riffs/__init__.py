"""Riff endpoints: browsing, uploads, minting and per-riff actions."""

from decimal import Decimal
from fastapi import APIRouter, HTTPException, status, Depends, Query, UploadFile, File, Form
from typing import Optional

from chain import RPCError, NodeNotConfiguredError, ABIDecodeError
from favorites import FavoriteManager, FavoriteError
from riffs import RiffManager, RiffError, DEFAULT_SORT
from staking import StakeManager, StakeError
from storage import MediaStore, UploadError, ImageStorageError, IPFSError
from ..dependencies import get_riff_manager, get_stake_manager, get_favorite_manager, get_media
from ..models import WalletRequest

router = APIRouter(
    prefix="/riffs",
    tags=["Riffs"]
)

def _split_tags(tags: Optional[str]):
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(',') if tag.strip()]

@router.get("/")
async def list_riffs(
    genre: Optional[str] = None,
    mood: Optional[str] = None,
    instrument: Optional[str] = None,
    price_min: Optional[Decimal] = Query(None, alias="priceMin", ge=0),
    price_max: Optional[Decimal] = Query(None, alias="priceMax", ge=0),
    stakable: Optional[bool] = None,
    backstage: Optional[bool] = None,
    unlockable: Optional[bool] = None,
    sort_by: str = Query(DEFAULT_SORT, alias="sortBy"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    manager: RiffManager = Depends(get_riff_manager)
):
    """List riffs with optional filters, sorting and pagination."""
    filters = {
        'genre': genre,
        'mood': mood,
        'instrument': instrument,
        'price_min': price_min,
        'price_max': price_max,
        'stakable': stakable,
        'backstage': backstage,
        'unlockable': unlockable
    }
    return await manager.list_riffs(filters=filters, sort_by=sort_by, limit=limit, offset=offset)

@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_riff(
    wallet_address: str = Form(..., alias="walletAddress", min_length=1),
    title: str = Form(..., min_length=1),
    audio_file: UploadFile = File(..., alias="audioFile"),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    description: Optional[str] = Form(None),
    duration: Optional[float] = Form(None, ge=0),
    genre: Optional[str] = Form(None),
    mood: Optional[str] = Form(None),
    instrument: Optional[str] = Form(None),
    key_signature: Optional[str] = Form(None, alias="keySignature"),
    time_signature: Optional[str] = Form(None, alias="timeSignature"),
    is_bargain_bin: Optional[bool] = Form(None, alias="isBargainBin"),
    price: Optional[Decimal] = Form(None, ge=0),
    currency: Optional[str] = Form(None),
    royalty_percentage: Optional[int] = Form(None, alias="royaltyPercentage", ge=0, le=100),
    is_stakable: Optional[bool] = Form(None, alias="isStakable"),
    staking_royalty_share: Optional[int] = Form(None, alias="stakingRoyaltyShare", ge=0, le=100),
    max_pool: Optional[int] = Form(None, alias="maxPool", ge=0),
    minimum_stake_amount: Optional[int] = Form(None, alias="minimumStakeAmount", ge=0),
    lock_period_days: Optional[int] = Form(None, alias="lockPeriodDays", ge=0),
    use_profile_defaults: Optional[bool] = Form(None, alias="useProfileDefaults"),
    unlock_source_files: Optional[bool] = Form(None, alias="unlockSourceFiles"),
    unlock_remix_rights: Optional[bool] = Form(None, alias="unlockRemixRights"),
    unlock_private_messages: Optional[bool] = Form(None, alias="unlockPrivateMessages"),
    unlock_backstage_content: Optional[bool] = Form(None, alias="unlockBackstageContent"),
    tags: Optional[str] = Form(None),
    collection_id: Optional[int] = Form(None, alias="collectionId"),
    new_collection_name: Optional[str] = Form(None, alias="newCollectionName"),
    manager: RiffManager = Depends(get_riff_manager),
    media: MediaStore = Depends(get_media)
):
    """Upload a riff: the audio file, an optional cover image and its details."""
    details = {
        'title': title,
        'description': description,
        'duration': duration,
        'genre': genre,
        'mood': mood,
        'instrument': instrument,
        'key_signature': key_signature,
        'time_signature': time_signature,
        'is_bargain_bin': is_bargain_bin,
        'price': price,
        'currency': currency,
        'royalty_percentage': royalty_percentage,
        'is_stakable': is_stakable,
        'staking_royalty_share': staking_royalty_share,
        'max_pool': max_pool,
        'minimum_stake_amount': minimum_stake_amount,
        'lock_period_days': lock_period_days,
        'use_profile_defaults': use_profile_defaults,
        'unlock_source_files': unlock_source_files,
        'unlock_remix_rights': unlock_remix_rights,
        'unlock_private_messages': unlock_private_messages,
        'unlock_backstage_content': unlock_backstage_content
    }
    try:
        await manager.check_upload(wallet_address, collection_id)
        audio, audio_cid = await media.store_audio(audio_file)
        cover_url = cover_cid = None
        try:
            if cover_image is not None and cover_image.filename:
                _, cover_url, cover_cid = await media.store_image(
                    cover_image, 'coverImage', folder='covers', pin=True
                )
            riff = await manager.create_riff(
                wallet_address,
                details,
                audio_file=audio.public_path,
                audio_cid=audio_cid,
                cover_image=cover_url,
                cover_cid=cover_cid,
                tags=_split_tags(tags),
                collection_id=collection_id,
                new_collection_name=new_collection_name
            )
        except Exception:
            media.discard_local(audio.public_path)
            await media.discard_image(cover_url)
            raise
        return {'message': 'Riff uploaded successfully', 'riff': riff}
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
    except (UploadError, RiffError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except (ImageStorageError, IPFSError) as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )

@router.get("/{riff_id}")
async def get_riff(riff_id: int, manager: RiffManager = Depends(get_riff_manager)):
    """Get a riff with its tags and staking/tip stats."""
    try:
        return await manager.get_riff(riff_id)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.get("/{riff_id}/activity")
async def get_riff_activity(riff_id: int, manager: RiffManager = Depends(get_riff_manager)):
    """Get recent tips and stakes on a riff."""
    try:
        return await manager.get_riff_activity(riff_id)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.post("/{riff_id}/mint")
async def mint_riff(riff_id: int, request: WalletRequest, manager: RiffManager = Depends(get_riff_manager)):
    """Mint a riff as an NFT. Only its creator may mint, and only once."""
    try:
        return await manager.mint_riff(riff_id, request.wallet_address)
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
    except RiffError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except IPFSError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )

@router.get("/{riff_id}/onchain")
async def get_onchain_details(riff_id: int, manager: RiffManager = Depends(get_riff_manager)):
    """Read a minted riff's owner and token URI from the contract."""
    try:
        return await manager.get_onchain_details(riff_id)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except RiffError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except NodeNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )
    except (RPCError, ABIDecodeError) as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )

@router.get("/{riff_id}/rewards/{wallet_address}")
async def get_rewards(riff_id: int, wallet_address: str, manager: StakeManager = Depends(get_stake_manager)):
    """Get the unclaimed staking rewards of a wallet on a riff."""
    try:
        return await manager.get_rewards(riff_id, wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.post("/{riff_id}/rewards/{wallet_address}/claim")
async def claim_rewards(riff_id: int, wallet_address: str, manager: StakeManager = Depends(get_stake_manager)):
    """Claim all staking rewards of a wallet on a riff."""
    try:
        return await manager.claim_rewards(riff_id, wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except StakeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.post("/{riff_id}/favorite/{wallet_address}", status_code=status.HTTP_201_CREATED)
async def add_favorite(riff_id: int, wallet_address: str, manager: FavoriteManager = Depends(get_favorite_manager)):
    """Add a riff to a wallet's favorites."""
    try:
        return await manager.add(riff_id, wallet_address)
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

@router.delete("/{riff_id}/favorite/{wallet_address}")
async def remove_favorite(riff_id: int, wallet_address: str, manager: FavoriteManager = Depends(get_favorite_manager)):
    """Remove a riff from a wallet's favorites."""
    try:
        return await manager.remove(riff_id, wallet_address)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
