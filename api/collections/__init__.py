"""Collection endpoints."""

from fastapi import APIRouter, HTTPException, status, Depends, UploadFile, File
from typing import Optional
from pydantic import Field

from riff_collections import CollectionManager
from storage import MediaStore, UploadError, ImageStorageError
from ..dependencies import get_collection_manager, get_media
from ..models import WalletRequest

router = APIRouter(
    prefix="/collections",
    tags=["Collections"]
)

class CollectionCreate(WalletRequest):
    """Model for creating a collection."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    cover_image: Optional[str] = None

@router.get("/")
async def list_collections(manager: CollectionManager = Depends(get_collection_manager)):
    """List all collections, newest first."""
    return await manager.list_collections()

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_collection(
    collection: CollectionCreate,
    manager: CollectionManager = Depends(get_collection_manager)
):
    """Create a collection for a creator."""
    try:
        created = await manager.create_collection(
            collection.wallet_address,
            collection.name,
            description=collection.description,
            cover_image=collection.cover_image
        )
        return {'message': 'Collection created successfully', 'collection': created}
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.get("/{collection_id}")
async def get_collection(collection_id: int, manager: CollectionManager = Depends(get_collection_manager)):
    """Get a collection by id."""
    try:
        return await manager.get_collection(collection_id)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

@router.post("/{collection_id}/cover")
async def upload_collection_cover(
    collection_id: int,
    cover_image: UploadFile = File(..., alias="coverImage"),
    manager: CollectionManager = Depends(get_collection_manager),
    media: MediaStore = Depends(get_media)
):
    """Upload a collection cover image, replacing the previous one."""
    try:
        await manager.get_collection(collection_id)
        _, url, _ = await media.store_image(cover_image, 'coverImage', folder='collections')
        previous = await manager.set_cover(collection_id, url)
        if previous and previous != url:
            await media.discard_image(previous)
        return {'message': 'Cover image uploaded successfully', 'coverImage': url}
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except UploadError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except ImageStorageError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )

@router.get("/{collection_id}/riffs")
async def get_collection_riffs(collection_id: int, manager: CollectionManager = Depends(get_collection_manager)):
    """Get the riffs in a collection."""
    try:
        return await manager.get_collection_riffs(collection_id)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
