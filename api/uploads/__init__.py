"""Standalone file upload endpoints."""

from fastapi import APIRouter, HTTPException, status, Depends, UploadFile, File

from storage import MediaStore, UploadError, ImageStorageError, IPFSError
from ..dependencies import get_media

router = APIRouter(
    prefix="/uploads",
    tags=["Uploads"]
)

@router.post("/audio", status_code=status.HTTP_201_CREATED)
async def upload_audio(audio: UploadFile = File(...), media: MediaStore = Depends(get_media)):
    """Store an audio file."""
    try:
        stored, cid = await media.store_audio(audio, field='audio')
        return {
            'message': 'Audio uploaded successfully',
            'file': stored.describe(),
            'cid': cid or None,
            'ipfsUrl': media.ipfs.gateway_url(cid) if cid else None
        }
    except UploadError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except IPFSError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )

@router.post("/image", status_code=status.HTTP_201_CREATED)
async def upload_image(image: UploadFile = File(...), media: MediaStore = Depends(get_media)):
    """Store an image file."""
    try:
        stored, url, _ = await media.store_image(image, 'image')
        return {'message': 'Image uploaded successfully', 'file': stored.describe(), 'url': url}
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
