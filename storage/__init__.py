"""Storage module for uploaded media.

- Audio is written locally and, when Pinata is configured, pinned to IPFS.
- Images go to S3 when a bucket is configured, otherwise they are served
  from the local upload directory.
"""
import logging
import os
from pathlib import Path
from typing import Optional, Tuple

from fastapi import UploadFile

from config import settings_conf
from .uploads import (
    save_upload, validate_upload, unique_filename, StoredFile,
    UploadError, InvalidFileTypeError, FileTooLargeError, AUDIO, IMAGES
)
from .ipfs import PinataClient, IPFSError
from .s3 import S3ImageStorage, ImageStorageError, DEFAULT_IMAGES

logger = logging.getLogger(__name__)

__all__ = [
    'MediaStore', 'get_media_store', 'save_upload', 'validate_upload', 'unique_filename',
    'StoredFile', 'UploadError', 'InvalidFileTypeError', 'FileTooLargeError',
    'PinataClient', 'IPFSError', 'S3ImageStorage', 'ImageStorageError',
    'AUDIO', 'IMAGES', 'DEFAULT_IMAGES'
]

class MediaStore:
    """Routes uploads to local disk, IPFS and S3."""
    
    def __init__(self, ipfs: Optional[PinataClient] = None, images: Optional[S3ImageStorage] = None,
                 upload_dir: Optional[str] = None):
        self.ipfs = ipfs or PinataClient()
        self.images = images or S3ImageStorage()
        self.upload_dir = upload_dir or settings_conf['upload_dir']
    
    async def store_audio(self, upload: UploadFile, field: str = 'audioFile') -> Tuple[StoredFile, str]:
        """Save an audio upload and pin it when IPFS is configured.
        
        Returns:
            The stored file and its CID ('' when not pinned)
        """
        stored = await save_upload(upload, field, AUDIO, upload_dir=self.upload_dir)
        cid = ''
        if self.ipfs.configured:
            try:
                cid = await self.ipfs.pin_file(stored.content, stored.filename, stored.content_type, folder='audio')
            except IPFSError:
                self.discard_local(stored.public_path)
                raise
        return stored, cid
    
    async def store_image(self, upload: UploadFile, field: str, folder: str = 'images',
                          pin: bool = False) -> Tuple[StoredFile, str, Optional[str]]:
        """Save an image upload.
        
        When S3 is configured the local copy is removed once the object is
        uploaded, and the returned file's public path is the S3 URL.
        
        Args:
            upload: The multipart file
            field: Form field name
            folder: S3 key prefix (avatars, covers, ...)
            pin: Also pin the image to IPFS when configured
            
        Returns:
            The stored file, its public URL and its CID (None when not pinned)
        """
        stored = await save_upload(upload, field, IMAGES, upload_dir=self.upload_dir)
        url = stored.public_path
        try:
            if self.images.configured:
                url = await self.images.upload_image(stored.content, stored.filename, stored.content_type, folder)
            cid = None
            if pin and self.ipfs.configured:
                cid = await self.ipfs.pin_file(stored.content, stored.filename, stored.content_type, folder=folder)
        except (ImageStorageError, IPFSError):
            self.discard_local(stored.public_path)
            raise
        if url != stored.public_path:
            self.discard_local(stored.public_path)
            stored = stored.model_copy(update={'public_path': url})
        return stored, url, cid
    
    def discard_local(self, url: Optional[str]) -> bool:
        """Delete a file under the upload directory given its ``/uploads/...`` path.
        
        Returns:
            True if a file was removed
        """
        if not url or not url.startswith('/uploads/'):
            return False
        base = Path(self.upload_dir).resolve()
        path = (base / url[len('/uploads/'):]).resolve()
        if not path.is_relative_to(base) or not path.is_file():
            return False
        os.remove(path)
        logger.info(f"Deleted local upload {path}")
        return True
    
    async def discard_image(self, url: Optional[str]) -> None:
        """Remove a replaced image from S3 or the local upload directory."""
        if not url or url in DEFAULT_IMAGES:
            return
        if url.startswith('/uploads/'):
            self.discard_local(url)
        elif self.images.configured and self.images.key_from_url(url):
            await self.images.delete_image(url)

_media_store: Optional[MediaStore] = None

def get_media_store() -> MediaStore:
    """Process-wide media store."""
    global _media_store
    if _media_store is None:
        _media_store = MediaStore()
    return _media_store
