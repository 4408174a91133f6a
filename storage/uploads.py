"""Local handling of multipart uploads.

Audio goes to ``<upload_dir>/audio`` and images to ``<upload_dir>/images``;
each kind only accepts its own MIME family and every file is bounded by
``max_file_size``.
"""
import logging
import os
import secrets
import time
from pathlib import Path
from typing import Optional

import aiofiles
from fastapi import UploadFile
from pydantic import BaseModel, Field

from config import settings_conf

logger = logging.getLogger(__name__)

AUDIO = 'audio'
IMAGES = 'images'

# Accepted MIME prefix per upload kind
MIME_PREFIXES = {
    AUDIO: 'audio/',
    IMAGES: 'image/'
}

class UploadError(Exception):
    """Base exception for upload handling."""
    pass

class InvalidFileTypeError(UploadError):
    """Raised when a file's MIME type does not match its field."""
    pass

class FileTooLargeError(UploadError):
    """Raised when a file exceeds max_file_size."""
    pass

class StoredFile(BaseModel):
    """A file written to the upload directory."""
    filename: str
    original_name: str
    content_type: str
    size: int
    path: str
    public_path: str
    content: bytes = Field(default=b'', repr=False, exclude=True)
    
    def describe(self) -> dict:
        """Upload response body fragment."""
        return {
            'filename': self.filename,
            'originalname': self.original_name,
            'mimetype': self.content_type,
            'size': self.size,
            'path': self.public_path
        }

def validate_upload(kind: str, content_type: Optional[str], size: int, max_size: int) -> None:
    """Check MIME family and size of an upload.
    
    Raises:
        InvalidFileTypeError: Wrong MIME family for this kind of upload
        FileTooLargeError: File is larger than max_size bytes
    """
    prefix = MIME_PREFIXES[kind]
    if not content_type or not content_type.startswith(prefix):
        label = 'audio' if kind == AUDIO else 'image'
        raise InvalidFileTypeError(f"Only {label} files are allowed")
    if size > max_size:
        raise FileTooLargeError(f"File exceeds maximum size of {max_size} bytes")

def unique_filename(field: str, original_name: Optional[str]) -> str:
    """``<field>-<epoch ms>-<random><ext>``"""
    ext = os.path.splitext(original_name or '')[1].lower()
    return f"{field}-{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}{ext}"

async def save_upload(
    upload: UploadFile,
    field: str,
    kind: str,
    upload_dir: Optional[str] = None,
    max_size: Optional[int] = None
) -> StoredFile:
    """Validate an uploaded file and write it to the upload directory.
    
    Args:
        upload: The multipart file
        field: Form field name, used as filename prefix
        kind: AUDIO or IMAGES
        upload_dir: Base directory (defaults to settings)
        max_size: Size limit in bytes (defaults to settings)
        
    Returns:
        The stored file, including its content for further pinning
        
    Raises:
        UploadError: If validation fails
    """
    upload_dir = upload_dir or settings_conf['upload_dir']
    max_size = max_size or settings_conf['max_file_size']
    
    content = await upload.read()
    validate_upload(kind, upload.content_type, len(content), max_size)
    
    directory = Path(upload_dir) / kind
    directory.mkdir(parents=True, exist_ok=True)
    
    filename = unique_filename(field, upload.filename)
    file_path = directory / filename
    
    async with aiofiles.open(file_path, 'wb') as f:
        await f.write(content)
    
    logger.info(f"Stored {kind} upload {filename} ({len(content)} bytes)")
    return StoredFile(
        filename=filename,
        original_name=upload.filename or filename,
        content_type=upload.content_type,
        size=len(content),
        path=str(file_path),
        public_path=f"/uploads/{kind}/{filename}",
        content=content
    )
