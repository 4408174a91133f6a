"""S3 image storage for avatars, covers and artwork."""
import asyncio
import logging
import time
from functools import partial
from typing import Optional
from urllib.parse import urlparse, unquote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config import settings_conf

logger = logging.getLogger(__name__)

# Built-in placeholder images that are never deleted
DEFAULT_IMAGES = {'/neon-profile.png', '/profile_avatar.jpg'}

class ImageStorageError(Exception):
    """Raised when an S3 operation fails."""
    pass

class S3ImageStorage:
    """S3 bucket client for public images"""
    
    def __init__(
        self,
        bucket_name: Optional[str] = None,
        region: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        client=None
    ):
        self.bucket_name = bucket_name if bucket_name is not None else settings_conf['aws_s3_bucket_name']
        self.region = region or settings_conf['aws_region']
        self._access_key = access_key if access_key is not None else settings_conf['aws_access_key_id']
        self._secret_key = secret_key if secret_key is not None else settings_conf['aws_secret_access_key']
        self._client = client
    
    @property
    def configured(self) -> bool:
        return bool(self.bucket_name)
    
    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                's3',
                region_name=self.region,
                aws_access_key_id=self._access_key or None,
                aws_secret_access_key=self._secret_key or None
            )
        return self._client
    
    def object_url(self, key: str) -> str:
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"
    
    def key_from_url(self, url: str) -> Optional[str]:
        """Object key for a URL produced by this storage, None for foreign URLs."""
        if not url or url in DEFAULT_IMAGES:
            return None
        parsed = urlparse(url)
        if parsed.netloc.endswith('amazonaws.com'):
            return unquote(parsed.path.lstrip('/')) or None
        if '/uploads/' in parsed.path:
            return unquote(parsed.path.split('/uploads/', 1)[1]) or None
        return None
    
    async def _run(self, func, **kwargs):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(func, **kwargs))
        except (ClientError, BotoCoreError) as e:
            raise ImageStorageError(f"S3 request failed: {e}") from e
    
    async def upload_image(self, content: bytes, filename: str, content_type: str, folder: str = 'images') -> str:
        """Upload an image and return its public URL.
        
        Raises:
            ImageStorageError: If the upload fails
        """
        key = f"{folder}/{int(time.time() * 1000)}-{filename}"
        await self._run(
            self.client.put_object,
            Bucket=self.bucket_name,
            Key=key,
            Body=content,
            ContentType=content_type
        )
        logger.info(f"Uploaded image to s3://{self.bucket_name}/{key}")
        return self.object_url(key)
    
    async def delete_image(self, url: Optional[str]) -> bool:
        """Delete a previously uploaded image.
        
        Placeholder images and URLs that do not belong to the bucket are skipped.
        
        Returns:
            True if a delete request was issued
        """
        key = self.key_from_url(url)
        if not key:
            return False
        await self._run(self.client.delete_object, Bucket=self.bucket_name, Key=key)
        logger.info(f"Deleted image s3://{self.bucket_name}/{key}")
        return True
    
    async def get_signed_url(self, key: str, expires_in: int = 3600) -> str:
        """Presigned PUT URL for direct browser uploads."""
        return await self._run(
            self.client.generate_presigned_url,
            ClientMethod='put_object',
            Params={'Bucket': self.bucket_name, 'Key': key},
            ExpiresIn=expires_in
        )
