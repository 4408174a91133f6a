"""Collections module for grouping a creator's riffs."""

import logging
from typing import Dict, List, Optional, Any

from database import get_pool
from users import fetch_user
from .format_collection import format_collection, COLLECTION_SELECT

logger = logging.getLogger(__name__)

__all__ = [
    'CollectionManager', 'CollectionError', 'CollectionNotFoundError',
    'format_collection', 'COLLECTION_SELECT'
]

class CollectionError(Exception):
    """Base exception for collection operations."""
    pass

class CollectionNotFoundError(CollectionError, LookupError):
    """Raised when a collection is not found."""
    pass

class CollectionManager:
    """Manager class for handling collection operations."""
    
    def __init__(self, pool=None):
        """Initialize the collection manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def list_collections(self) -> List[Dict[str, Any]]:
        """Get all collections with their creators, newest first."""
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f'{COLLECTION_SELECT} ORDER BY c.created_at DESC')
            
        return [format_collection(row) for row in rows]
    
    async def get_collection(self, collection_id: int) -> Dict[str, Any]:
        """Get a collection by id.
        
        Raises:
            CollectionNotFoundError: If the collection does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f'{COLLECTION_SELECT} WHERE c.id = $1', collection_id)
            
        if not row:
            raise CollectionNotFoundError("Collection not found")
        return format_collection(row)
    
    async def create_collection(
        self,
        wallet_address: str,
        name: str,
        description: Optional[str] = None,
        cover_image: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create a collection owned by a wallet.
        
        Args:
            wallet_address: Creator's wallet address
            name: Collection name
            description: Optional description
            cover_image: Optional cover image reference
            
        Returns:
            The created collection
            
        Raises:
            UserNotFoundError: If the creator does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            collection_id = await conn.fetchval(
                '''
                INSERT INTO collections (name, description, cover_image, creator_id)
                VALUES ($1, $2, $3, $4)
                RETURNING id
                ''',
                name,
                description,
                cover_image,
                user['id']
            )
            row = await conn.fetchrow(f'{COLLECTION_SELECT} WHERE c.id = $1', collection_id)
            
        logger.info(f"Created collection {collection_id} '{name}' for {wallet_address}")
        return format_collection(row)
    
    async def set_cover(self, collection_id: int, url: str) -> Optional[str]:
        """Store a new cover image and return the previous one.
        
        Raises:
            CollectionNotFoundError: If the collection does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            previous = await conn.fetchrow(
                'SELECT cover_image FROM collections WHERE id = $1',
                collection_id
            )
            if not previous:
                raise CollectionNotFoundError("Collection not found")
            
            await conn.execute(
                'UPDATE collections SET cover_image = $2, updated_at = now() WHERE id = $1',
                collection_id,
                url
            )
            
        logger.info(f"Updated cover image for collection {collection_id}")
        return previous['cover_image']
    
    async def get_collection_riffs(self, collection_id: int) -> List[Dict[str, Any]]:
        """Get the riffs in a collection, newest first.
        
        Raises:
            CollectionNotFoundError: If the collection does not exist
        """
        from riffs.format_riff import format_riff, RIFF_SELECT
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            exists = await conn.fetchval(
                'SELECT EXISTS(SELECT 1 FROM collections WHERE id = $1)',
                collection_id
            )
            if not exists:
                raise CollectionNotFoundError("Collection not found")
            
            rows = await conn.fetch(
                f'{RIFF_SELECT} WHERE r.collection_id = $1 ORDER BY r.created_at DESC',
                collection_id
            )
            
        return [format_riff(row) for row in rows]
