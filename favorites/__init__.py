"""Favorites module for users bookmarking riffs.

A favorite is the (user, riff) pair itself; adding twice is rejected rather
than duplicated.
"""

import logging
from typing import Dict, Any

from database import get_pool
from database.lib.records import to_iso
from riffs import RiffNotFoundError, format_riff, riff_select
from users import fetch_user

logger = logging.getLogger(__name__)

__all__ = ['FavoriteManager', 'FavoriteError', 'FavoriteExistsError', 'FavoriteNotFoundError']

class FavoriteError(Exception):
    """Base exception for favorite operations."""
    pass

class FavoriteExistsError(FavoriteError):
    """Raised when a riff is already in the user's favorites."""
    pass

class FavoriteNotFoundError(FavoriteError, LookupError):
    """Raised when removing a favorite that does not exist."""
    pass

class FavoriteManager:
    """Manager class for handling favorites."""
    
    def __init__(self, pool=None):
        """Initialize the favorite manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def list_favorites(self, wallet_address: str, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        """Get a page of a user's favorite riffs, most recently added first.
        
        Raises:
            UserNotFoundError: If the user does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            total = await conn.fetchval('SELECT COUNT(*) FROM favorites WHERE user_id = $1', user['id'])
            rows = await conn.fetch(
                f'''
                {riff_select('f.created_at AS favorited_at')}
                JOIN favorites f ON f.riff_id = r.id
                WHERE f.user_id = $1
                ORDER BY f.created_at DESC
                LIMIT $2 OFFSET $3
                ''',
                user['id'],
                limit,
                offset
            )
            
        favorites = []
        for row in rows:
            riff = format_riff(row)
            riff['favoritedAt'] = to_iso(row['favorited_at'])
            favorites.append(riff)
        
        return {'total': total, 'favorites': favorites, 'limit': limit, 'offset': offset}
    
    async def add(self, riff_id: int, wallet_address: str) -> Dict[str, Any]:
        """Add a riff to a user's favorites.
        
        Raises:
            UserNotFoundError: If the user does not exist
            RiffNotFoundError: If the riff does not exist
            FavoriteExistsError: If the riff is already a favorite
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            exists = await conn.fetchval('SELECT EXISTS(SELECT 1 FROM riffs WHERE id = $1)', riff_id)
            if not exists:
                raise RiffNotFoundError("Riff not found")
            
            row = await conn.fetchrow(
                '''
                INSERT INTO favorites (user_id, riff_id)
                VALUES ($1, $2)
                ON CONFLICT (user_id, riff_id) DO NOTHING
                RETURNING user_id, riff_id, created_at
                ''',
                user['id'],
                riff_id
            )
            
        if not row:
            raise FavoriteExistsError("Riff already in favorites")
        
        logger.info(f"{wallet_address} added riff {riff_id} to favorites")
        return {
            'message': 'Riff added to favorites',
            'favorite': {'userId': row['user_id'], 'riffId': row['riff_id'], 'createdAt': to_iso(row['created_at'])}
        }
    
    async def remove(self, riff_id: int, wallet_address: str) -> Dict[str, Any]:
        """Remove a riff from a user's favorites.
        
        Raises:
            UserNotFoundError: If the user does not exist
            FavoriteNotFoundError: If the riff is not a favorite
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            deleted = await conn.fetchval(
                'DELETE FROM favorites WHERE user_id = $1 AND riff_id = $2 RETURNING riff_id',
                user['id'],
                riff_id
            )
            
        if deleted is None:
            raise FavoriteNotFoundError("Favorite not found")
        
        logger.info(f"{wallet_address} removed riff {riff_id} from favorites")
        return {'message': 'Riff removed from favorites'}
    
    async def check(self, riff_id: int, wallet_address: str) -> Dict[str, bool]:
        """Whether a riff is in a user's favorites.
        
        Raises:
            UserNotFoundError: If the user does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            exists = await conn.fetchval(
                'SELECT EXISTS(SELECT 1 FROM favorites WHERE user_id = $1 AND riff_id = $2)',
                user['id'],
                riff_id
            )
            
        return {'isFavorite': bool(exists)}
