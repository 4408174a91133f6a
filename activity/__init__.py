"""Activity module for the marketplace event feed.

The feed is not stored: tips, stakes, uploads and favorites are read from
their own tables, merged in memory and sliced for pagination.
"""

import logging
from typing import Dict, Any

from database import get_pool
from users import fetch_user
from . import queries
from .merge import merge_activity, paginate, tip_entry, stake_entry, upload_entry, favorite_entry

logger = logging.getLogger(__name__)

__all__ = [
    'ActivityManager', 'merge_activity', 'paginate',
    'tip_entry', 'stake_entry', 'upload_entry', 'favorite_entry'
]

class ActivityManager:
    """Manager class for reading the activity feed."""
    
    def __init__(self, pool=None):
        """Initialize the activity manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def get_all_activity(self, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        """Get the marketplace-wide feed.
        
        Each source is read up to ``offset + limit`` rows, which is enough to
        fill the requested page after merging.
        
        Args:
            limit: Page size
            offset: Number of merged entries to skip
            
        Returns:
            Dict with ``total``, ``activity``, ``limit`` and ``offset``
        """
        await self.ensure_pool()
        window = offset + limit
        
        async with self.pool.acquire() as conn:
            tips = await conn.fetch(queries.limited(queries.TIPS, '', 't.created_at', 1), window)
            stakes = await conn.fetch(queries.limited(queries.STAKES, '', 'st.created_at', 1), window)
            uploads = await conn.fetch(queries.limited(queries.UPLOADS, '', 'r.created_at', 1), window)
            favorites = await conn.fetch(queries.limited(queries.FAVORITES, '', 'f.created_at', 1), window)
            total = await conn.fetchval(
                '''
                SELECT (SELECT COUNT(*) FROM tips)
                     + (SELECT COUNT(*) FROM stakes)
                     + (SELECT COUNT(*) FROM riffs)
                     + (SELECT COUNT(*) FROM favorites)
                '''
            )
            
        return {
            'total': total,
            'activity': paginate(merge_activity(tips, stakes, uploads, favorites), limit, offset),
            'limit': limit,
            'offset': offset
        }
    
    async def get_user_activity(self, wallet_address: str, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        """Get the feed of one user: tips sent or received, stakes, uploads and favorites.
        
        Raises:
            UserNotFoundError: If the user does not exist
        """
        await self.ensure_pool()
        window = offset + limit
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            user_id = user['id']
            
            tips = await conn.fetch(
                queries.limited(queries.TIPS, 'WHERE t.user_id = $1 OR t.recipient_id = $1', 't.created_at', 2),
                user_id, window
            )
            stakes = await conn.fetch(
                queries.limited(queries.STAKES, 'WHERE st.user_id = $1', 'st.created_at', 2),
                user_id, window
            )
            uploads = await conn.fetch(
                queries.limited(queries.UPLOADS, 'WHERE r.creator_id = $1', 'r.created_at', 2),
                user_id, window
            )
            favorites = await conn.fetch(
                queries.limited(queries.FAVORITES, 'WHERE f.user_id = $1', 'f.created_at', 2),
                user_id, window
            )
            total = await conn.fetchval(
                '''
                SELECT (SELECT COUNT(*) FROM tips WHERE user_id = $1 OR recipient_id = $1)
                     + (SELECT COUNT(*) FROM stakes WHERE user_id = $1)
                     + (SELECT COUNT(*) FROM riffs WHERE creator_id = $1)
                     + (SELECT COUNT(*) FROM favorites WHERE user_id = $1)
                ''',
                user_id
            )
            
        return {
            'total': total,
            'activity': paginate(merge_activity(tips, stakes, uploads, favorites), limit, offset),
            'limit': limit,
            'offset': offset
        }
