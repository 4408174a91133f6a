"""Users module for wallet-identified marketplace profiles.

This module provides functionality for:
- Lazily creating a user the first time a wallet's profile is requested
- Updating profile fields and social links
- Listing a user's minted riffs and collections
- Replacing avatar and cover images
"""

import logging
from typing import Dict, List, Optional, Any

from database import get_pool
from database.lib.records import to_number
from .fetch_user import (
    fetch_user, get_or_create_user, default_name,
    UserError, UserNotFoundError, USER_COLUMNS
)
from .format_user import format_user, user_summary, summary_columns

logger = logging.getLogger(__name__)

__all__ = [
    'UserManager', 'UserError', 'UserNotFoundError', 'fetch_user',
    'get_or_create_user', 'default_name', 'format_user', 'user_summary',
    'summary_columns', 'MUTABLE_FIELDS'
]

# User-mutable profile fields
MUTABLE_FIELDS = {
    'name',
    'bio',
    'location',
    'ens_name',
    'twitter_url',
    'instagram_url',
    'website_url',
    'genres',
    'influences'
}

# Columns declared NOT NULL; a null update leaves them unchanged
REQUIRED_FIELDS = {'name', 'genres', 'influences'}

class UserManager:
    """Manager class for handling user profile operations."""
    
    def __init__(self, pool=None):
        """Initialize the user manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def get_profile(self, wallet_address: str) -> Dict[str, Any]:
        """Get a user's profile with activity stats, creating the user if new.
        
        Args:
            wallet_address: Wallet address identifying the user
            
        Returns:
            Dict containing the profile and a ``stats`` block
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await get_or_create_user(conn, wallet_address)
            
            stats = await conn.fetchrow(
                '''
                SELECT
                    (SELECT COUNT(*) FROM riffs WHERE creator_id = $1) AS total_riffs,
                    (SELECT COALESCE(SUM(amount), 0) FROM tips WHERE recipient_id = $1) AS total_tips,
                    (SELECT COALESCE(SUM(amount), 0) FROM stakes
                     WHERE user_id = $1 AND is_active = true) AS total_staked
                ''',
                user['id']
            )
            
        profile = format_user(user)
        profile['stats'] = {
            'totalRiffs': stats['total_riffs'],
            'totalTips': to_number(stats['total_tips']),
            'totalStaked': to_number(stats['total_staked']),
            'followers': 0
        }
        return profile
    
    async def update_profile(self, wallet_address: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Update mutable profile fields.
        
        Args:
            wallet_address: Wallet address identifying the user
            updates: Field values keyed by column name; unknown keys are ignored,
                as are nulls for required fields
            
        Returns:
            The updated profile
            
        Raises:
            UserNotFoundError: If the user does not exist
        """
        await self.ensure_pool()
        
        fields = {
            k: v for k, v in updates.items()
            if k in MUTABLE_FIELDS and not (v is None and k in REQUIRED_FIELDS)
        }
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            
            if not fields:
                return format_user(user)
            
            update_fields = []
            params = [user['id']]
            for param_idx, (column, value) in enumerate(sorted(fields.items()), start=2):
                update_fields.append(f"{column} = ${param_idx}")
                params.append(value)
            
            row = await conn.fetchrow(
                f'''
                UPDATE users
                SET {", ".join(update_fields)}, updated_at = now()
                WHERE id = $1
                RETURNING {USER_COLUMNS}
                ''',
                *params
            )
            
        logger.info(f"Updated profile fields {sorted(fields)} for {wallet_address}")
        return format_user(row)
    
    async def get_user_nfts(self, wallet_address: str) -> List[Dict[str, Any]]:
        """Get the minted riffs created by a user, newest first.
        
        Raises:
            UserNotFoundError: If the user does not exist
        """
        from riffs.format_riff import format_riff, RIFF_SELECT
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            rows = await conn.fetch(
                f'''
                {RIFF_SELECT}
                WHERE r.creator_id = $1 AND r.is_nft = true
                ORDER BY r.created_at DESC
                ''',
                user['id']
            )
            
        return [format_riff(row) for row in rows]
    
    async def get_user_collections(self, wallet_address: str) -> List[Dict[str, Any]]:
        """Get a user's collections, newest first.
        
        Raises:
            UserNotFoundError: If the user does not exist
        """
        from riff_collections.format_collection import format_collection, COLLECTION_SELECT
        
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            rows = await conn.fetch(
                f'''
                {COLLECTION_SELECT}
                WHERE c.creator_id = $1
                ORDER BY c.created_at DESC
                ''',
                user['id']
            )
            
        return [format_collection(row) for row in rows]
    
    async def set_avatar(self, wallet_address: str, url: str) -> Optional[str]:
        """Store a new avatar reference and return the previous one."""
        return await self._replace_image(wallet_address, 'avatar', url)
    
    async def set_cover(self, wallet_address: str, url: str) -> Optional[str]:
        """Store a new cover image reference and return the previous one."""
        return await self._replace_image(wallet_address, 'cover_image', url)
    
    async def _replace_image(self, wallet_address: str, column: str, url: str) -> Optional[str]:
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await get_or_create_user(conn, wallet_address)
            await conn.execute(
                f'UPDATE users SET {column} = $2, updated_at = now() WHERE id = $1',
                user['id'],
                url
            )
            
        logger.info(f"Updated {column} for {wallet_address}")
        return user[column]
