"""Tipping module for direct artist support.

Tips are one-off transfers recorded between two users, optionally tied to a
riff and to one of the recipient's tipping tiers.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Any

from config import settings_conf
from database import get_pool
from database.lib.records import to_iso, to_number
from riffs import RiffNotFoundError
from users import fetch_user

logger = logging.getLogger(__name__)

__all__ = [
    'TipManager', 'TipError', 'TierNotFoundError', 'TipAmountError',
    'DEFAULT_TIERS', 'format_tip', 'format_tier', 'TIER_FIELDS'
]

# Tiers shown for artists that have not defined their own
DEFAULT_TIERS = [
    {
        'name': 'Supporter',
        'amount': 100,
        'description': 'Access to exclusive behind-the-scenes content and early previews of upcoming riffs.',
        'perks': ['Exclusive updates', 'Early access to new riffs']
    },
    {
        'name': 'Enthusiast',
        'amount': 250,
        'description': 'All previous perks plus access to private livestreams and unreleased demo riffs.',
        'perks': ['Private livestreams', 'Unreleased demos', 'Monthly Q&A']
    },
    {
        'name': 'Patron',
        'amount': 500,
        'description': 'All previous perks plus personalized feedback on your own music and exclusive collaborations.',
        'perks': ['Personalized feedback', 'Exclusive collaborations', 'Discord role']
    }
]

# Tier fields that may be changed after creation
TIER_FIELDS = {'name', 'amount', 'description', 'perks'}

TIER_COLUMNS = 'id, user_id, name, amount, description, perks, created_at'

class TipError(Exception):
    """Base exception for tipping operations."""
    pass

class TierNotFoundError(TipError, LookupError):
    """Raised when a tipping tier is not found."""
    pass

class TipAmountError(TipError):
    """Raised when a tip or tier amount is not positive."""
    pass

def format_tip(row: Any) -> Dict[str, Any]:
    return {
        'id': row['id'],
        'userId': row['user_id'],
        'recipientId': row['recipient_id'],
        'riffId': row['riff_id'],
        'amount': to_number(row['amount']),
        'currency': row['currency'],
        'message': row['message'],
        'tierId': row['tier_id'],
        'createdAt': to_iso(row['created_at'])
    }

def format_tier(row: Any, is_default: bool = False) -> Dict[str, Any]:
    return {
        'id': None if is_default else row['id'],
        'name': row['name'],
        'amount': row['amount'],
        'description': row['description'],
        'perks': list(row['perks'] or []),
        'isDefault': is_default
    }

class TipManager:
    """Manager class for tips and tipping tiers."""
    
    def __init__(self, pool=None):
        """Initialize the tip manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def send_tip(
        self,
        sender_wallet: str,
        recipient_wallet: str,
        amount: Decimal,
        riff_id: Optional[int] = None,
        currency: Optional[str] = None,
        message: Optional[str] = None,
        tier_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """Record a tip from one user to another.
        
        Args:
            sender_wallet: Wallet address of the tipper
            recipient_wallet: Wallet address of the artist
            amount: Tip amount
            riff_id: Optional riff the tip is for
            currency: Currency code (defaults to the configured currency)
            message: Optional note
            tier_id: Optional tipping tier
            
        Returns:
            Dict with a message and the created tip
            
        Raises:
            TipAmountError: If the amount is not positive
            UserNotFoundError: If the sender or recipient does not exist
            RiffNotFoundError: If riff_id does not exist
            TierNotFoundError: If tier_id does not exist
        """
        await self.ensure_pool()
        amount = Decimal(str(amount))
        if amount <= 0:
            raise TipAmountError("Tip amount must be positive")
        currency = currency or settings_conf['default_currency']
        
        async with self.pool.acquire() as conn:
            sender = await fetch_user(conn, sender_wallet, "Sender not found")
            recipient = await fetch_user(conn, recipient_wallet, "Recipient not found")
            
            if riff_id is not None:
                exists = await conn.fetchval('SELECT EXISTS(SELECT 1 FROM riffs WHERE id = $1)', riff_id)
                if not exists:
                    raise RiffNotFoundError("Riff not found")
            
            if tier_id is not None:
                exists = await conn.fetchval(
                    'SELECT EXISTS(SELECT 1 FROM tipping_tiers WHERE id = $1)',
                    tier_id
                )
                if not exists:
                    raise TierNotFoundError("Tipping tier not found")
            
            row = await conn.fetchrow(
                '''
                INSERT INTO tips (user_id, recipient_id, riff_id, amount, currency, message, tier_id)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING id, user_id, recipient_id, riff_id, amount, currency, message, tier_id, created_at
                ''',
                sender['id'],
                recipient['id'],
                riff_id,
                amount,
                currency,
                message or '',
                tier_id
            )
            
        logger.info(f"Sent tip of {amount} {currency} from {sender_wallet} to {recipient_wallet}")
        return {'message': 'Tip sent successfully', 'tip': format_tip(row)}
    
    async def get_tiers(self, wallet_address: str) -> List[Dict[str, Any]]:
        """Get an artist's tipping tiers.
        
        Falls back to the global tiers, then to DEFAULT_TIERS.
        
        Raises:
            UserNotFoundError: If the artist does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            rows = await conn.fetch(
                f'SELECT {TIER_COLUMNS} FROM tipping_tiers WHERE user_id = $1 ORDER BY amount, id',
                user['id']
            )
            if not rows:
                rows = await conn.fetch(
                    f'SELECT {TIER_COLUMNS} FROM tipping_tiers WHERE user_id IS NULL ORDER BY amount, id'
                )
                
        if rows:
            return [format_tier(row) for row in rows]
        return [format_tier(tier, is_default=True) for tier in DEFAULT_TIERS]
    
    async def create_tier(
        self,
        wallet_address: str,
        name: str,
        amount: int,
        description: Optional[str] = None,
        perks: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Create a tipping tier for an artist.
        
        Raises:
            TipAmountError: If the amount is not positive
            UserNotFoundError: If the artist does not exist
        """
        await self.ensure_pool()
        if amount <= 0:
            raise TipAmountError("Tier amount must be positive")
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            row = await conn.fetchrow(
                f'''
                INSERT INTO tipping_tiers (user_id, name, amount, description, perks)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {TIER_COLUMNS}
                ''',
                user['id'],
                name,
                amount,
                description,
                perks or []
            )
            
        logger.info(f"Created tipping tier {row['id']} '{name}' for {wallet_address}")
        return {'message': 'Tipping tier created successfully', 'tier': format_tier(row)}
    
    async def update_tier(self, tier_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Update fields of a tipping tier.
        
        Raises:
            TierNotFoundError: If the tier does not exist
            TipAmountError: If a new amount is not positive
        """
        await self.ensure_pool()
        
        fields = {k: v for k, v in updates.items() if k in TIER_FIELDS and v is not None}
        if 'amount' in fields and fields['amount'] <= 0:
            raise TipAmountError("Tier amount must be positive")
        
        async with self.pool.acquire() as conn:
            if not fields:
                row = await conn.fetchrow(f'SELECT {TIER_COLUMNS} FROM tipping_tiers WHERE id = $1', tier_id)
            else:
                columns = sorted(fields)
                assignments = ', '.join(f"{column} = ${idx}" for idx, column in enumerate(columns, start=2))
                row = await conn.fetchrow(
                    f'''
                    UPDATE tipping_tiers
                    SET {assignments}, updated_at = now()
                    WHERE id = $1
                    RETURNING {TIER_COLUMNS}
                    ''',
                    tier_id,
                    *[fields[column] for column in columns]
                )
                
        if not row:
            raise TierNotFoundError("Tipping tier not found")
        
        logger.info(f"Updated tipping tier {tier_id}")
        return {'message': 'Tipping tier updated successfully', 'tier': format_tier(row)}
    
    async def delete_tier(self, tier_id: int) -> Dict[str, Any]:
        """Delete a tipping tier.
        
        Raises:
            TierNotFoundError: If the tier does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            deleted = await conn.fetchval('DELETE FROM tipping_tiers WHERE id = $1 RETURNING id', tier_id)
            
        if deleted is None:
            raise TierNotFoundError("Tipping tier not found")
        
        logger.info(f"Deleted tipping tier {tier_id}")
        return {'message': 'Tipping tier deleted successfully', 'id': tier_id}
