"""Per-artist staking defaults and resolution of the terms a new stake gets.

Terms come from the first source that applies:

1. the riff itself, when ``use_profile_defaults`` is false
2. the creator's staking_settings row
3. the global staking_settings row (``user_id IS NULL``)
4. the configured defaults
"""
import logging
from typing import Any, Dict, Optional

from config import settings_conf
from database import get_pool
from users import fetch_user

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = (
    'default_staking_enabled',
    'default_royalty_share',
    'lock_period_days',
    'minimum_stake_amount'
)

def configured_defaults() -> Dict[str, Any]:
    return {
        'default_staking_enabled': True,
        'default_royalty_share': settings_conf['default_royalty_share'],
        'lock_period_days': settings_conf['lock_period_days'],
        'minimum_stake_amount': settings_conf['minimum_stake_amount']
    }

def resolve_staking_terms(riff: Any, settings_row: Optional[Any] = None,
                          defaults: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
    """Lock period and minimum amount for a new stake on ``riff``.
    
    Args:
        riff: Riff row with its own staking columns
        settings_row: Creator's or global staking_settings row, if any
        defaults: Fallback values (configured defaults when omitted)
    """
    if riff['use_profile_defaults'] is False:
        source = riff
    elif settings_row is not None:
        source = settings_row
    else:
        source = defaults or configured_defaults()
    return {
        'lock_period_days': int(source['lock_period_days']),
        'minimum_stake_amount': int(source['minimum_stake_amount'])
    }

async def fetch_settings_row(conn, user_id: Optional[int]) -> Optional[Any]:
    """The user's settings row, else the global row, else None."""
    return await conn.fetchrow(
        '''
        SELECT user_id, default_staking_enabled, default_royalty_share,
               lock_period_days, minimum_stake_amount
        FROM staking_settings
        WHERE user_id = $1 OR user_id IS NULL
        ORDER BY user_id NULLS LAST
        LIMIT 1
        ''',
        user_id
    )

def format_settings(source: Any, wallet_address: Optional[str], is_default: bool) -> Dict[str, Any]:
    return {
        'walletAddress': wallet_address,
        'defaultStakingEnabled': source['default_staking_enabled'],
        'defaultRoyaltyShare': source['default_royalty_share'],
        'lockPeriodDays': source['lock_period_days'],
        'minimumStakeAmount': source['minimum_stake_amount'],
        'isDefault': is_default
    }

class StakingSettingsManager:
    """Manager class for artist staking defaults."""
    
    def __init__(self, pool=None):
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def get_settings(self, wallet_address: str) -> Dict[str, Any]:
        """Effective staking settings for an artist.
        
        Raises:
            UserNotFoundError: If the user does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            row = await fetch_settings_row(conn, user['id'])
            
        if row is None:
            return format_settings(configured_defaults(), wallet_address, True)
        return format_settings(row, wallet_address, row['user_id'] is None)
    
    async def update_settings(self, wallet_address: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Create or update an artist's own settings row.
        
        Fields missing from ``updates`` keep their current effective value.
        
        Raises:
            UserNotFoundError: If the user does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            current = await fetch_settings_row(conn, user['id'])
            values = dict(configured_defaults() if current is None else
                          {field: current[field] for field in SETTINGS_FIELDS})
            values.update({k: v for k, v in updates.items() if k in SETTINGS_FIELDS and v is not None})
            
            row = await conn.fetchrow(
                '''
                INSERT INTO staking_settings (
                    user_id, default_staking_enabled, default_royalty_share,
                    lock_period_days, minimum_stake_amount
                )
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT (user_id) DO UPDATE SET
                    default_staking_enabled = EXCLUDED.default_staking_enabled,
                    default_royalty_share = EXCLUDED.default_royalty_share,
                    lock_period_days = EXCLUDED.lock_period_days,
                    minimum_stake_amount = EXCLUDED.minimum_stake_amount,
                    updated_at = now()
                RETURNING user_id, default_staking_enabled, default_royalty_share,
                          lock_period_days, minimum_stake_amount
                ''',
                user['id'],
                values['default_staking_enabled'],
                values['default_royalty_share'],
                values['lock_period_days'],
                values['minimum_stake_amount']
            )
            
        logger.info(f"Updated staking settings for {wallet_address}")
        return format_settings(row, wallet_address, False)
