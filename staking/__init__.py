"""Staking module for locking tokens on riffs to share in their royalties.

This module provides functionality for:
- Creating stakes with a lock period resolved from riff, artist or global terms
- Withdrawing stakes once their lock period has passed
- Reading and claiming accrued royalties

Royalties are only read, decremented or zeroed here; accrual happens elsewhere.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Any

import asyncpg

from database import get_pool
from database.lib.records import to_iso, to_day, to_number
from riffs import RiffNotFoundError
from users import fetch_user, user_summary, summary_columns
from .lifecycle import compute_unlock_at, is_unlocked, stake_status, utcnow, LOCKED, UNLOCKED
from .settings import (
    StakingSettingsManager, resolve_staking_terms, fetch_settings_row
)

logger = logging.getLogger(__name__)

__all__ = [
    'StakeManager', 'StakingSettingsManager', 'StakeError', 'StakeNotFoundError',
    'StakeLockedError', 'NotStakableError', 'SelfStakeError', 'DuplicateStakeError',
    'StakeAmountError', 'NoRewardsError', 'compute_unlock_at', 'is_unlocked',
    'stake_status', 'resolve_staking_terms', 'format_stake', 'LOCKED', 'UNLOCKED'
]

# Stakers listed on a riff's staking panel
TOP_STAKERS = 5

class StakeError(Exception):
    """Base exception for staking operations."""
    pass

class StakeNotFoundError(StakeError, LookupError):
    """Raised when no matching stake exists."""
    pass

class StakeLockedError(StakeError):
    """Raised when withdrawing a stake before its unlock time."""
    def __init__(self, unlock_at: datetime):
        self.unlock_at = unlock_at
        super().__init__("Stake is still locked")

class NotStakableError(StakeError):
    """Raised when staking on a riff that does not accept stakes."""
    pass

class SelfStakeError(StakeError):
    """Raised when a creator stakes on their own riff."""
    pass

class DuplicateStakeError(StakeError):
    """Raised when the user already has an active stake on the riff."""
    pass

class StakeAmountError(StakeError):
    """Raised when the stake amount is not positive or below the minimum."""
    pass

class NoRewardsError(StakeError):
    """Raised when claiming rewards on a stake with nothing accrued."""
    pass

def format_stake(row: Any) -> Dict[str, Any]:
    return {
        'id': row['id'],
        'userId': row['user_id'],
        'riffId': row['riff_id'],
        'amount': to_number(row['amount']),
        'stakedAt': to_iso(row['staked_at']),
        'unlockAt': to_iso(row['unlock_at']),
        'isUnlocked': row['is_unlocked'],
        'isActive': row['is_active'],
        'royaltiesEarned': to_number(row['royalties_earned']),
        'createdAt': to_iso(row['created_at'])
    }

STAKE_COLUMNS = '''
    id, user_id, riff_id, amount, staked_at, unlock_at, is_unlocked,
    is_active, royalties_earned, created_at
'''

class StakeManager:
    """Manager class for handling stake operations."""
    
    def __init__(self, pool=None):
        """Initialize the stake manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def _fetch_riff(self, conn, riff_id: int) -> Any:
        riff = await conn.fetchrow(
            '''
            SELECT id, title, creator_id, is_stakable, staking_royalty_share,
                   minimum_stake_amount, lock_period_days, use_profile_defaults
            FROM riffs
            WHERE id = $1
            ''',
            riff_id
        )
        if not riff:
            raise RiffNotFoundError("Riff not found")
        return riff
    
    async def get_riff_staking_info(self, riff_id: int) -> Dict[str, Any]:
        """Get staking totals and top stakers for a riff.
        
        Raises:
            RiffNotFoundError: If the riff does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            riff = await self._fetch_riff(conn, riff_id)
            totals = await conn.fetchrow(
                '''
                SELECT COUNT(*) AS total_stakes, COALESCE(SUM(amount), 0) AS total_amount
                FROM stakes
                WHERE riff_id = $1 AND is_active = true
                ''',
                riff_id
            )
            top = await conn.fetch(
                f'''
                SELECT st.id, st.amount, st.staked_at, {summary_columns('u', 'staker')}
                FROM stakes st
                JOIN users u ON u.id = st.user_id
                WHERE st.riff_id = $1 AND st.is_active = true
                ORDER BY st.amount DESC, st.staked_at ASC
                LIMIT {TOP_STAKERS}
                ''',
                riff_id
            )
            
        return {
            'riffId': riff['id'],
            'isStakable': riff['is_stakable'],
            'stakingRoyaltyShare': riff['staking_royalty_share'],
            'totalStakes': totals['total_stakes'],
            'totalStakeAmount': to_number(totals['total_amount']),
            'topStakers': [
                {
                    'stakeId': row['id'],
                    'amount': to_number(row['amount']),
                    'stakedAt': to_iso(row['staked_at']),
                    'user': user_summary(row, 'staker')
                }
                for row in top
            ]
        }
    
    async def stake(self, riff_id: int, wallet_address: str, amount: Decimal,
                    now: Optional[datetime] = None) -> Dict[str, Any]:
        """Stake tokens on a riff.
        
        Args:
            riff_id: Riff to stake on
            wallet_address: Staker's wallet address
            amount: Amount to lock
            now: Stake time (defaults to the current time)
            
        Returns:
            Dict with a message and the created stake
            
        Raises:
            UserNotFoundError: If the staker does not exist
            RiffNotFoundError: If the riff does not exist
            NotStakableError: If the riff does not accept stakes
            SelfStakeError: If the staker created the riff
            DuplicateStakeError: If the staker already has an active stake on the riff
            StakeAmountError: If the amount is not positive or below the minimum
        """
        await self.ensure_pool()
        amount = Decimal(str(amount))
        if amount <= 0:
            raise StakeAmountError("Stake amount must be positive")
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            riff = await self._fetch_riff(conn, riff_id)
            
            if not riff['is_stakable']:
                raise NotStakableError("This riff is not stakable")
            if riff['creator_id'] == user['id']:
                raise SelfStakeError("You cannot stake on your own riff")
            
            existing = await conn.fetchval(
                'SELECT id FROM stakes WHERE user_id = $1 AND riff_id = $2 AND is_active = true',
                user['id'],
                riff_id
            )
            if existing:
                raise DuplicateStakeError("You already have a stake on this riff")
            
            settings_row = None
            if riff['use_profile_defaults'] is not False:
                settings_row = await fetch_settings_row(conn, riff['creator_id'])
            terms = resolve_staking_terms(riff, settings_row)
            
            if amount < terms['minimum_stake_amount']:
                raise StakeAmountError(f"Minimum stake amount is {terms['minimum_stake_amount']}")
            
            staked_at = now or utcnow()
            unlock_at = compute_unlock_at(staked_at, terms['lock_period_days'])
            
            try:
                row = await conn.fetchrow(
                    f'''
                    INSERT INTO stakes (user_id, riff_id, amount, staked_at, unlock_at)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING {STAKE_COLUMNS}
                    ''',
                    user['id'],
                    riff_id,
                    amount,
                    staked_at,
                    unlock_at
                )
            except asyncpg.exceptions.UniqueViolationError:
                raise DuplicateStakeError("You already have a stake on this riff")
            
        logger.info(
            f"Stake {row['id']}: {wallet_address} staked {amount} on riff {riff_id} "
            f"until {unlock_at.isoformat()}"
        )
        return {'message': 'Successfully staked on riff', 'stake': format_stake(row)}
    
    async def _withdraw(self, conn, stake: Any, now: Optional[datetime]) -> Dict[str, Any]:
        if not is_unlocked(stake, now):
            raise StakeLockedError(stake['unlock_at'])
        
        row = await conn.fetchrow(
            f'''
            UPDATE stakes
            SET is_unlocked = true, is_active = false, updated_at = now()
            WHERE id = $1 AND is_active = true
            RETURNING {STAKE_COLUMNS}
            ''',
            stake['id']
        )
        if not row:
            raise StakeNotFoundError("Stake not found")
        
        logger.info(f"Stake {row['id']} on riff {row['riff_id']} withdrawn")
        return {
            'message': 'Successfully unstaked',
            'stakeId': row['id'],
            'amount': to_number(row['amount']),
            'royaltiesEarned': to_number(row['royalties_earned'])
        }
    
    async def unstake(self, riff_id: int, wallet_address: str,
                      now: Optional[datetime] = None) -> Dict[str, Any]:
        """Withdraw a user's active stake on a riff.
        
        Accrued royalties are reported but left on the stake for claiming.
        
        Raises:
            UserNotFoundError: If the user does not exist
            StakeNotFoundError: If the user has no active stake on the riff
            StakeLockedError: If the stake is still within its lock period
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            stake = await conn.fetchrow(
                f'''
                SELECT {STAKE_COLUMNS} FROM stakes
                WHERE user_id = $1 AND riff_id = $2 AND is_active = true
                ''',
                user['id'],
                riff_id
            )
            if not stake:
                raise StakeNotFoundError("Stake not found")
            
            return await self._withdraw(conn, stake, now)
    
    async def unstake_by_id(self, stake_id: int, wallet_address: str,
                            now: Optional[datetime] = None) -> Dict[str, Any]:
        """Withdraw one of the user's active stakes by id.
        
        Raises:
            UserNotFoundError: If the user does not exist
            StakeNotFoundError: If the stake does not exist, is withdrawn or belongs to someone else
            StakeLockedError: If the stake is still within its lock period
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            stake = await conn.fetchrow(
                f'''
                SELECT {STAKE_COLUMNS} FROM stakes
                WHERE id = $1 AND user_id = $2 AND is_active = true
                ''',
                stake_id,
                user['id']
            )
            if not stake:
                raise StakeNotFoundError("Stake not found")
            
            return await self._withdraw(conn, stake, now)
    
    async def get_user_stakes(self, wallet_address: str,
                              now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Get a user's active stakes with riff and artist details.
        
        Raises:
            UserNotFoundError: If the user does not exist
        """
        await self.ensure_pool()
        now = now or utcnow()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            rows = await conn.fetch(
                f'''
                SELECT st.id, st.riff_id, st.amount, st.staked_at, st.unlock_at,
                       st.is_unlocked, st.royalties_earned,
                       r.title, r.cover_image, r.staking_royalty_share,
                       {summary_columns('a', 'artist')}
                FROM stakes st
                JOIN riffs r ON r.id = st.riff_id
                JOIN users a ON a.id = r.creator_id
                WHERE st.user_id = $1 AND st.is_active = true
                ORDER BY st.staked_at DESC
                ''',
                user['id']
            )
            
        return [
            {
                'id': row['id'],
                'riffId': row['riff_id'],
                'title': row['title'],
                'coverImage': row['cover_image'],
                'artist': user_summary(row, 'artist'),
                'stakedAmount': to_number(row['amount']),
                'royaltiesEarned': to_number(row['royalties_earned']),
                'royaltyShare': row['staking_royalty_share'],
                'stakedAt': to_day(row['staked_at']),
                'unlockAt': to_day(row['unlock_at']),
                'status': stake_status(row, now)
            }
            for row in rows
        ]
    
    async def get_total_royalties(self, wallet_address: str) -> Dict[str, Any]:
        """Sum of unclaimed royalties over all of a user's stakes.
        
        Raises:
            UserNotFoundError: If the user does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            total = await conn.fetchval(
                'SELECT COALESCE(SUM(royalties_earned), 0) FROM stakes WHERE user_id = $1',
                user['id']
            )
            
        return {'walletAddress': wallet_address, 'totalRoyalties': to_number(total)}
    
    async def claim_royalties(self, wallet_address: str, claims: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Claim amounts from several stakes at once.
        
        Every referenced stake must belong to the user; nothing is updated
        otherwise. Each stake's balance is decremented by the claimed amount,
        floored at zero.
        
        Args:
            wallet_address: Claiming user's wallet address
            claims: List of ``{'stake_id': int, 'amount': Decimal}``
            
        Returns:
            Dict with ``totalClaimed`` and ``updatedStakes``
            
        Raises:
            UserNotFoundError: If the user does not exist
            StakeNotFoundError: If any stake is missing or belongs to someone else
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            stake_ids = list(dict.fromkeys(claim['stake_id'] for claim in claims))
            rows = await conn.fetch(
                'SELECT id, royalties_earned FROM stakes WHERE user_id = $1 AND id = ANY($2::int8[])',
                user['id'],
                stake_ids
            )
            balances = {row['id']: Decimal(row['royalties_earned']) for row in rows}
            
            missing = [stake_id for stake_id in stake_ids if stake_id not in balances]
            if missing:
                raise StakeNotFoundError(f"Stake {missing[0]} not found")
            
            total_claimed = Decimal('0')
            for claim in claims:
                requested = Decimal(str(claim['amount']))
                current = balances[claim['stake_id']]
                claimed = min(requested, current)
                balances[claim['stake_id']] = current - claimed
                total_claimed += claimed
            
            async with conn.transaction():
                for stake_id in stake_ids:
                    await conn.execute(
                        'UPDATE stakes SET royalties_earned = $2, updated_at = now() WHERE id = $1',
                        stake_id,
                        balances[stake_id]
                    )
                    
        logger.info(f"{wallet_address} claimed {total_claimed} royalties from stakes {stake_ids}")
        return {
            'message': 'Royalties claimed successfully',
            'totalClaimed': to_number(total_claimed),
            'updatedStakes': [
                {'stakeId': stake_id, 'royaltiesEarned': to_number(balances[stake_id])}
                for stake_id in stake_ids
            ]
        }
    
    async def _latest_stake(self, conn, riff_id: int, wallet_address: str) -> Any:
        user = await fetch_user(conn, wallet_address)
        stake = await conn.fetchrow(
            f'''
            SELECT {STAKE_COLUMNS} FROM stakes
            WHERE user_id = $1 AND riff_id = $2
            ORDER BY is_active DESC, staked_at DESC
            LIMIT 1
            ''',
            user['id'],
            riff_id
        )
        if not stake:
            raise StakeNotFoundError("Stake not found")
        return stake
    
    async def get_rewards(self, riff_id: int, wallet_address: str) -> Dict[str, Any]:
        """Unclaimed royalties on the user's stake in a riff.
        
        Raises:
            UserNotFoundError: If the user does not exist
            StakeNotFoundError: If the user never staked on the riff
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            stake = await self._latest_stake(conn, riff_id, wallet_address)
            
        return {
            'stakeId': stake['id'],
            'riffId': stake['riff_id'],
            'isActive': stake['is_active'],
            'rewards': to_number(stake['royalties_earned'])
        }
    
    async def claim_rewards(self, riff_id: int, wallet_address: str) -> Dict[str, Any]:
        """Claim all unclaimed royalties on the user's stake in a riff.
        
        Raises:
            UserNotFoundError: If the user does not exist
            StakeNotFoundError: If the user never staked on the riff
            NoRewardsError: If nothing has accrued
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            stake = await self._latest_stake(conn, riff_id, wallet_address)
            claimed = await conn.fetchval(
                '''
                UPDATE stakes
                SET royalties_earned = 0, updated_at = now()
                WHERE id = $1 AND royalties_earned > 0
                RETURNING $2::numeric
                ''',
                stake['id'],
                stake['royalties_earned']
            )
            
        if claimed is None:
            raise NoRewardsError("No rewards to claim")
        
        logger.info(f"{wallet_address} claimed {claimed} rewards from stake {stake['id']}")
        return {
            'message': 'Rewards claimed successfully',
            'stakeId': stake['id'],
            'claimedAmount': to_number(claimed)
        }
