"""Tests for the staking module."""

import pytest
from datetime import timedelta
from decimal import Decimal

from staking import (
    StakeManager,
    StakingSettingsManager,
    StakeLockedError,
    StakeNotFoundError,
    NotStakableError,
    SelfStakeError,
    DuplicateStakeError,
    StakeAmountError,
    NoRewardsError,
    compute_unlock_at,
    is_unlocked,
    stake_status,
    resolve_staking_terms,
    LOCKED,
    UNLOCKED
)
from riffs import RiffNotFoundError
from staking.settings import configured_defaults
from users import UserNotFoundError
from conftest import make_user

STAKER = make_user(user_id=2, wallet="0xstaker")

def make_riff(**overrides):
    riff = {
        'id': 7,
        'title': 'Test Riff',
        'creator_id': 1,
        'is_stakable': True,
        'staking_royalty_share': 50,
        'minimum_stake_amount': Decimal('100'),
        'lock_period_days': 30,
        'use_profile_defaults': True
    }
    riff.update(overrides)
    return riff

def make_stake(now, **overrides):
    stake = {
        'id': 11,
        'user_id': STAKER['id'],
        'riff_id': 7,
        'amount': Decimal('250'),
        'staked_at': now,
        'unlock_at': now + timedelta(days=90),
        'is_unlocked': False,
        'is_active': True,
        'royalties_earned': Decimal('12.5'),
        'created_at': now
    }
    stake.update(overrides)
    return stake

@pytest.fixture
def manager(pool):
    return StakeManager(pool)

def test_unlock_at_adds_lock_period(now):
    assert compute_unlock_at(now, 90) == now + timedelta(days=90)
    assert compute_unlock_at(now, 0) == now

def test_stake_status(now):
    stake = make_stake(now)
    assert stake_status(stake, now) == LOCKED
    assert stake_status(stake, now + timedelta(days=90)) == UNLOCKED
    assert is_unlocked(make_stake(now, is_unlocked=True), now)

def test_terms_follow_riff_when_profile_defaults_disabled():
    riff = make_riff(use_profile_defaults=False, lock_period_days=14, minimum_stake_amount=Decimal('5'))
    settings_row = {'lock_period_days': 60, 'minimum_stake_amount': 500}
    assert resolve_staking_terms(riff, settings_row) == {'lock_period_days': 14, 'minimum_stake_amount': 5}

def test_terms_prefer_settings_row_over_defaults():
    settings_row = {'lock_period_days': 60, 'minimum_stake_amount': 500}
    defaults = {'lock_period_days': 90, 'minimum_stake_amount': 100}
    assert resolve_staking_terms(make_riff(), settings_row, defaults)['lock_period_days'] == 60
    assert resolve_staking_terms(make_riff(), None, defaults) == {
        'lock_period_days': 90, 'minimum_stake_amount': 100
    }

@pytest.mark.asyncio
async def test_stake_unlocks_after_configured_lock_period(manager, conn, now):
    rows = iter([STAKER, make_riff(), None])
    
    async def fetchrow(query, *args):
        if query.lstrip().startswith('INSERT'):
            user_id, riff_id, amount, staked_at, unlock_at = args
            return make_stake(staked_at, amount=amount, unlock_at=unlock_at, royalties_earned=Decimal('0'))
        return next(rows)
    
    # No staking_settings rows, so the configured 90-day default applies
    conn.fetchrow.side_effect = fetchrow
    result = await manager.stake(7, STAKER['wallet_address'], Decimal('250'), now=now)
    
    assert result['message'] == 'Successfully staked on riff'
    assert result['stake']['stakedAt'] == now.isoformat()
    assert result['stake']['unlockAt'] == (now + timedelta(days=90)).isoformat()
    assert result['stake']['amount'] == 250

@pytest.mark.asyncio
async def test_stake_rejects_unstakable_riff(manager, conn):
    conn.fetchrow.side_effect = [STAKER, make_riff(is_stakable=False)]
    with pytest.raises(NotStakableError):
        await manager.stake(7, STAKER['wallet_address'], Decimal('250'))

@pytest.mark.asyncio
async def test_stake_rejects_own_riff(manager, conn):
    conn.fetchrow.side_effect = [STAKER, make_riff(creator_id=STAKER['id'])]
    with pytest.raises(SelfStakeError):
        await manager.stake(7, STAKER['wallet_address'], Decimal('250'))

@pytest.mark.asyncio
async def test_stake_rejects_second_active_stake(manager, conn):
    conn.fetchrow.side_effect = [STAKER, make_riff()]
    conn.fetchval.return_value = 3
    with pytest.raises(DuplicateStakeError):
        await manager.stake(7, STAKER['wallet_address'], Decimal('250'))

@pytest.mark.asyncio
async def test_stake_enforces_minimum(manager, conn):
    conn.fetchrow.side_effect = [STAKER, make_riff(), None]
    with pytest.raises(StakeAmountError, match="Minimum stake amount is 100"):
        await manager.stake(7, STAKER['wallet_address'], Decimal('50'))

@pytest.mark.asyncio
async def test_stake_rejects_non_positive_amount(manager, conn):
    with pytest.raises(StakeAmountError):
        await manager.stake(7, STAKER['wallet_address'], Decimal('0'))
    conn.fetchrow.assert_not_called()

@pytest.mark.asyncio
async def test_stake_unknown_user(manager, conn):
    conn.fetchrow.side_effect = [None]
    with pytest.raises(UserNotFoundError):
        await manager.stake(7, "0xnobody", Decimal('250'))

@pytest.mark.asyncio
async def test_unstake_before_unlock_is_rejected(manager, conn, now):
    stake = make_stake(now)
    conn.fetchrow.side_effect = [STAKER, stake]
    with pytest.raises(StakeLockedError) as exc_info:
        await manager.unstake(7, STAKER['wallet_address'], now=now + timedelta(days=89))
    assert exc_info.value.unlock_at == stake['unlock_at']
    # No UPDATE was issued
    assert conn.fetchrow.call_count == 2

@pytest.mark.asyncio
async def test_unstake_after_unlock(manager, conn, now):
    stake = make_stake(now)
    withdrawn = dict(stake, is_unlocked=True, is_active=False)
    conn.fetchrow.side_effect = [STAKER, stake, withdrawn]
    result = await manager.unstake(7, STAKER['wallet_address'], now=now + timedelta(days=90))
    assert result == {
        'message': 'Successfully unstaked',
        'stakeId': 11,
        'amount': 250,
        'royaltiesEarned': 12.5
    }

@pytest.mark.asyncio
async def test_unstake_without_stake(manager, conn):
    conn.fetchrow.side_effect = [STAKER, None]
    with pytest.raises(StakeNotFoundError):
        await manager.unstake_by_id(99, STAKER['wallet_address'])

@pytest.mark.asyncio
async def test_claim_royalties_caps_at_balance(manager, conn):
    conn.fetchrow.side_effect = [STAKER]
    conn.fetch.return_value = [
        {'id': 1, 'royalties_earned': Decimal('10')},
        {'id': 2, 'royalties_earned': Decimal('4')}
    ]
    result = await manager.claim_royalties(STAKER['wallet_address'], [
        {'stake_id': 1, 'amount': Decimal('3')},
        {'stake_id': 2, 'amount': Decimal('20')}
    ])
    assert result['totalClaimed'] == 7
    assert result['updatedStakes'] == [
        {'stakeId': 1, 'royaltiesEarned': 7},
        {'stakeId': 2, 'royaltiesEarned': 0}
    ]
    assert conn.execute.call_count == 2
    assert conn.transactions == 1

@pytest.mark.asyncio
async def test_claim_royalties_rejects_foreign_stake(manager, conn):
    conn.fetchrow.side_effect = [STAKER]
    conn.fetch.return_value = [{'id': 1, 'royalties_earned': Decimal('10')}]
    with pytest.raises(StakeNotFoundError):
        await manager.claim_royalties(STAKER['wallet_address'], [
            {'stake_id': 1, 'amount': Decimal('3')},
            {'stake_id': 5, 'amount': Decimal('3')}
        ])
    conn.execute.assert_not_called()

@pytest.mark.asyncio
async def test_claim_rewards(manager, conn, now):
    conn.fetchrow.side_effect = [STAKER, make_stake(now)]
    conn.fetchval.return_value = Decimal('12.5')
    result = await manager.claim_rewards(7, STAKER['wallet_address'])
    assert result == {'message': 'Rewards claimed successfully', 'stakeId': 11, 'claimedAmount': 12.5}

@pytest.mark.asyncio
async def test_claim_rewards_with_nothing_accrued(manager, conn, now):
    conn.fetchrow.side_effect = [STAKER, make_stake(now, royalties_earned=Decimal('0'))]
    conn.fetchval.return_value = None
    with pytest.raises(NoRewardsError):
        await manager.claim_rewards(7, STAKER['wallet_address'])

def staker_row(stake_id, amount, staked_at):
    return {
        'id': stake_id,
        'amount': amount,
        'staked_at': staked_at,
        'staker_id': 10 + stake_id,
        'staker_name': f"Fan {stake_id}",
        'staker_wallet': f"0xfan{stake_id}",
        'staker_avatar': None
    }

def user_stake_row(now, **overrides):
    row = dict(make_stake(now), title='Test Riff', cover_image='/uploads/images/cover.png',
               staking_royalty_share=50, artist_id=1, artist_name='Artist',
               artist_wallet='0xcreator', artist_avatar=None)
    row.update(overrides)
    return row

@pytest.mark.asyncio
async def test_riff_staking_info_lists_top_stakers(manager, conn, now):
    conn.fetchrow.side_effect = [make_riff(), {'total_stakes': 2, 'total_amount': Decimal('750')}]
    conn.fetch.return_value = [staker_row(1, Decimal('500'), now), staker_row(2, Decimal('250'), now)]
    info = await manager.get_riff_staking_info(7)
    
    assert info['riffId'] == 7
    assert info['totalStakes'] == 2
    assert info['totalStakeAmount'] == 750
    assert [staker['amount'] for staker in info['topStakers']] == [500, 250]
    assert info['topStakers'][0]['user'] == {'id': 11, 'name': 'Fan 1', 'walletAddress': '0xfan1', 'avatar': None}
    query = conn.fetch.call_args.args[0]
    assert 'ORDER BY st.amount DESC' in query
    assert 'LIMIT 5' in query

@pytest.mark.asyncio
async def test_riff_staking_info_for_missing_riff(manager, conn):
    conn.fetchrow.return_value = None
    with pytest.raises(RiffNotFoundError):
        await manager.get_riff_staking_info(404)

@pytest.mark.asyncio
async def test_user_stakes_report_status_and_days(manager, conn, now):
    conn.fetchrow.side_effect = [STAKER]
    conn.fetch.return_value = [
        user_stake_row(now),
        user_stake_row(now - timedelta(days=120), id=12, riff_id=8,
                       unlock_at=now - timedelta(days=30))
    ]
    stakes = await manager.get_user_stakes(STAKER['wallet_address'], now=now)
    
    assert [stake['status'] for stake in stakes] == [LOCKED, UNLOCKED]
    assert stakes[0]['stakedAt'] == '2024-03-01'
    assert stakes[0]['unlockAt'] == '2024-05-30'
    assert stakes[0]['stakedAmount'] == 250
    assert stakes[0]['royaltyShare'] == 50
    assert stakes[0]['artist']['walletAddress'] == '0xcreator'

@pytest.mark.asyncio
async def test_total_royalties(manager, conn):
    conn.fetchrow.side_effect = [STAKER]
    conn.fetchval.return_value = Decimal('17.25')
    assert await manager.get_total_royalties(STAKER['wallet_address']) == {
        'walletAddress': STAKER['wallet_address'],
        'totalRoyalties': 17.25
    }

@pytest.mark.asyncio
async def test_get_rewards_uses_latest_stake(manager, conn, now):
    conn.fetchrow.side_effect = [STAKER, make_stake(now, is_active=False)]
    assert await manager.get_rewards(7, STAKER['wallet_address']) == {
        'stakeId': 11,
        'riffId': 7,
        'isActive': False,
        'rewards': 12.5
    }
    query, user_id, riff_id = conn.fetchrow.call_args.args
    assert 'ORDER BY is_active DESC, staked_at DESC' in query
    assert (user_id, riff_id) == (STAKER['id'], 7)

@pytest.mark.asyncio
async def test_get_rewards_without_stake(manager, conn):
    conn.fetchrow.side_effect = [STAKER, None]
    with pytest.raises(StakeNotFoundError):
        await manager.get_rewards(7, STAKER['wallet_address'])

ARTIST = make_user(user_id=1, wallet="0xcreator")

def settings_row(user_id=1, **overrides):
    row = {
        'user_id': user_id,
        'default_staking_enabled': True,
        'default_royalty_share': 40,
        'lock_period_days': 60,
        'minimum_stake_amount': 500
    }
    row.update(overrides)
    return row

@pytest.fixture
def settings_manager(pool):
    return StakingSettingsManager(pool)

@pytest.mark.asyncio
async def test_settings_fall_back_to_configured_defaults(settings_manager, conn):
    conn.fetchrow.side_effect = [ARTIST, None]
    result = await settings_manager.get_settings(ARTIST['wallet_address'])
    defaults = configured_defaults()
    assert result['isDefault'] is True
    assert result['lockPeriodDays'] == defaults['lock_period_days']
    assert result['minimumStakeAmount'] == defaults['minimum_stake_amount']

@pytest.mark.asyncio
async def test_settings_use_global_row(settings_manager, conn):
    conn.fetchrow.side_effect = [ARTIST, settings_row(user_id=None)]
    result = await settings_manager.get_settings(ARTIST['wallet_address'])
    assert result['isDefault'] is True
    assert result['lockPeriodDays'] == 60

@pytest.mark.asyncio
async def test_settings_use_own_row(settings_manager, conn):
    conn.fetchrow.side_effect = [ARTIST, settings_row()]
    result = await settings_manager.get_settings(ARTIST['wallet_address'])
    assert result == {
        'walletAddress': ARTIST['wallet_address'],
        'defaultStakingEnabled': True,
        'defaultRoyaltyShare': 40,
        'lockPeriodDays': 60,
        'minimumStakeAmount': 500,
        'isDefault': False
    }

@pytest.mark.asyncio
async def test_update_settings_keeps_missing_fields(settings_manager, conn):
    conn.fetchrow.side_effect = [ARTIST, settings_row(), settings_row(lock_period_days=14)]
    result = await settings_manager.update_settings(ARTIST['wallet_address'], {
        'lock_period_days': 14, 'minimum_stake_amount': None
    })
    query, *args = conn.fetchrow.call_args.args
    assert 'ON CONFLICT (user_id) DO UPDATE' in query
    assert args == [ARTIST['id'], True, 40, 14, 500]
    assert result['lockPeriodDays'] == 14
    assert result['isDefault'] is False

@pytest.mark.asyncio
async def test_update_settings_starts_from_configured_defaults(settings_manager, conn):
    conn.fetchrow.side_effect = [ARTIST, None, settings_row()]
    await settings_manager.update_settings(ARTIST['wallet_address'], {'default_royalty_share': 25})
    defaults = configured_defaults()
    args = conn.fetchrow.call_args.args[1:]
    assert args == (
        ARTIST['id'], True, 25, defaults['lock_period_days'], defaults['minimum_stake_amount']
    )

@pytest.mark.asyncio
async def test_settings_for_unknown_user(settings_manager, conn):
    conn.fetchrow.return_value = None
    with pytest.raises(UserNotFoundError):
        await settings_manager.get_settings("0xnobody")
