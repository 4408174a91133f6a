"""Tests for user profiles."""

import pytest
from decimal import Decimal

from users import UserManager, UserNotFoundError, default_name, get_or_create_user
from conftest import make_user

USER = make_user(user_id=1, wallet="0xabc123")
STATS = {'total_riffs': 3, 'total_tips': Decimal('12.5'), 'total_staked': Decimal('0')}

@pytest.fixture
def manager(pool):
    return UserManager(pool)

def test_default_name():
    assert default_name("0xabcdef123") == "User_0xabcd"

@pytest.mark.asyncio
async def test_get_or_create_returns_existing(conn):
    conn.fetchrow.return_value = USER
    assert await get_or_create_user(conn, USER['wallet_address']) == USER
    assert conn.fetchrow.call_count == 1

@pytest.mark.asyncio
async def test_get_or_create_inserts_new_wallet(conn):
    conn.fetchrow.side_effect = [None, USER]
    await get_or_create_user(conn, "0xnew")
    query, wallet, name = conn.fetchrow.call_args.args
    assert 'ON CONFLICT (wallet_address) DO NOTHING' in query
    assert (wallet, name) == ("0xnew", "User_0xnew")

@pytest.mark.asyncio
async def test_get_or_create_after_concurrent_insert(conn):
    conn.fetchrow.side_effect = [None, None, USER]
    assert await get_or_create_user(conn, USER['wallet_address']) == USER

@pytest.mark.asyncio
async def test_profile_with_stats(manager, conn):
    conn.fetchrow.side_effect = [USER, STATS]
    profile = await manager.get_profile(USER['wallet_address'])
    assert profile['walletAddress'] == USER['wallet_address']
    assert profile['socialLinks'] == {'twitter': None, 'instagram': None, 'website': None}
    assert profile['stats'] == {'totalRiffs': 3, 'totalTips': 12.5, 'totalStaked': 0, 'followers': 0}

@pytest.mark.asyncio
async def test_update_profile_ignores_unknown_fields(manager, conn):
    conn.fetchrow.side_effect = [USER, dict(USER, name='Neon', bio='Bass player')]
    profile = await manager.update_profile(USER['wallet_address'], {
        'name': 'Neon', 'bio': 'Bass player', 'wallet_address': '0xhijack'
    })
    assert profile['name'] == 'Neon'
    query, *args = conn.fetchrow.call_args.args
    assert 'bio = $2, name = $3' in query
    assert 'wallet_address =' not in query.split('RETURNING')[0]
    assert args == [1, 'Bass player', 'Neon']

@pytest.mark.asyncio
async def test_update_profile_keeps_required_fields_on_null(manager, conn):
    conn.fetchrow.side_effect = [USER, dict(USER, bio=None)]
    await manager.update_profile(USER['wallet_address'], {'name': None, 'genres': None, 'bio': None})
    query, *args = conn.fetchrow.call_args.args
    assert 'name =' not in query
    assert 'genres =' not in query
    assert 'bio = $2' in query
    assert args == [1, None]

@pytest.mark.asyncio
async def test_update_profile_with_only_null_name_is_a_no_op(manager, conn):
    conn.fetchrow.return_value = USER
    profile = await manager.update_profile(USER['wallet_address'], {'name': None})
    assert profile['name'] == USER['name']
    assert conn.fetchrow.call_count == 1

@pytest.mark.asyncio
async def test_update_unknown_user(manager, conn):
    conn.fetchrow.return_value = None
    with pytest.raises(UserNotFoundError):
        await manager.update_profile("0xnobody", {'name': 'x'})

@pytest.mark.asyncio
async def test_set_avatar_returns_previous(manager, conn):
    conn.fetchrow.return_value = dict(USER, avatar='/uploads/images/old.png')
    previous = await manager.set_avatar(USER['wallet_address'], '/uploads/images/new.png')
    assert previous == '/uploads/images/old.png'
    assert conn.execute.call_args.args[1:] == (1, '/uploads/images/new.png')
