"""Tests for the activity feed."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from activity import ActivityManager, merge_activity, paginate
from conftest import make_user

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)

def people(prefix, user_id=1):
    return {
        f'{prefix}_id': user_id,
        f'{prefix}_name': f'User {user_id}',
        f'{prefix}_wallet': f'0x{user_id}',
        f'{prefix}_avatar': None
    }

def tip_row(tip_id, minutes):
    row = {
        'id': tip_id, 'amount': Decimal('5'), 'currency': 'RIFF', 'message': 'nice',
        'riff_id': 7, 'riff_title': 'Groove', 'created_at': T0 + timedelta(minutes=minutes)
    }
    row.update(people('sender', 1))
    row.update(people('recipient', 2))
    return row

def stake_row(stake_id, minutes):
    row = {
        'id': stake_id, 'amount': Decimal('100'), 'is_active': True,
        'riff_id': 7, 'riff_title': 'Groove', 'created_at': T0 + timedelta(minutes=minutes)
    }
    row.update(people('staker', 3))
    return row

def upload_row(riff_id, minutes):
    row = {'riff_id': riff_id, 'riff_title': 'Groove', 'cover_image': None,
           'created_at': T0 + timedelta(minutes=minutes)}
    row.update(people('creator', 2))
    return row

def favorite_row(riff_id, minutes):
    row = {'riff_id': riff_id, 'riff_title': 'Groove', 'created_at': T0 + timedelta(minutes=minutes)}
    row.update(people('fan', 4))
    return row

def test_merge_is_newest_first():
    feed = merge_activity(
        tips=[tip_row(1, 5)],
        stakes=[stake_row(1, 10)],
        uploads=[upload_row(7, 0)],
        favorites=[favorite_row(7, 7)]
    )
    assert [entry['type'] for entry in feed] == ['stake', 'favorite', 'tip', 'upload']
    assert feed[0]['user']['walletAddress'] == '0x3'
    assert feed[2]['sender']['id'] == 1
    assert feed[2]['recipient']['id'] == 2

def test_merge_keeps_source_order_on_ties():
    feed = merge_activity(tips=[tip_row(1, 1)], stakes=[stake_row(1, 1)])
    assert [entry['type'] for entry in feed] == ['tip', 'stake']

def test_paginate():
    assert paginate(list(range(10)), 3, 4) == [4, 5, 6]
    assert paginate(list(range(3)), 5, 5) == []

@pytest.mark.asyncio
async def test_all_activity_window_and_pagination(pool, conn):
    conn.fetch.side_effect = [
        [tip_row(1, 4), tip_row(2, 1)],
        [stake_row(1, 3)],
        [upload_row(7, 0)],
        [favorite_row(7, 2)]
    ]
    conn.fetchval.return_value = 5
    result = await ActivityManager(pool).get_all_activity(limit=2, offset=1)
    
    assert result['total'] == 5
    assert result['limit'] == 2
    assert result['offset'] == 1
    assert [entry['type'] for entry in result['activity']] == ['stake', 'favorite']
    # Every source is read up to offset + limit rows
    for call in conn.fetch.call_args_list:
        assert call.args[-1] == 3

@pytest.mark.asyncio
async def test_user_activity(pool, conn):
    conn.fetchrow.return_value = make_user(user_id=2, wallet="0x2")
    conn.fetch.side_effect = [[tip_row(1, 4)], [], [upload_row(7, 0)], []]
    conn.fetchval.return_value = 2
    result = await ActivityManager(pool).get_user_activity("0x2", limit=20, offset=0)
    assert [entry['type'] for entry in result['activity']] == ['tip', 'upload']
    assert conn.fetch.call_args_list[0].args[1:] == (2, 20)
