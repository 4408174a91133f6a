"""Shared fixtures: an in-memory stand-in for an asyncpg pool.

Each ``FakeConnection`` query method is an ``AsyncMock``; tests queue the rows
a manager should see with ``side_effect`` or ``return_value`` and inspect the
SQL it sent through ``call_args_list``.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

class FakeConnection:
    def __init__(self):
        self.fetchrow = AsyncMock(return_value=None)
        self.fetch = AsyncMock(return_value=[])
        self.fetchval = AsyncMock(return_value=None)
        self.execute = AsyncMock(return_value="OK")
        self.transactions = 0
    
    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield self

class FakePool:
    def __init__(self, conn: FakeConnection):
        self.conn = conn
    
    @asynccontextmanager
    async def acquire(self):
        yield self.conn

@pytest.fixture
def conn():
    return FakeConnection()

@pytest.fixture
def pool(conn):
    return FakePool(conn)

@pytest.fixture
def now():
    return datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

def make_user(user_id=1, wallet="0xabc123", **overrides):
    user = {
        'id': user_id,
        'wallet_address': wallet,
        'name': f"User_{wallet[:6]}",
        'bio': None,
        'location': None,
        'avatar': None,
        'cover_image': None,
        'ens_name': None,
        'twitter_url': None,
        'instagram_url': None,
        'website_url': None,
        'genres': [],
        'influences': [],
        'created_at': datetime(2024, 1, 1, tzinfo=timezone.utc),
        'updated_at': datetime(2024, 1, 1, tzinfo=timezone.utc)
    }
    user.update(overrides)
    return user
