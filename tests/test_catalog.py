"""Tests for genres and tags."""

import asyncpg
import pytest
from datetime import datetime, timezone

from catalog import GenreManager, TagManager, CatalogEntryExistsError, CatalogEntryNotFoundError

CREATED = datetime(2024, 1, 5, tzinfo=timezone.utc)

@pytest.mark.asyncio
async def test_list_genres(pool, conn):
    conn.fetch.return_value = [{'id': 1, 'name': 'Funk', 'created_at': CREATED}]
    assert await GenreManager(pool).list_all() == [{'id': 1, 'name': 'Funk', 'createdAt': CREATED.isoformat()}]
    assert 'FROM genres ORDER BY name ASC' in conn.fetch.call_args.args[0]

@pytest.mark.asyncio
async def test_missing_tag(pool, conn):
    conn.fetchrow.return_value = None
    with pytest.raises(CatalogEntryNotFoundError, match="Tag not found"):
        await TagManager(pool).get(5)

@pytest.mark.asyncio
async def test_create_trims_name(pool, conn):
    conn.fetchrow.return_value = {'id': 2, 'name': 'lofi', 'created_at': CREATED}
    await TagManager(pool).create('  lofi ')
    assert conn.fetchrow.call_args.args[1] == 'lofi'

@pytest.mark.asyncio
async def test_duplicate_genre(pool, conn):
    conn.fetchrow.side_effect = asyncpg.exceptions.UniqueViolationError("duplicate key")
    with pytest.raises(CatalogEntryExistsError, match="Genre already exists"):
        await GenreManager(pool).create('Funk')
