"""Tests for schema definitions and the schema manager."""

import pytest

from database.lib.schema_manager import SchemaManager, build_create_table_sql, build_constraint_sql

EXPECTED_TABLES = {
    'users', 'collections', 'riffs', 'stakes', 'tips', 'tipping_tiers',
    'staking_settings', 'tags', 'genres', 'riff_tags', 'favorites'
}

@pytest.fixture
def schema_files(pool):
    return SchemaManager(pool).load_schema_files()

def test_versions_are_loaded_in_order(schema_files):
    assert list(schema_files) == [1, 2]

def test_latest_schema_has_every_table(schema_files):
    latest = schema_files[max(schema_files)]
    assert {table['name'] for table in latest['tables']} == EXPECTED_TABLES

def test_create_table_sql():
    sql = build_create_table_sql({
        'name': 'favorites',
        'columns': [
            {'name': 'user_id', 'type': 'INT8', 'nullable': False},
            {'name': 'riff_id', 'type': 'INT8', 'nullable': False},
            {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
        ],
        'primary_key': ['user_id', 'riff_id']
    })
    assert sql == (
        "CREATE TABLE IF NOT EXISTS favorites (user_id INT8 NOT NULL, riff_id INT8 NOT NULL, "
        "created_at TIMESTAMPTZ DEFAULT now() NOT NULL, PRIMARY KEY (user_id, riff_id))"
    )

def test_constraint_sql_with_partial_index():
    statements = build_constraint_sql({
        'name': 'stakes',
        'foreign_keys': [{'columns': ['riff_id'], 'references': 'riffs(id)', 'on_delete': 'CASCADE'}],
        'indexes': [{'name': 'idx_active', 'columns': ['user_id', 'riff_id'], 'unique': True, 'where': 'is_active'}]
    })
    assert statements == [
        "ALTER TABLE stakes ADD CONSTRAINT fk_stakes_riff_id FOREIGN KEY (riff_id) "
        "REFERENCES riffs(id) ON DELETE CASCADE",
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_active ON stakes(user_id, riff_id) WHERE is_active"
    ]

@pytest.mark.asyncio
async def test_fresh_install_creates_latest_schema(pool, conn):
    conn.fetchrow.return_value = None
    conn.fetch.return_value = []
    manager = SchemaManager(pool)
    await manager.initialize()
    
    statements = [call.args[0] for call in conn.execute.call_args_list]
    created = [sql for sql in statements if sql.startswith('CREATE TABLE IF NOT EXISTS') and 'schema_version' not in sql]
    assert len(created) == len(EXPECTED_TABLES)
    assert any('idx_stakes_active_pair' in sql for sql in statements)
    assert any('CREATE TRIGGER trg_riffs_updated_at' in sql for sql in statements)
    assert conn.execute.call_args_list[-1].args == ('INSERT INTO schema_version (version) VALUES ($1)', 2)
    assert manager.current_version == 2

@pytest.mark.asyncio
async def test_upgrade_runs_newer_migrations_only(pool, conn):
    conn.fetchrow.return_value = {'version': 1}
    manager = SchemaManager(pool)
    await manager.initialize()
    
    statements = [call.args[0] for call in conn.execute.call_args_list]
    assert not any(sql.startswith('CREATE TABLE IF NOT EXISTS users') for sql in statements)
    assert any('ADD COLUMN IF NOT EXISTS is_active' in sql for sql in statements)
    assert conn.execute.call_args_list[-1].args == ('INSERT INTO schema_version (version) VALUES ($1)', 2)

@pytest.mark.asyncio
async def test_up_to_date_schema_is_left_alone(pool, conn):
    conn.fetchrow.return_value = {'version': 2}
    await SchemaManager(pool).initialize()
    # Only the schema_version table check ran
    assert conn.execute.call_count == 1
