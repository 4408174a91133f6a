"""Catalog module for the tag and genre vocabularies."""

import logging
from typing import Dict, List, Any

import asyncpg

from database import get_pool
from database.lib.records import to_iso

logger = logging.getLogger(__name__)

__all__ = ['TagManager', 'GenreManager', 'CatalogError', 'CatalogEntryNotFoundError', 'CatalogEntryExistsError']

class CatalogError(Exception):
    """Base exception for catalog operations."""
    pass

class CatalogEntryNotFoundError(CatalogError, LookupError):
    """Raised when a tag or genre is not found."""
    pass

class CatalogEntryExistsError(CatalogError):
    """Raised when creating a tag or genre whose name is taken."""
    pass

class CatalogManager:
    """Shared operations over a ``(id, name)`` vocabulary table."""
    
    table: str = ''
    label: str = ''
    
    def __init__(self, pool=None):
        self.pool = pool
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    @staticmethod
    def _format(row: Any) -> Dict[str, Any]:
        return {'id': row['id'], 'name': row['name'], 'createdAt': to_iso(row['created_at'])}
    
    async def list_all(self) -> List[Dict[str, Any]]:
        """All entries ordered by name."""
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f'SELECT id, name, created_at FROM {self.table} ORDER BY name ASC')
            
        return [self._format(row) for row in rows]
    
    async def get(self, entry_id: int) -> Dict[str, Any]:
        """Get an entry by id.
        
        Raises:
            CatalogEntryNotFoundError: If the entry does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f'SELECT id, name, created_at FROM {self.table} WHERE id = $1', entry_id)
            
        if not row:
            raise CatalogEntryNotFoundError(f"{self.label} not found")
        return self._format(row)
    
    async def create(self, name: str) -> Dict[str, Any]:
        """Create an entry.
        
        Raises:
            CatalogEntryExistsError: If the name is already taken
        """
        await self.ensure_pool()
        name = name.strip()
        
        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f'INSERT INTO {self.table} (name) VALUES ($1) RETURNING id, name, created_at',
                    name
                )
            except asyncpg.exceptions.UniqueViolationError:
                raise CatalogEntryExistsError(f"{self.label} already exists")
            
        logger.info(f"Created {self.label.lower()} {row['id']} '{name}'")
        return self._format(row)

class TagManager(CatalogManager):
    """Manager class for riff tags."""
    table = 'tags'
    label = 'Tag'

class GenreManager(CatalogManager):
    """Manager class for music genres."""
    table = 'genres'
    label = 'Genre'
