"""Database module for managing connections to PostgreSQL.

This module handles:
- Database connection pool initialization
- Schema management
- Connection lifecycle
"""

import logging
from typing import Optional
import backoff
import asyncpg
from urllib.parse import urlparse

from .exceptions import DatabaseError, DatabaseSchemaError
from .lib.schema_manager import SchemaManager

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None
_schema_manager: Optional[SchemaManager] = None

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def create_database_if_not_exists(db_url: str) -> None:
    """Create the database if it doesn't exist.
    
    Args:
        db_url: Database connection URL
        
    Raises:
        Exception: If database creation fails after retries
    """
    parsed = urlparse(db_url)
    db_name = parsed.path.strip('/') or 'postgres'
    if db_name == 'postgres':
        return
    
    # Connect to the maintenance database
    base_url = parsed._replace(path='/postgres').geturl()
    logger.info(f"Connecting to postgres to create {db_name} if needed")
    
    conn = await asyncpg.connect(base_url)
    try:
        exists = await conn.fetchval(
            'SELECT EXISTS(SELECT 1 FROM pg_database WHERE datname = $1)',
            db_name
        )
        
        if not exists:
            await conn.execute(f'CREATE DATABASE "{db_name}"')
            logger.info(f"Created database {db_name}")
            
    except asyncpg.exceptions.InsufficientPrivilegeError as e:
        logger.warning(f"Cannot create database {db_name}: {e}")
    finally:
        await conn.close()

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def init_db(db_url: Optional[str] = None, force_recreate: bool = False) -> None:
    """Initialize the database connection pool and schema.
    
    Args:
        db_url: Optional database URL. If not provided, will use settings.
        force_recreate: If True, drop and recreate all tables
        
    Raises:
        ValueError: If database URL is not provided
        Exception: If initialization fails after retries
    """
    global _pool, _schema_manager
    
    try:
        # Import here to avoid circular imports
        from config import settings_conf
        
        # Use provided URL or get from settings
        url = db_url or settings_conf.get('db_url')
        if not url:
            raise ValueError("Database URL not provided")
        
        await create_database_if_not_exists(url)
        
        _pool = await asyncpg.create_pool(
            url,
            min_size=2,          # Minimum idle connections
            max_size=20,         # Maximum connections
            max_inactive_connection_lifetime=300.0,  # 5 minutes
            command_timeout=60.0  # 1 minute command timeout
        )
        
        _schema_manager = SchemaManager(_pool)
        
        if force_recreate:
            logger.info("Force recreate requested. Resetting schema version...")
            async with _pool.acquire() as conn:
                await conn.execute('DROP TABLE IF EXISTS schema_version')
                
        await _schema_manager.initialize()
        
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

async def get_pool() -> asyncpg.Pool:
    """Get the database connection pool.
    
    Returns:
        The connection pool
        
    Raises:
        DatabaseError: If pool hasn't been initialized
    """
    if not _pool:
        await init_db()
    if not _pool:
        raise DatabaseError("Failed to initialize database pool")
    return _pool

async def close() -> None:
    """Close the database connection pool."""
    global _pool, _schema_manager
    
    if _pool:
        await _pool.close()
        _pool = None
        _schema_manager = None

# Export public interface
__all__ = ['init_db', 'get_pool', 'close', 'DatabaseError', 'DatabaseSchemaError']
