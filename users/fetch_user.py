"""Wallet-address lookups shared by every manager that acts on behalf of a user."""
import logging
from typing import Any

logger = logging.getLogger(__name__)

USER_COLUMNS = '''
    id, wallet_address, name, bio, location, avatar, cover_image, ens_name,
    twitter_url, instagram_url, website_url, genres, influences, created_at, updated_at
'''

class UserError(Exception):
    """Base exception for user operations."""
    pass

class UserNotFoundError(UserError, LookupError):
    """Raised when no user has the given wallet address."""
    pass

def default_name(wallet_address: str) -> str:
    """Display name given to a lazily created user."""
    return f"User_{wallet_address[:6]}"

async def fetch_user(conn, wallet_address: str, message: str = "User not found") -> Any:
    """Get a user row by wallet address.
    
    Args:
        conn: Database connection
        wallet_address: Wallet address identifying the user
        message: Message for the raised exception, e.g. "Sender not found"
        
    Returns:
        The user row
        
    Raises:
        UserNotFoundError: If no user has this wallet address
    """
    row = await conn.fetchrow(
        f'SELECT {USER_COLUMNS} FROM users WHERE wallet_address = $1',
        wallet_address
    )
    if not row:
        raise UserNotFoundError(message)
    return row

async def get_or_create_user(conn, wallet_address: str) -> Any:
    """Get a user row by wallet address, creating the user on first sight.
    
    The insert is a no-op when a concurrent request created the same wallet.
    """
    row = await conn.fetchrow(
        f'SELECT {USER_COLUMNS} FROM users WHERE wallet_address = $1',
        wallet_address
    )
    if row:
        return row
    
    row = await conn.fetchrow(
        f'''
        INSERT INTO users (wallet_address, name)
        VALUES ($1, $2)
        ON CONFLICT (wallet_address) DO NOTHING
        RETURNING {USER_COLUMNS}
        ''',
        wallet_address,
        default_name(wallet_address)
    )
    if row:
        logger.info(f"Created user {row['id']} for wallet {wallet_address}")
        return row
    
    return await conn.fetchrow(
        f'SELECT {USER_COLUMNS} FROM users WHERE wallet_address = $1',
        wallet_address
    )
