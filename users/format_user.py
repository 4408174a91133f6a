"""Row-to-JSON shaping for users."""
from typing import Any, Dict, Optional

from database.lib.records import to_iso

def format_user(row: Any) -> Dict[str, Any]:
    """Full public representation of a user row."""
    return {
        'id': row['id'],
        'walletAddress': row['wallet_address'],
        'name': row['name'],
        'bio': row['bio'],
        'location': row['location'],
        'avatar': row['avatar'],
        'coverImage': row['cover_image'],
        'ensName': row['ens_name'],
        'socialLinks': {
            'twitter': row['twitter_url'],
            'instagram': row['instagram_url'],
            'website': row['website_url']
        },
        'genres': list(row['genres'] or []),
        'influences': list(row['influences'] or []),
        'createdAt': to_iso(row['created_at']),
        'updatedAt': to_iso(row['updated_at'])
    }

def user_summary(row: Any, prefix: str) -> Optional[Dict[str, Any]]:
    """Nested user block built from joined columns named ``<prefix>_id``, ``<prefix>_name``...
    
    Returns None when the joined user is absent.
    """
    if row[f'{prefix}_id'] is None:
        return None
    return {
        'id': row[f'{prefix}_id'],
        'name': row[f'{prefix}_name'],
        'walletAddress': row[f'{prefix}_wallet'],
        'avatar': row[f'{prefix}_avatar']
    }

def summary_columns(alias: str, prefix: str) -> str:
    """SELECT list fragment matching :func:`user_summary`."""
    return (
        f"{alias}.id AS {prefix}_id, {alias}.name AS {prefix}_name, "
        f"{alias}.wallet_address AS {prefix}_wallet, {alias}.avatar AS {prefix}_avatar"
    )
