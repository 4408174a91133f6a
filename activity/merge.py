"""Build a single newest-first activity feed out of per-kind row streams."""
from typing import Any, Dict, Iterable, List

from database.lib.records import to_iso, to_number
from users.format_user import user_summary

def tip_entry(row: Any) -> Dict[str, Any]:
    return {
        'type': 'tip',
        'timestamp': to_iso(row['created_at']),
        'id': row['id'],
        'amount': to_number(row['amount']),
        'currency': row['currency'],
        'message': row['message'],
        'riffId': row['riff_id'],
        'riffTitle': row['riff_title'],
        'sender': user_summary(row, 'sender'),
        'recipient': user_summary(row, 'recipient')
    }

def stake_entry(row: Any) -> Dict[str, Any]:
    return {
        'type': 'stake',
        'timestamp': to_iso(row['created_at']),
        'id': row['id'],
        'amount': to_number(row['amount']),
        'isActive': row['is_active'],
        'riffId': row['riff_id'],
        'riffTitle': row['riff_title'],
        'user': user_summary(row, 'staker')
    }

def upload_entry(row: Any) -> Dict[str, Any]:
    return {
        'type': 'upload',
        'timestamp': to_iso(row['created_at']),
        'riffId': row['riff_id'],
        'riffTitle': row['riff_title'],
        'coverImage': row['cover_image'],
        'user': user_summary(row, 'creator')
    }

def favorite_entry(row: Any) -> Dict[str, Any]:
    return {
        'type': 'favorite',
        'timestamp': to_iso(row['created_at']),
        'riffId': row['riff_id'],
        'riffTitle': row['riff_title'],
        'user': user_summary(row, 'fan')
    }

def merge_activity(
    tips: Iterable[Any] = (),
    stakes: Iterable[Any] = (),
    uploads: Iterable[Any] = (),
    favorites: Iterable[Any] = ()
) -> List[Dict[str, Any]]:
    """Map each stream to activity entries and sort them newest first.
    
    Rows are sorted on their ``created_at`` value; entries of equal time keep
    the order tips, stakes, uploads, favorites.
    """
    tagged = []
    for rows, build in (
        (tips, tip_entry),
        (stakes, stake_entry),
        (uploads, upload_entry),
        (favorites, favorite_entry)
    ):
        tagged.extend((row['created_at'], build(row)) for row in rows)
    
    tagged.sort(key=lambda item: item[0], reverse=True)
    return [entry for _, entry in tagged]

def paginate(items: List[Any], limit: int, offset: int) -> List[Any]:
    """Slice ``limit`` items starting at ``offset``."""
    return items[offset:offset + limit]
