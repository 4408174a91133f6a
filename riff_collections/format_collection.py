"""Row-to-JSON shaping for collections."""
from typing import Any, Dict

from database.lib.records import to_iso
from users.format_user import user_summary, summary_columns

COLLECTION_SELECT = f'''
    SELECT
        c.*,
        {summary_columns('u', 'creator')},
        (SELECT COUNT(*) FROM riffs r WHERE r.collection_id = c.id) AS riff_count
    FROM collections c
    JOIN users u ON u.id = c.creator_id
'''

def format_collection(row: Any) -> Dict[str, Any]:
    """Public representation of a collection row selected with COLLECTION_SELECT."""
    return {
        'id': row['id'],
        'name': row['name'],
        'description': row['description'],
        'coverImage': row['cover_image'],
        'creatorId': row['creator_id'],
        'creator': user_summary(row, 'creator'),
        'riffCount': row['riff_count'],
        'createdAt': to_iso(row['created_at']),
        'updatedAt': to_iso(row['updated_at'])
    }
