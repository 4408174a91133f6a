"""SELECT statements feeding the activity feed.

Each statement takes a WHERE clause appended by the caller and is ordered
newest first with the row limit as its last parameter.
"""
from users.format_user import summary_columns

TIPS = f'''
    SELECT t.id, t.amount, t.currency, t.message, t.riff_id, t.created_at,
           r.title AS riff_title,
           {summary_columns('s', 'sender')},
           {summary_columns('rc', 'recipient')}
    FROM tips t
    JOIN users s ON s.id = t.user_id
    JOIN users rc ON rc.id = t.recipient_id
    LEFT JOIN riffs r ON r.id = t.riff_id
'''

STAKES = f'''
    SELECT st.id, st.amount, st.is_active, st.riff_id, st.created_at,
           r.title AS riff_title,
           {summary_columns('u', 'staker')}
    FROM stakes st
    JOIN users u ON u.id = st.user_id
    JOIN riffs r ON r.id = st.riff_id
'''

UPLOADS = f'''
    SELECT r.id AS riff_id, r.title AS riff_title, r.cover_image, r.created_at,
           {summary_columns('u', 'creator')}
    FROM riffs r
    JOIN users u ON u.id = r.creator_id
'''

FAVORITES = f'''
    SELECT f.riff_id, f.created_at,
           r.title AS riff_title,
           {summary_columns('u', 'fan')}
    FROM favorites f
    JOIN users u ON u.id = f.user_id
    JOIN riffs r ON r.id = f.riff_id
'''

def limited(select: str, where: str, created_column: str, limit_param: int) -> str:
    """Append filter, newest-first ordering and a LIMIT placeholder."""
    return f'{select} {where} ORDER BY {created_column} DESC LIMIT ${limit_param}'
