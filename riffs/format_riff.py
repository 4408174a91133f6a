"""Row-to-JSON shaping for riffs."""
from typing import Any, Dict

from database.lib.records import to_iso, to_number
from users.format_user import user_summary, summary_columns

def riff_select(extra_columns: str = '') -> str:
    """SELECT over riffs ``r`` joined to creator ``u`` and collection ``c``."""
    extra = f'{extra_columns},' if extra_columns else ''
    return f'''
    SELECT
        {extra}
        r.*,
        {summary_columns('u', 'creator')},
        c.name AS collection_name,
        c.cover_image AS collection_cover_image
    FROM riffs r
    JOIN users u ON u.id = r.creator_id
    LEFT JOIN collections c ON c.id = r.collection_id
'''

RIFF_SELECT = riff_select()

def format_riff(row: Any) -> Dict[str, Any]:
    """Public representation of a riff row selected with RIFF_SELECT."""
    collection = None
    if row['collection_id'] is not None:
        collection = {
            'id': row['collection_id'],
            'name': row['collection_name'],
            'coverImage': row['collection_cover_image']
        }
    
    return {
        'id': row['id'],
        'title': row['title'],
        'description': row['description'],
        'audioFile': row['audio_file'],
        'coverImage': row['cover_image'],
        'audioCid': row['audio_cid'],
        'coverCid': row['cover_cid'],
        'metadataUrl': row['metadata_url'],
        'duration': row['duration'],
        'genre': row['genre'],
        'mood': row['mood'],
        'instrument': row['instrument'],
        'keySignature': row['key_signature'],
        'timeSignature': row['time_signature'],
        'isBargainBin': row['is_bargain_bin'],
        'price': to_number(row['price']),
        'currency': row['currency'],
        'royaltyPercentage': row['royalty_percentage'],
        'isStakable': row['is_stakable'],
        'stakingRoyaltyShare': row['staking_royalty_share'],
        'maxPool': to_number(row['max_pool']),
        'minimumStakeAmount': to_number(row['minimum_stake_amount']),
        'lockPeriodDays': row['lock_period_days'],
        'useProfileDefaults': row['use_profile_defaults'],
        'isNft': row['is_nft'],
        'tokenId': row['token_id'],
        'contractAddress': row['contract_address'],
        'unlockSourceFiles': row['unlock_source_files'],
        'unlockRemixRights': row['unlock_remix_rights'],
        'unlockPrivateMessages': row['unlock_private_messages'],
        'unlockBackstageContent': row['unlock_backstage_content'],
        'creatorId': row['creator_id'],
        'collectionId': row['collection_id'],
        'creator': user_summary(row, 'creator'),
        'collection': collection,
        'createdAt': to_iso(row['created_at']),
        'updatedAt': to_iso(row['updated_at'])
    }
