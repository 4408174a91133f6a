"""NFT metadata document for a minted riff."""
from typing import Any, Dict

def build_nft_metadata(riff: Any) -> Dict[str, Any]:
    """ERC-721 metadata JSON pointing at the riff's pinned media."""
    image = f"ipfs://{riff['cover_cid']}" if riff['cover_cid'] else riff['cover_image']
    metadata = {
        'name': riff['title'],
        'description': riff['description'] or '',
        'image': image,
        'attributes': [
            {'trait_type': trait, 'value': riff[column]}
            for trait, column in (('Genre', 'genre'), ('Mood', 'mood'), ('Instrument', 'instrument'))
            if riff[column]
        ]
    }
    if riff['audio_cid']:
        metadata['animation_url'] = f"ipfs://{riff['audio_cid']}"
    return metadata
