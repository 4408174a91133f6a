"""Riffs module for uploaded tracks and their NFT lifecycle.

This module provides functionality for:
- Listing riffs with filters, sorting and pagination
- Creating riffs (optionally in a new collection, with tags)
- Minting a riff as an NFT (mocked on chain)
- Reading a riff's activity and on-chain state
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Any

from chain import NFTContract, get_contract
from config import settings_conf
from database import get_pool
from database.lib.records import to_number
from activity import merge_activity
from activity import queries as activity_queries
from riff_collections import CollectionNotFoundError
from storage import PinataClient
from users import fetch_user
from .filters import build_riff_filters, order_clause, SORT_ORDERS, DEFAULT_SORT
from .format_riff import format_riff, riff_select, RIFF_SELECT
from .metadata import build_nft_metadata

logger = logging.getLogger(__name__)

__all__ = [
    'RiffManager', 'RiffError', 'RiffNotFoundError', 'NotCreatorError',
    'RiffAlreadyMintedError', 'RiffNotMintedError', 'format_riff', 'riff_select', 'RIFF_SELECT',
    'build_riff_filters', 'order_clause', 'SORT_ORDERS', 'DEFAULT_SORT', 'RIFF_FIELDS'
]

# Fields a creator sets when uploading a riff
RIFF_FIELDS = {
    'title',
    'description',
    'duration',
    'genre',
    'mood',
    'instrument',
    'key_signature',
    'time_signature',
    'is_bargain_bin',
    'price',
    'currency',
    'royalty_percentage',
    'is_stakable',
    'staking_royalty_share',
    'max_pool',
    'minimum_stake_amount',
    'lock_period_days',
    'use_profile_defaults',
    'unlock_source_files',
    'unlock_remix_rights',
    'unlock_private_messages',
    'unlock_backstage_content'
}

# Activity entries per kind on a riff page
RIFF_ACTIVITY_LIMIT = 20

class RiffError(Exception):
    """Base exception for riff operations."""
    pass

class RiffNotFoundError(RiffError, LookupError):
    """Raised when a riff is not found."""
    pass

class NotCreatorError(RiffError, PermissionError):
    """Raised when a wallet acts on a riff or collection it did not create."""
    pass

class RiffAlreadyMintedError(RiffError):
    """Raised when minting a riff that is already an NFT."""
    pass

class RiffNotMintedError(RiffError):
    """Raised when on-chain data is requested for a riff that is not an NFT."""
    pass

class RiffManager:
    """Manager class for handling riff operations."""
    
    def __init__(self, pool=None, ipfs: Optional[PinataClient] = None,
                 contract: Optional[NFTContract] = None):
        """Initialize the riff manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
            ipfs: Pinata client used for NFT metadata
            contract: NFT contract helper used for minting and on-chain reads
        """
        self.pool = pool
        self.ipfs = ipfs or PinataClient()
        self.contract = contract or get_contract()
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def list_riffs(
        self,
        filters: Optional[Dict[str, Any]] = None,
        sort_by: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Dict[str, Any]:
        """Get a page of riffs.
        
        Args:
            filters: Keyword arguments for build_riff_filters
            sort_by: One of SORT_ORDERS, newest first by default
            limit: Page size
            offset: Rows to skip
            
        Returns:
            Dict with ``total``, ``riffs``, ``limit`` and ``offset``
        """
        await self.ensure_pool()
        
        where, params = build_riff_filters(**(filters or {}))
        limit_idx = len(params) + 1
        
        async with self.pool.acquire() as conn:
            total = await conn.fetchval(f'SELECT COUNT(*) FROM riffs r {where}', *params)
            rows = await conn.fetch(
                f'''
                {RIFF_SELECT}
                {where}
                ORDER BY {order_clause(sort_by)}
                LIMIT ${limit_idx} OFFSET ${limit_idx + 1}
                ''',
                *params,
                limit,
                offset
            )
            
        return {
            'total': total,
            'riffs': [format_riff(row) for row in rows],
            'limit': limit,
            'offset': offset
        }
    
    async def get_riff(self, riff_id: int) -> Dict[str, Any]:
        """Get a riff with creator, collection, tags and stake/tip totals.
        
        Raises:
            RiffNotFoundError: If the riff does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f'{RIFF_SELECT} WHERE r.id = $1', riff_id)
            if not row:
                raise RiffNotFoundError("Riff not found")
            
            tags = await conn.fetch(
                '''
                SELECT t.id, t.name
                FROM tags t
                JOIN riff_tags rt ON rt.tag_id = t.id
                WHERE rt.riff_id = $1
                ORDER BY t.name
                ''',
                riff_id
            )
            stats = await conn.fetchrow(
                '''
                SELECT
                    (SELECT COUNT(*) FROM stakes WHERE riff_id = $1 AND is_active = true) AS total_stakes,
                    (SELECT COALESCE(SUM(amount), 0) FROM stakes
                     WHERE riff_id = $1 AND is_active = true) AS total_stake_amount,
                    (SELECT COALESCE(SUM(amount), 0) FROM tips WHERE riff_id = $1) AS total_tips
                ''',
                riff_id
            )
            
        riff = format_riff(row)
        riff['tags'] = [{'id': tag['id'], 'name': tag['name']} for tag in tags]
        riff['stats'] = {
            'totalStakes': stats['total_stakes'],
            'totalStakeAmount': to_number(stats['total_stake_amount']),
            'totalTips': to_number(stats['total_tips'])
        }
        return riff
    
    async def _check_collection(self, conn, user: Any, collection_id: int) -> None:
        owner = await conn.fetchval(
            'SELECT creator_id FROM collections WHERE id = $1',
            collection_id
        )
        if owner is None:
            raise CollectionNotFoundError("Collection not found")
        if owner != user['id']:
            raise NotCreatorError("Collection belongs to another creator")
    
    async def check_upload(self, wallet_address: str, collection_id: Optional[int] = None) -> None:
        """Verify a riff upload can be recorded before its files are stored.
        
        Raises:
            UserNotFoundError: If the creator does not exist
            CollectionNotFoundError: If collection_id does not exist
            NotCreatorError: If the collection belongs to another creator
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            user = await fetch_user(conn, wallet_address)
            if collection_id is not None:
                await self._check_collection(conn, user, collection_id)
    
    async def create_riff(
        self,
        wallet_address: str,
        details: Dict[str, Any],
        audio_file: str,
        audio_cid: str = '',
        cover_image: Optional[str] = None,
        cover_cid: Optional[str] = None,
        tags: Optional[List[str]] = None,
        collection_id: Optional[int] = None,
        new_collection_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create a riff for an uploaded audio file.
        
        Args:
            wallet_address: Creator's wallet address
            details: Riff fields keyed by column name (see RIFF_FIELDS); None values use column defaults
            audio_file: Public path of the stored audio
            audio_cid: IPFS CID of the audio ('' when not pinned)
            cover_image: Public URL of the cover image
            cover_cid: IPFS CID of the cover image
            tags: Tag names, created when missing
            collection_id: Existing collection owned by the creator
            new_collection_name: Name of a collection to create for this riff
            
        Returns:
            The created riff
            
        Raises:
            UserNotFoundError: If the creator does not exist
            CollectionNotFoundError: If collection_id does not exist
            NotCreatorError: If the collection belongs to another creator
        """
        await self.ensure_pool()
        
        fields = {k: v for k, v in details.items() if k in RIFF_FIELDS and v is not None}
        fields.setdefault('currency', settings_conf['default_currency'])
        if 'price' in fields:
            fields['price'] = Decimal(str(fields['price']))
        
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                user = await fetch_user(conn, wallet_address)
                
                if collection_id is not None:
                    await self._check_collection(conn, user, collection_id)
                elif new_collection_name:
                    collection_id = await conn.fetchval(
                        '''
                        INSERT INTO collections (name, creator_id)
                        VALUES ($1, $2)
                        RETURNING id
                        ''',
                        new_collection_name,
                        user['id']
                    )
                    logger.info(f"Created collection {collection_id} '{new_collection_name}' for {wallet_address}")
                
                fields.update({
                    'audio_file': audio_file,
                    'audio_cid': audio_cid or '',
                    'cover_image': cover_image,
                    'cover_cid': cover_cid,
                    'creator_id': user['id'],
                    'collection_id': collection_id
                })
                columns = sorted(fields)
                placeholders = ', '.join(f"${idx}" for idx in range(1, len(columns) + 1))
                
                riff_id = await conn.fetchval(
                    f'''
                    INSERT INTO riffs ({", ".join(columns)})
                    VALUES ({placeholders})
                    RETURNING id
                    ''',
                    *[fields[column] for column in columns]
                )
                
                for name in dict.fromkeys(tag.strip() for tag in (tags or []) if tag.strip()):
                    tag_id = await conn.fetchval(
                        '''
                        INSERT INTO tags (name) VALUES ($1)
                        ON CONFLICT (name) DO UPDATE SET name = EXCLUDED.name
                        RETURNING id
                        ''',
                        name
                    )
                    await conn.execute(
                        'INSERT INTO riff_tags (riff_id, tag_id) VALUES ($1, $2) ON CONFLICT DO NOTHING',
                        riff_id,
                        tag_id
                    )
                    
        logger.info(f"Created riff {riff_id} '{fields.get('title')}' for {wallet_address}")
        return await self.get_riff(riff_id)
    
    async def mint_riff(self, riff_id: int, wallet_address: str) -> Dict[str, Any]:
        """Mint a riff as an NFT.
        
        Pins NFT metadata to IPFS when Pinata is configured, then records the
        token issued by the contract helper. ``is_nft`` only ever goes from
        false to true.
        
        Args:
            riff_id: Riff to mint
            wallet_address: Wallet requesting the mint; must be the creator
            
        Returns:
            Dict with a message and the minted riff
            
        Raises:
            RiffNotFoundError: If the riff does not exist
            NotCreatorError: If the wallet is not the riff's creator
            RiffAlreadyMintedError: If the riff is already an NFT
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            riff = await conn.fetchrow(
                '''
                SELECT r.*, u.wallet_address AS creator_wallet
                FROM riffs r
                JOIN users u ON u.id = r.creator_id
                WHERE r.id = $1
                ''',
                riff_id
            )
            
        if not riff:
            raise RiffNotFoundError("Riff not found")
        if riff['creator_wallet'] != wallet_address:
            raise NotCreatorError("Only the creator can mint this riff")
        if riff['is_nft']:
            raise RiffAlreadyMintedError("Riff is already minted")
        
        metadata_url = None
        if self.ipfs.configured:
            cid = await self.ipfs.pin_json(build_nft_metadata(riff), f"riff-{riff_id}-metadata")
            metadata_url = f"ipfs://{cid}"
        
        minted = await self.contract.mint(wallet_address, metadata_url)
        
        async with self.pool.acquire() as conn:
            updated = await conn.fetchval(
                '''
                UPDATE riffs
                SET is_nft = true,
                    token_id = $2,
                    contract_address = $3,
                    metadata_url = COALESCE($4, metadata_url),
                    updated_at = now()
                WHERE id = $1 AND is_nft = false
                RETURNING id
                ''',
                riff_id,
                minted['tokenId'],
                minted['contractAddress'],
                metadata_url
            )
            
        if updated is None:
            raise RiffAlreadyMintedError("Riff is already minted")
        
        logger.info(f"Minted riff {riff_id} as token {minted['tokenId']} for {wallet_address}")
        return {
            'message': 'Riff minted successfully',
            'riff': await self.get_riff(riff_id)
        }
    
    async def get_riff_activity(self, riff_id: int) -> List[Dict[str, Any]]:
        """Get recent tips and stakes on a riff, newest first.
        
        Raises:
            RiffNotFoundError: If the riff does not exist
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            exists = await conn.fetchval('SELECT EXISTS(SELECT 1 FROM riffs WHERE id = $1)', riff_id)
            if not exists:
                raise RiffNotFoundError("Riff not found")
            
            tips = await conn.fetch(
                activity_queries.limited(activity_queries.TIPS, 'WHERE t.riff_id = $1', 't.created_at', 2),
                riff_id, RIFF_ACTIVITY_LIMIT
            )
            stakes = await conn.fetch(
                activity_queries.limited(activity_queries.STAKES, 'WHERE st.riff_id = $1', 'st.created_at', 2),
                riff_id, RIFF_ACTIVITY_LIMIT
            )
            
        return merge_activity(tips=tips, stakes=stakes)
    
    async def get_onchain_details(self, riff_id: int) -> Dict[str, Any]:
        """Read the owner and token URI of a minted riff from the chain.
        
        Raises:
            RiffNotFoundError: If the riff does not exist
            RiffNotMintedError: If the riff is not an NFT
            RPCError: If the node call fails
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            riff = await conn.fetchrow(
                'SELECT id, is_nft, token_id, contract_address, metadata_url FROM riffs WHERE id = $1',
                riff_id
            )
            
        if not riff:
            raise RiffNotFoundError("Riff not found")
        if not riff['is_nft'] or riff['token_id'] is None:
            raise RiffNotMintedError("Riff is not minted")
        
        token_id = int(riff['token_id'])
        return {
            'riffId': riff['id'],
            'tokenId': riff['token_id'],
            'contractAddress': riff['contract_address'],
            'metadataUrl': riff['metadata_url'],
            'owner': await self.contract.owner_of(token_id),
            'tokenUri': await self.contract.token_uri(token_id)
        }
