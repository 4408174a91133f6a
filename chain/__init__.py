"""Blockchain module for reading NFT ownership and issuing mock mints.

Reads go to the configured node through JSON-RPC ``eth_call``. Minting is not
sent on chain: a token id is generated locally and the configured contract
address is reported.
"""
import asyncio
import logging
import secrets
from functools import partial
from typing import Any, Dict, Optional

from eth_utils import to_checksum_address

from config import settings_conf

from .abi import encode_call, decode_result, ABIDecodeError, ABIEncodeError
from .rpc import ChainRPC, RPCError, NodeConnectionError, NodeNotConfiguredError, NodeError

logger = logging.getLogger(__name__)

__all__ = [
    'NFTContract', 'ChainRPC', 'RPCError', 'NodeConnectionError',
    'NodeNotConfiguredError', 'NodeError', 'ABIDecodeError', 'ABIEncodeError', 'get_contract'
]

class NFTContract:
    """ERC-721 contract helper bound to one contract address."""
    
    def __init__(self, rpc: Optional[ChainRPC] = None, contract_address: Optional[str] = None):
        """Initialize the contract helper.
        
        Args:
            rpc: RPC client; defaults to one built from blockchain_provider_url
            contract_address: Contract address; defaults to the configured one
        """
        self.rpc = rpc or ChainRPC(settings_conf['blockchain_provider_url'])
        self.contract_address = contract_address or settings_conf['contract_address']
    
    @property
    def configured(self) -> bool:
        return bool(self.rpc.url)
    
    async def _run(self, func, *args) -> Any:
        # requests is blocking, keep it off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))
    
    async def _call(self, name: str, *args: Any) -> Any:
        call = {'to': self.contract_address, 'data': encode_call(name, *args)}
        return decode_result(name, await self._run(self.rpc.eth_call, call, 'latest'))
    
    async def owner_of(self, token_id: int) -> str:
        """Current owner address of a token."""
        return to_checksum_address(await self._call('ownerOf', token_id))
    
    async def token_uri(self, token_id: int) -> str:
        """Metadata URI of a token."""
        return await self._call('tokenURI', token_id)
    
    async def block_number(self) -> int:
        return int(await self._run(self.rpc.eth_blockNumber), 16)
    
    async def mint(self, wallet_address: str, token_uri: Optional[str] = None) -> Dict[str, Any]:
        """Mint a token for a wallet (mocked).
        
        Args:
            wallet_address: Recipient of the token
            token_uri: Metadata URI the token would point at
            
        Returns:
            Dict with ``tokenId`` and ``contractAddress``
        """
        token_id = str(secrets.randbelow(1_000_000))
        logger.info(
            f"Mock-minted token {token_id} on {self.contract_address} "
            f"for {wallet_address} (uri={token_uri})"
        )
        return {'tokenId': token_id, 'contractAddress': self.contract_address}

_contract: Optional[NFTContract] = None

def get_contract() -> NFTContract:
    """Process-wide contract helper."""
    global _contract
    if _contract is None:
        _contract = NFTContract()
    return _contract
