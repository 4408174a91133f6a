"""Pinata client for pinning files and JSON to IPFS."""
import asyncio
import json
import logging
from functools import partial
from typing import Any, Dict, Optional

import requests

from config import settings_conf

logger = logging.getLogger(__name__)

class IPFSError(Exception):
    """Raised when pinning fails."""
    pass

class PinataClient:
    """Thin wrapper around the Pinata pinning API."""
    
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        api_url: Optional[str] = None,
        gateway_url: Optional[str] = None,
        timeout: float = 60.0
    ):
        self.api_key = api_key if api_key is not None else settings_conf['pinata_api_key']
        self.api_secret = api_secret if api_secret is not None else settings_conf['pinata_api_secret']
        self.api_url = (api_url or settings_conf['pinata_api_url']).rstrip('/')
        self.gateway = (gateway_url or settings_conf['ipfs_gateway_url']).rstrip('/')
        self.timeout = timeout
        
        self.session = requests.Session()
        self.session.headers.update({
            'pinata_api_key': self.api_key,
            'pinata_secret_api_key': self.api_secret
        })
    
    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_secret)
    
    def gateway_url(self, cid: str) -> str:
        return f"{self.gateway}/{cid}"
    
    def _post(self, endpoint: str, **kwargs) -> Dict[str, Any]:
        if not self.configured:
            raise IPFSError("Pinata credentials are not configured")
        try:
            response = self.session.post(f"{self.api_url}{endpoint}", timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise IPFSError(f"Pinata request failed: {e}") from e
        except ValueError as e:
            raise IPFSError(f"Invalid Pinata response: {e}") from e
    
    def _pin_file(self, content: bytes, filename: str, content_type: str, folder: str) -> str:
        metadata = {
            'name': filename,
            'keyvalues': {'folder': folder, 'type': content_type}
        }
        options = {'cidVersion': 1, 'wrapWithDirectory': False}
        result = self._post(
            '/pinning/pinFileToIPFS',
            files={'file': (filename, content, content_type)},
            data={
                'pinataMetadata': json.dumps(metadata),
                'pinataOptions': json.dumps(options)
            }
        )
        return result['IpfsHash']
    
    def _pin_json(self, payload: Dict[str, Any], name: str) -> str:
        result = self._post(
            '/pinning/pinJSONToIPFS',
            json={
                'pinataContent': payload,
                'pinataMetadata': {'name': name},
                'pinataOptions': {'cidVersion': 1}
            }
        )
        return result['IpfsHash']
    
    async def pin_file(self, content: bytes, filename: str, content_type: str, folder: str = 'riffs') -> str:
        """Pin raw file content and return its CID.
        
        Raises:
            IPFSError: If Pinata is not configured or the request fails
        """
        loop = asyncio.get_running_loop()
        cid = await loop.run_in_executor(
            None, partial(self._pin_file, content, filename, content_type, folder)
        )
        logger.info(f"Pinned {filename} to IPFS as {cid}")
        return cid
    
    async def pin_json(self, payload: Dict[str, Any], name: str) -> str:
        """Pin a JSON document and return its CID.
        
        Raises:
            IPFSError: If Pinata is not configured or the request fails
        """
        loop = asyncio.get_running_loop()
        cid = await loop.run_in_executor(None, partial(self._pin_json, payload, name))
        logger.info(f"Pinned JSON {name} to IPFS as {cid}")
        return cid
