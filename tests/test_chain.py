"""Tests for the chain module."""

import pytest
import requests
from unittest.mock import MagicMock

from chain import (
    ChainRPC,
    NFTContract,
    NodeConnectionError,
    NodeNotConfiguredError,
    NodeError,
    ABIDecodeError,
    ABIEncodeError
)
from chain.abi import encode_call, decode_result, selector
from eth_abi import encode
from eth_utils import to_checksum_address

CONTRACT = "0x1234567890123456789012345678901234567890"

def abi_string(value: str) -> str:
    return '0x' + encode(['string'], [value]).hex()

def abi_address(value: str) -> str:
    return '0x' + encode(['address'], [value]).hex()

def rpc_with_response(payload):
    rpc = ChainRPC("http://node.test")
    response = MagicMock()
    response.json.return_value = payload
    rpc.session = MagicMock()
    rpc.session.post.return_value = response
    return rpc

def test_selectors_match_erc721():
    assert selector('ownerOf') == '0x6352211e'
    assert selector('tokenURI') == '0xc87b56dd'

def test_encode_owner_of_call():
    assert encode_call('ownerOf', 1) == '0x6352211e' + '0' * 63 + '1'

def test_encode_rejects_negative_token_id():
    with pytest.raises(ABIEncodeError):
        encode_call('ownerOf', -1)

def test_encode_unknown_function():
    with pytest.raises(KeyError):
        encode_call('approve', 1)

def test_decode_address():
    owner = '0x' + 'ab' * 20
    assert decode_result('ownerOf', abi_address(owner)).lower() == owner
    with pytest.raises(ABIDecodeError):
        decode_result('ownerOf', '0x1234')

def test_decode_string():
    assert decode_result('tokenURI', abi_string('ipfs://bafymeta')) == 'ipfs://bafymeta'
    with pytest.raises(ABIDecodeError):
        decode_result('tokenURI', abi_string('ipfs://bafymeta')[:-64])

def test_rpc_call_payload():
    rpc = rpc_with_response({'jsonrpc': '2.0', 'id': 1, 'result': '0x10'})
    assert rpc.eth_blockNumber() == '0x10'
    payload = rpc.session.post.call_args.kwargs['json']
    assert payload['method'] == 'eth_blockNumber'
    assert payload['params'] == []

def test_rpc_node_error():
    rpc = rpc_with_response({'jsonrpc': '2.0', 'id': 1, 'error': {'code': 3, 'message': 'execution reverted'}})
    with pytest.raises(NodeError) as exc_info:
        rpc.eth_call({'to': CONTRACT, 'data': '0x'}, 'latest')
    assert exc_info.value.code == 3

def test_rpc_connection_error():
    rpc = ChainRPC("http://node.test")
    rpc.session = MagicMock()
    rpc.session.post.side_effect = requests.exceptions.ConnectionError()
    with pytest.raises(NodeConnectionError):
        rpc.eth_chainId()

def test_rpc_without_url():
    with pytest.raises(NodeNotConfiguredError):
        ChainRPC("").eth_blockNumber()

@pytest.mark.asyncio
async def test_contract_reads():
    rpc = MagicMock()
    rpc.url = "http://node.test"
    rpc.eth_call.side_effect = [abi_address('0x' + 'cd' * 20), abi_string('ipfs://bafymeta')]
    contract = NFTContract(rpc=rpc, contract_address=CONTRACT)
    
    assert await contract.owner_of(42) == to_checksum_address('0x' + 'cd' * 20)
    assert await contract.token_uri(42) == 'ipfs://bafymeta'
    call, block = rpc.eth_call.call_args_list[0].args
    assert call == {'to': CONTRACT, 'data': encode_call('ownerOf', 42)}
    assert block == 'latest'

@pytest.mark.asyncio
async def test_mock_mint():
    contract = NFTContract(rpc=ChainRPC(""), contract_address=CONTRACT)
    assert not contract.configured
    minted = await contract.mint("0xcreator", "ipfs://bafymeta")
    assert minted['contractAddress'] == CONTRACT
    assert minted['tokenId'].isdigit()
