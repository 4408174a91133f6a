"""ERC-721 contract ABI and calldata encoding for the read calls used by the marketplace."""
from typing import Any, Dict, List

from eth_abi import encode, decode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import decode_hex, encode_hex, function_abi_to_4byte_selector

NFT_ABI: List[Dict[str, Any]] = [
    {
        'type': 'function',
        'name': 'ownerOf',
        'stateMutability': 'view',
        'inputs': [{'name': 'tokenId', 'type': 'uint256'}],
        'outputs': [{'name': '', 'type': 'address'}]
    },
    {
        'type': 'function',
        'name': 'tokenURI',
        'stateMutability': 'view',
        'inputs': [{'name': 'tokenId', 'type': 'uint256'}],
        'outputs': [{'name': '', 'type': 'string'}]
    }
]

class ABIEncodeError(ValueError):
    """Raised when call arguments do not fit the ABI."""
    pass

class ABIDecodeError(ValueError):
    """Raised when call return data cannot be decoded."""
    pass

def get_function(name: str, abi: List[Dict[str, Any]] = NFT_ABI) -> Dict[str, Any]:
    for entry in abi:
        if entry.get('type') == 'function' and entry.get('name') == name:
            return entry
    raise KeyError(f"Function {name} is not in the contract ABI")

def _types(params: List[Dict[str, Any]]) -> List[str]:
    return [param['type'] for param in params]

def selector(name: str) -> str:
    """Hex 4-byte selector of an ABI function."""
    return encode_hex(function_abi_to_4byte_selector(get_function(name)))

def encode_call(name: str, *args: Any) -> str:
    """Hex calldata for a call to an ABI function.

    Raises:
        ABIEncodeError: If the arguments do not match the function inputs
    """
    fn = get_function(name)
    try:
        body = encode(_types(fn['inputs']), list(args))
    except EncodingError as e:
        raise ABIEncodeError(f"Invalid arguments for {name}: {e}") from e
    return encode_hex(function_abi_to_4byte_selector(fn) + body)

def decode_result(name: str, data: str) -> Any:
    """Decode the return data of an ABI function.

    Single outputs are returned unwrapped.

    Raises:
        ABIDecodeError: If the data is malformed or truncated
    """
    fn = get_function(name)
    try:
        values = decode(_types(fn['outputs']), decode_hex(data))
    except (DecodingError, ValueError) as e:
        raise ABIDecodeError(f"Invalid return data for {name}: {e}") from e
    return values[0] if len(values) == 1 else values
