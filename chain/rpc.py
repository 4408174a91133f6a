"""JSON-RPC client for an EVM-compatible blockchain node"""
import requests
from typing import Any, Optional

class RPCError(Exception):
    """Base exception for RPC errors"""
    def __init__(self, message: str, code: Optional[int] = None, method: Optional[str] = None):
        self.code = code
        self.method = method
        super().__init__(f"RPC Error [{code}] in {method}: {message}" if code else message)

class NodeConnectionError(RPCError):
    """Raised when connection to node fails"""
    pass

class NodeNotConfiguredError(RPCError):
    """Raised when no provider URL is configured"""
    pass

class NodeError(RPCError):
    """Node-reported JSON-RPC errors
    
    Common error codes:
    -32700 - Parse error
    -32600 - Invalid request
    -32601 - Method not found
    -32602 - Invalid params
    -32603 - Internal error
    3      - Execution reverted
    """
    # Map of known error codes to human-readable messages
    ERROR_MESSAGES = {
        -32700: "Parse error",
        -32600: "Invalid request",
        -32601: "Method not found",
        -32602: "Invalid params",
        -32603: "Internal error",
        3: "Execution reverted",
    }
    
    def __init__(self, message: str, code: int, method: str):
        standard_msg = self.ERROR_MESSAGES.get(code, "Unknown error")
        full_msg = f"{standard_msg} - {message}" if message != standard_msg else message
        super().__init__(full_msg, code, method)

class RPCMethod:
    """Descriptor class for RPC methods"""
    def __init__(self, method_name: str):
        self.method_name = method_name
    
    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        
        def caller(*args) -> Any:
            return obj._call_method(self.method_name, *args)
        
        return caller

class ChainRPC:
    """Blockchain node JSON-RPC client"""
    
    def __init__(self, url: str, timeout: float = 10.0):
        """Initialize RPC client.
        
        Args:
            url: HTTP(S) provider URL of the node
            timeout: Request timeout in seconds
        """
        self.url = url
        self.timeout = timeout
        
        self.session = requests.Session()
        self.session.headers['content-type'] = 'application/json'
        
        # Request ID counter
        self._request_id = 0
    
    def _get_request_id(self) -> int:
        """Get unique request ID"""
        self._request_id += 1
        return self._request_id
    
    def _call_method(self, method: str, *args) -> Any:
        """Make RPC call to the node
        
        Args:
            method: RPC method name
            *args: Method arguments
            
        Returns:
            Response from node
            
        Raises:
            NodeNotConfiguredError: No provider URL configured
            NodeConnectionError: Connection to node failed
            NodeError: Node returned a JSON-RPC error
        """
        if not self.url:
            raise NodeNotConfiguredError("Blockchain provider URL is not configured", method=method)
        
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": list(args),
            "id": self._get_request_id()
        }
        
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            result = response.json()
            
            if isinstance(result, dict) and result.get('error') is not None:
                error = result['error']
                raise NodeError(
                    error.get('message', 'Unknown error'),
                    error.get('code', -1),
                    method
                )
            
            response.raise_for_status()
            return result['result']
            
        except requests.exceptions.Timeout as e:
            raise NodeConnectionError(
                f"Request timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise NodeConnectionError(
                f"Failed to connect to blockchain node at {self.url}"
            ) from e
        except requests.exceptions.HTTPError as e:
            raise NodeConnectionError(
                f"HTTP error occurred: {str(e)}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise NodeConnectionError(
                f"Request failed: {str(e)}"
            ) from e
        except (KeyError, ValueError, TypeError) as e:
            raise NodeConnectionError(
                f"Invalid response format: {str(e)}"
            ) from e
    
    eth_call = RPCMethod('eth_call')
    eth_blockNumber = RPCMethod('eth_blockNumber')
    eth_chainId = RPCMethod('eth_chainId')
    net_version = RPCMethod('net_version')
