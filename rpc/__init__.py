"""RPC module for talking JSON-RPC to an asset node"""
import logging
import threading
import requests
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

class RPCError(Exception):
    """Base exception for RPC errors"""
    def __init__(self, message: str, code: Optional[int] = None, method: Optional[str] = None):
        self.code = code
        self.method = method
        super().__init__(f"RPC Error [{code}] in {method}: {message}" if code else message)

class NodeConnectionError(RPCError):
    """Raised when connection to node fails"""
    pass

class NodeAuthError(RPCError):
    """Raised when authentication failed"""
    pass

class NodeError(RPCError):
    """Error returned by the asset node

    Common error codes:
    -1  - General error during processing
    -3  - Token not found
    -5  - Invalid parameter
    -13 - Transfer not authorized
    -20 - Invalid address or key
    -22 - Error parsing JSON
    """
    # Map of known node error codes to human-readable messages
    ERROR_MESSAGES = {
        -1: "General error during processing",
        -3: "Token not found",
        -5: "Invalid parameter",
        -13: "Transfer not authorized",
        -20: "Invalid address or key",
        -22: "Error parsing JSON",
    }

    def __init__(self, message: str, code: int, method: str):
        # Get standard message for known error codes
        standard_msg = self.ERROR_MESSAGES.get(code, "Unknown error")
        # Combine standard message with specific message if different
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

class RegistryRPC:
    """JSON-RPC client for an asset registry node"""

    def __init__(
        self,
        url: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        """Initialize RPC client.

        Args:
            url: Node JSON-RPC endpoint
            user: Optional basic auth user
            password: Optional basic auth password
            timeout: Request timeout in seconds
            session: Optional preconfigured requests session
        """
        self.url = url
        self.timeout = timeout

        # Initialize session with auth
        self.session = session or requests.Session()
        if user:
            self.session.auth = (user, password or '')
        self.session.headers['content-type'] = 'application/json'

        # Request ID counter
        self._request_id = 0

        # Calls arrive from executor threads; requests.Session is not thread-safe
        self._id_lock = threading.Lock()
        self._session_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> 'RegistryRPC':
        """Build a client from the registry_rpc_* settings."""
        url = settings.get('registry_rpc_url')
        if not url:
            raise RPCError("registry_rpc_url is not configured")
        return cls(
            url,
            user=settings.get('registry_rpc_user') or None,
            password=settings.get('registry_rpc_password') or None,
            timeout=float(settings.get('registry_rpc_timeout', 10))
        )

    def _get_request_id(self) -> int:
        """Get unique request ID"""
        with self._id_lock:
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
            NodeConnectionError: Connection to node failed
            NodeAuthError: Authentication failed
            NodeError: Node returned an error
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": list(args),
            "id": self._get_request_id()
        }
        logger.debug(f"RPC call {method} {payload['params']}")

        result = None
        try:
            with self._session_lock:
                response = self.session.post(self.url, json=payload, timeout=self.timeout)

            # Check for auth error
            if response.status_code == 401:
                raise NodeAuthError("Authentication failed - check registry_rpc_user/registry_rpc_password")

            # Try to parse response even if status code is error
            result = response.json()

            # Check for RPC error
            if 'error' in result and result['error'] is not None:
                error = result['error']
                raise NodeError(
                    error.get('message', 'Unknown error'),
                    error.get('code', -1),
                    method
                )

            # Now check for HTTP errors after we've tried to parse potential error response
            response.raise_for_status()

            return result['result']

        except requests.exceptions.Timeout as e:
            raise NodeConnectionError(
                f"Request timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise NodeConnectionError(
                f"Failed to connect to node at {self.url}"
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

    # Registry methods
    ownerof = RPCMethod('ownerof')
    isapprovedforall = RPCMethod('isapprovedforall')
    transfercustody = RPCMethod('transfercustody')
    tokenuri = RPCMethod('tokenuri')
    balanceof = RPCMethod('balanceof')

    # Utility methods
    ping = RPCMethod('ping')

# Export client and error types
__all__ = [
    'RegistryRPC',
    'RPCMethod',
    'RPCError',
    'NodeConnectionError',
    'NodeAuthError',
    'NodeError',
]
