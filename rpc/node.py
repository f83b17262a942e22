"""
JSON-RPC client for a Quai node
"""
import requests
import logging
from typing import Dict, Optional
from .base import DifficultyRPCClient, RPCError
import config

logger = logging.getLogger(__name__)


def parse_difficulty(value) -> int:
    """Parse a base-16 difficulty string (e.g. '0x1bc16d674ec80000')"""
    if not isinstance(value, str) or not value.strip():
        raise RPCError(f"Malformed difficulty field: {value!r}")
    try:
        difficulty = int(value.strip(), 16)
    except ValueError:
        raise RPCError(f"Malformed difficulty field: {value!r}")
    if difficulty < 0:
        raise RPCError(f"Negative difficulty: {value!r}")
    return difficulty


class NodeRPCClient(DifficultyRPCClient):
    """Fetch latest block difficulty over HTTP JSON-RPC"""

    def __init__(self, rpc_url: str = None, chain_urls: Optional[Dict[str, str]] = None,
                 timeout: float = None, method: str = None):
        self.rpc_url = rpc_url or config.NODE_RPC_URL
        self.chain_urls = dict(config.CHAIN_RPC_URLS if chain_urls is None else chain_urls)
        self.timeout = timeout or config.RPC_TIMEOUT
        self.method = method or config.RPC_METHOD

    def url_for(self, chain: str) -> str:
        """Endpoint serving a chain, falling back to the default node URL"""
        return self.chain_urls.get(chain, self.rpc_url)

    def get_latest_difficulty(self, chain: str) -> int:
        """Query the latest block header for a chain and return its difficulty"""
        response = requests.post(
            self.url_for(chain),
            json={
                'jsonrpc': '2.0',
                'method': self.method,
                'params': ['latest', False],
                'id': 1
            },
            timeout=self.timeout
        )
        if response.status_code != 200:
            raise RPCError(f"HTTP {response.status_code} from {self.url_for(chain)}")

        try:
            data = response.json()
        except ValueError as e:
            raise RPCError(f"Invalid JSON response: {e}")

        if not isinstance(data, dict):
            raise RPCError("Invalid RPC response")

        if data.get('error'):
            error = data['error']
            message = error.get('message') if isinstance(error, dict) else error
            raise RPCError(f"RPC error: {message}")

        block = data.get('result')
        if not isinstance(block, dict):
            raise RPCError("Invalid block data")

        # Quai nodes may nest the header fields
        value = block.get('difficulty')
        if value is None and isinstance(block.get('header'), dict):
            value = block['header'].get('difficulty')
        if value is None:
            raise RPCError("Block has no difficulty field")

        difficulty = parse_difficulty(value)
        logger.debug(f"{chain} latest block difficulty: {difficulty}")
        return difficulty
