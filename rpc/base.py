"""
Base abstract class for blockchain node RPC clients
"""
from abc import ABC, abstractmethod


class RPCError(Exception):
    """Node replied, but with an RPC error object or unusable block data"""


class DifficultyRPCClient(ABC):
    """Abstract base class for difficulty sources"""

    @abstractmethod
    def get_latest_difficulty(self, chain: str) -> int:
        """
        Get difficulty of the latest block on a chain

        Args:
            chain: Chain identity (e.g. "Prime", "Cyprus", "Zone-0")

        Returns:
            Difficulty as a non-negative integer

        Raises:
            RPCError: RPC-level error or malformed difficulty field
            requests.exceptions.RequestException: transport failure
        """
        pass
