from .base import DifficultyRPCClient, RPCError
from .node import NodeRPCClient

__all__ = [
    'DifficultyRPCClient',
    'RPCError',
    'NodeRPCClient'
]
