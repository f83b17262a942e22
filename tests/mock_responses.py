"""
Mock node RPC responses for testing without a running node
"""

# eth_getBlockByNumber("latest", false)
NODE_LATEST_BLOCK = {
    "jsonrpc": "2.0",
    "id": 1,
    "result": {
        "number": "0x1a4",
        "hash": "0x5c5d1b4f0e6b0e6b2ce9e8fb4f4f1d3c2a8d2d3f6f0e4a3b2c1d0e9f8a7b6c5d",
        "difficulty": "0x64",  # 100
        "timestamp": "0x6553f100"
    }
}

# Quai nodes nest header fields
NODE_LATEST_BLOCK_NESTED = {
    "jsonrpc": "2.0",
    "id": 1,
    "result": {
        "header": {
            "number": ["0x10", "0x20", "0x1a4"],
            "difficulty": "0x28"  # 40
        }
    }
}

NODE_RPC_ERROR = {
    "jsonrpc": "2.0",
    "id": 1,
    "error": {
        "code": -32601,
        "message": "the method eth_getBlockByNumber does not exist/is not available"
    }
}

NODE_BLOCK_NO_DIFFICULTY = {
    "jsonrpc": "2.0",
    "id": 1,
    "result": {
        "number": "0x1a4"
    }
}

NODE_BLOCK_BAD_DIFFICULTY = {
    "jsonrpc": "2.0",
    "id": 1,
    "result": {
        "difficulty": "0xnotahexvalue"
    }
}

NODE_NULL_RESULT = {
    "jsonrpc": "2.0",
    "id": 1,
    "result": None
}

# Shared miner config written by other tools
EXISTING_MINER_CONFIG = {
    "miner": {
        "stratum": "stratum+tcp://pool.example:3333",
        "wallet": "0x00a3e45aa16163F2663015b6695894D918866d19",
        "worker": "rig-01"
    },
    "node": {
        "rpcUrl": "http://10.0.0.5:8545",
        "requireSynced": True
    },
    "mining": {
        "intensity": 22,
        "sharding": {
            "enabled": True,
            "activeZones": ["Zone-1"],
            "preferredZone": "Zone-1",
            "maxZones": 4
        }
    },
    "gpus": [0, 1]
}
