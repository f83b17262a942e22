"""
Configuration for Quai Chain Switcher
"""
import json
import os


def _env_list(name: str, default: list) -> list:
    value = os.environ.get(name)
    if not value:
        return default
    return [item.strip() for item in value.split(',') if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Node RPC settings
NODE_RPC_URL = os.environ.get("NODE_RPC_URL", "http://localhost:8545")
# Optional per-chain endpoints as JSON, e.g. {"Prime": "http://localhost:9001"}
CHAIN_RPC_URLS = json.loads(os.environ.get("CHAIN_RPC_URLS", "{}"))
RPC_METHOD = os.environ.get("RPC_METHOD", "eth_getBlockByNumber")
RPC_TIMEOUT = float(os.environ.get("RPC_TIMEOUT", 5))  # seconds per request
RPC_MAX_WORKERS = int(os.environ.get("RPC_MAX_WORKERS", 8))  # parallel chain fetches

# Monitoring settings
UPDATE_INTERVAL = int(os.environ.get("UPDATE_INTERVAL", 300))  # seconds between samples
CHECK_INTERVAL = int(os.environ.get("CHECK_INTERVAL", 300))  # seconds between switch checks
HISTORY_MAX_ENTRIES = 1000  # ~83 hours at 5 minute samples
SWITCH_HISTORY_MAX = 100
STATUS_HISTORY_LIMIT = 10  # switch records shown in status

# Switching policy
PROFITABILITY_THRESHOLD = float(os.environ.get("PROFITABILITY_THRESHOLD", 0.05))
AUTO_SWITCH_ENABLED = _env_bool("AUTO_SWITCH_ENABLED", False)

# Chain topology
PRIME_CHAIN = "Prime"
REGION_CHAINS = _env_list("REGION_CHAINS", ["Cyprus", "Paxos", "Hydra"])
ZONE_PREFIX = "Zone-"
ZONE_CHAINS = _env_list("ZONE_CHAINS", ["Zone-0", "Zone-1", "Zone-2", "Zone-3"])
DEFAULT_SHARDING_ZONES = ["Zone-0", "Zone-1", "Zone-2", "Zone-3"]

# Nominal block rewards used for relative profitability
DEFAULT_BLOCK_REWARDS = {
    "Prime": 1.0,
    "Cyprus": 0.8,
    "Paxos": 0.8,
    "Hydra": 0.8,
    "Zone-0": 0.6,
    "Zone-1": 0.6,
    "Zone-2": 0.6,
    "Zone-3": 0.6
}
FALLBACK_BLOCK_REWARD = 1.0

# Miner integration
MINER_CONFIG_PATH = os.environ.get("MINER_CONFIG_PATH", "/etc/quaiminer/config.json")
MINER_SERVICE_NAME = os.environ.get("MINER_SERVICE_NAME", "quai-gpu-miner")
MINER_CONTROL = os.environ.get("MINER_CONTROL", "systemd")  # systemd / none
USE_SUDO = _env_bool("USE_SUDO", False)
SYSTEMCTL_TIMEOUT = 30  # seconds

# Flask settings
FLASK_HOST = os.environ.get("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.environ.get("FLASK_PORT", 5000))
DEBUG = _env_bool("DEBUG", False)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Chain tiers
CHAIN_TIERS = {
    "PRIME": "prime",
    "REGION": "region",
    "ZONE": "zone"
}
