"""
Chain identities for the Quai hierarchy (Prime, Regions, Zones)
"""
from typing import List, Optional
import config


def is_prime(chain: str) -> bool:
    return chain == config.PRIME_CHAIN


def is_zone(chain: Optional[str]) -> bool:
    """Zones are recognized by name prefix since zone topology is configurable"""
    return bool(chain) and chain.startswith(config.ZONE_PREFIX)


def chain_tier(chain: str) -> str:
    """Return the tier name (prime/region/zone) for a chain"""
    if is_prime(chain):
        return config.CHAIN_TIERS['PRIME']
    if is_zone(chain):
        return config.CHAIN_TIERS['ZONE']
    return config.CHAIN_TIERS['REGION']


def chain_key(chain: str) -> str:
    """Lowercase key used in miner configuration (e.g. 'zone-0')"""
    return chain.lower()


def chain_name(chain: str) -> str:
    """Human readable chain name"""
    tier = chain_tier(chain)
    if tier == config.CHAIN_TIERS['PRIME']:
        return f"{chain} Chain"
    if tier == config.CHAIN_TIERS['ZONE']:
        return f"Zone {chain[len(config.ZONE_PREFIX):]}"
    return f"{chain} Region"


def tracked_chains() -> List[str]:
    """Chains sampled each cycle, in evaluation order"""
    return [config.PRIME_CHAIN] + list(config.REGION_CHAINS) + list(config.ZONE_CHAINS)
