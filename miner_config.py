"""
Shared miner configuration file

The miner, the wallet setup and this switcher all write to the same JSON file.
Only the mining target and sharding sections are owned here; everything else
is carried through untouched on every write.
"""
import json
import logging
import os
import socket
import stat
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import config
from chains import chain_key, chain_name

logger = logging.getLogger(__name__)


def _as_list(value) -> List:
    """Other writers may leave null or a scalar where a list belongs"""
    return list(value) if isinstance(value, list) else []


def _as_bool(value, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _as_str(value, default: Optional[str] = '') -> Optional[str]:
    return value if isinstance(value, str) else default


def _as_difficulty(value) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


@dataclass
class TargetChain:
    id: str
    key: str
    name: str
    switched_at: str
    reason: str = ''
    difficulty: Optional[int] = None
    extra: Dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> 'TargetChain':
        data = dict(data)
        return cls(
            id=_as_str(data.pop('id', '')),
            key=_as_str(data.pop('key', '')),
            name=_as_str(data.pop('name', '')),
            switched_at=_as_str(data.pop('switchedAt', '')),
            reason=_as_str(data.pop('reason', '')),
            difficulty=_as_difficulty(data.pop('difficulty', None)),
            extra=data
        )

    def to_dict(self) -> Dict:
        return {
            **self.extra,
            'id': self.id,
            'key': self.key,
            'name': self.name,
            'switchedAt': self.switched_at,
            'reason': self.reason,
            'difficulty': self.difficulty
        }


@dataclass
class MergedMining:
    enabled: bool = True
    chains: List[str] = field(default_factory=list)
    auto_switched: bool = True
    switched_at: str = ''
    reason: str = ''
    extra: Dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> 'MergedMining':
        data = dict(data)
        return cls(
            enabled=_as_bool(data.pop('enabled', True), True),
            chains=_as_list(data.pop('chains', None)),
            auto_switched=_as_bool(data.pop('autoSwitched', True), True),
            switched_at=_as_str(data.pop('switchedAt', '')),
            reason=_as_str(data.pop('reason', '')),
            extra=data
        )

    def to_dict(self) -> Dict:
        return {
            **self.extra,
            'enabled': self.enabled,
            'chains': list(self.chains),
            'autoSwitched': self.auto_switched,
            'switchedAt': self.switched_at,
            'reason': self.reason
        }


@dataclass
class ShardingConfig:
    enabled: bool = False
    active_zones: List[str] = field(default_factory=list)
    preferred_zone: Optional[str] = None
    extra: Dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> 'ShardingConfig':
        data = dict(data)
        return cls(
            enabled=_as_bool(data.pop('enabled', False), False),
            active_zones=_as_list(data.pop('activeZones', None)),
            preferred_zone=_as_str(data.pop('preferredZone', None), None),
            extra=data
        )

    def to_dict(self) -> Dict:
        return {
            **self.extra,
            'enabled': self.enabled,
            'activeZones': list(self.active_zones),
            'preferredZone': self.preferred_zone
        }


@dataclass
class MiningSection:
    target_chain: Optional[TargetChain] = None
    merged_mining: Optional[MergedMining] = None
    sharding: Optional[ShardingConfig] = None
    extra: Dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> 'MiningSection':
        data = dict(data)
        target = data.pop('targetChain', None)
        merged = data.pop('mergedMining', None)
        sharding = data.pop('sharding', None)
        return cls(
            target_chain=TargetChain.from_dict(target) if isinstance(target, dict) else None,
            merged_mining=MergedMining.from_dict(merged) if isinstance(merged, dict) else None,
            sharding=ShardingConfig.from_dict(sharding) if isinstance(sharding, dict) else None,
            extra=data
        )

    def to_dict(self) -> Dict:
        data = dict(self.extra)
        if self.target_chain:
            data['targetChain'] = self.target_chain.to_dict()
        if self.merged_mining:
            data['mergedMining'] = self.merged_mining.to_dict()
        if self.sharding:
            data['sharding'] = self.sharding.to_dict()
        return data


@dataclass
class MinerConfig:
    mining: MiningSection = field(default_factory=MiningSection)
    extra: Dict = field(default_factory=dict)  # miner, node, wallet... owned elsewhere

    @classmethod
    def from_dict(cls, data: Dict) -> 'MinerConfig':
        data = dict(data)
        mining = data.pop('mining', None)
        return cls(
            mining=MiningSection.from_dict(mining) if isinstance(mining, dict) else MiningSection(),
            extra=data
        )

    def to_dict(self) -> Dict:
        data = dict(self.extra)
        data['mining'] = self.mining.to_dict()
        return data


def default_config() -> MinerConfig:
    """Minimal config used when the file is missing or unreadable"""
    return MinerConfig(extra={
        'miner': {
            'stratum': '',
            'wallet': '',
            'worker': f"rig-{socket.gethostname()}"
        },
        'node': {
            'rpcUrl': config.NODE_RPC_URL,
            'requireSynced': True
        }
    })


class MinerConfigStore:
    """Read-merge-write access to the miner configuration file"""

    def __init__(self, path: str = None):
        self.path = path or config.MINER_CONFIG_PATH

    def load(self) -> MinerConfig:
        """Load config, falling back to defaults if missing or invalid"""
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root is not an object")
            return MinerConfig.from_dict(data)
        except FileNotFoundError:
            logger.info(f"No miner config at {self.path}, using defaults")
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read miner config {self.path}: {e}, using defaults")
        return default_config()

    def _file_mode(self) -> int:
        """Mode of the existing file, or the umask default for a new one"""
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def save(self, miner_config: MinerConfig):
        """Write config atomically; errors are logged and re-raised"""
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.config-', suffix='.json')
            with os.fdopen(fd, 'w') as f:
                json.dump(miner_config.to_dict(), f, indent=2)
            # mkstemp creates 0600; other users of the file must still read it
            os.chmod(tmp_path, self._file_mode())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except Exception as e:
            logger.error(f"Error writing miner config {self.path}: {e}")
            raise
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def apply_switch(self, chain: str, reason: str = '', difficulty: Optional[int] = None,
                     sharding_zones: Optional[List[str]] = None) -> MinerConfig:
        """
        Point the miner at a new chain

        Args:
            chain: Target chain id
            reason: Human readable reason stored alongside the target
            difficulty: Difficulty of the target at switch time
            sharding_zones: Zones to shard across, or None when sharding
                does not apply to this switch

        Returns:
            The merged config that was written
        """
        miner_config = self.load()
        mining = miner_config.mining
        switched_at = datetime.now().isoformat()

        mining.target_chain = TargetChain(
            id=chain,
            key=chain_key(chain),
            name=chain_name(chain),
            switched_at=switched_at,
            reason=reason,
            difficulty=difficulty,
            extra=mining.target_chain.extra if mining.target_chain else {}
        )
        mining.merged_mining = MergedMining(
            enabled=True,
            chains=[chain],
            auto_switched=True,
            switched_at=switched_at,
            reason=reason,
            extra=mining.merged_mining.extra if mining.merged_mining else {}
        )

        if sharding_zones:
            mining.sharding = ShardingConfig(
                enabled=True,
                active_zones=list(sharding_zones),
                preferred_zone=chain,
                extra=mining.sharding.extra if mining.sharding else {}
            )
        elif mining.sharding:
            # Keep the operator's zone list but stop fanning out
            mining.sharding.enabled = False

        self.save(miner_config)
        logger.info(f"Miner config updated: target chain {chain}")
        return miner_config

    def read_sharding(self) -> Optional[ShardingConfig]:
        return self.load().mining.sharding