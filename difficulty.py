"""
Difficulty Tracking Module

Samples mining difficulty for Prime, Region and Zone chains from the node,
keeps a bounded history for trend analysis and derives a simple
reward/difficulty profitability figure used to pick a chain to mine.
"""
import logging
import requests
from collections import deque
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from threading import Lock, RLock
from typing import Dict, List, Optional

import config
from chains import chain_tier, is_prime, is_zone, tracked_chains
from rpc import DifficultyRPCClient, RPCError
from scheduler import PeriodicTask

logger = logging.getLogger(__name__)

TIER_ORDER = {'prime': 0, 'region': 1, 'zone': 2}


@dataclass(frozen=True)
class DifficultySample:
    """One successful difficulty reading for a chain"""
    chain: str
    difficulty: int
    observed_at: datetime


@dataclass(frozen=True)
class HistoryEntry:
    """Snapshot of every known chain difficulty at the end of a sampling cycle"""
    timestamp: datetime
    snapshot: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'timestamp': self.timestamp.isoformat(),
            'difficulties': group_by_tier(self.snapshot)
        }


@dataclass(frozen=True)
class ProfitabilityResult:
    chain: Optional[str]
    profitability: Optional[float]


@dataclass
class Trend:
    """Difficulty movement for one chain over a time window"""
    chain: str
    trend: str                      # increasing / decreasing / stable
    change_percent: Optional[float]  # None when the first sample was 0
    current: int
    average: float
    min: int
    max: int
    samples: int

    def to_dict(self) -> Dict:
        return {
            'chain': self.chain,
            'trend': self.trend,
            'change_percent': self.change_percent,
            'current': self.current,
            'average': self.average,
            'min': self.min,
            'max': self.max,
            'samples': self.samples
        }


def group_by_tier(snapshot: Dict[str, int]) -> Dict:
    """Arrange a flat chain -> difficulty map as {Prime, Regions, Zones}"""
    grouped = {'Prime': None, 'Regions': {}, 'Zones': {}}
    for chain, difficulty in snapshot.items():
        if is_prime(chain):
            grouped['Prime'] = difficulty
        elif is_zone(chain):
            grouped['Zones'][chain] = difficulty
        else:
            grouped['Regions'][chain] = difficulty
    return grouped


def _tier_rank(chain: str) -> int:
    return TIER_ORDER[chain_tier(chain)]


class DifficultyTracker:
    """Track difficulty across all Quai chains"""

    def __init__(self, rpc_client: DifficultyRPCClient, chains: Optional[List[str]] = None,
                 history_size: int = None, max_workers: int = None):
        self.rpc_client = rpc_client
        # Evaluation order: Prime, then regions, then zones (configured order kept within a tier)
        self.chains = sorted(chains if chains is not None else tracked_chains(), key=_tier_rank)
        self.max_workers = max_workers or config.RPC_MAX_WORKERS

        self.samples: Dict[str, DifficultySample] = {}
        self.history = deque(maxlen=history_size or config.HISTORY_MAX_ENTRIES)

        self._lock = RLock()  # guards samples/history
        self._cycle_lock = Lock()  # one sampling cycle at a time
        self._generation = 0  # bumped on stop() to discard in-flight cycles
        self._task = PeriodicTask('difficulty-tracker', config.UPDATE_INTERVAL,
                                  self.update_difficulties)

    # Lifecycle

    @property
    def running(self) -> bool:
        return self._task.running

    def start(self, interval: float = None):
        """Sample now, then every `interval` seconds"""
        self._task.start(interval or config.UPDATE_INTERVAL)
        logger.info(f"Difficulty tracker started ({self._task.interval}s interval)")

    def stop(self):
        """Stop periodic sampling"""
        with self._lock:
            self._generation += 1
        self._task.stop()
        logger.info("Difficulty tracker stopped")

    # Sampling

    def update_difficulties(self) -> Optional[HistoryEntry]:
        """
        Fetch difficulty for every tracked chain and record a history entry

        Each chain is fetched independently; a failure is logged and that
        chain keeps its previous value. The history entry is written only
        after all fetches have finished.

        Returns:
            The recorded HistoryEntry, or None if the tracker was stopped
            while the cycle was in flight
        """
        with self._cycle_lock:
            with self._lock:
                generation = self._generation

            fetched: Dict[str, DifficultySample] = {}
            workers = max(1, min(self.max_workers, len(self.chains)))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {
                    executor.submit(self._fetch_sample, chain): chain
                    for chain in self.chains
                }
                for future in as_completed(futures):
                    chain = futures[future]
                    try:
                        sample = future.result()
                    except Exception as e:
                        logger.error(f"Error fetching difficulty for {chain}: {e}")
                        continue
                    if sample is not None:
                        fetched[chain] = sample

            with self._lock:
                if generation != self._generation:
                    logger.info("Tracker stopped during update, discarding results")
                    return None

                self.samples.update(fetched)
                entry = HistoryEntry(
                    timestamp=datetime.now(),
                    snapshot={chain: s.difficulty for chain, s in self.samples.items()}
                )
                self.history.append(entry)

        failed = [chain for chain in self.chains if chain not in fetched]
        if failed:
            logger.warning(f"Difficulty update incomplete, no sample for: {', '.join(failed)}")
        else:
            logger.debug(f"Difficulty updated for {len(fetched)} chains")
        return entry

    def fetch_difficulty(self, chain: str) -> Optional[int]:
        """Fetch and store the difficulty of a single chain"""
        with self._lock:
            generation = self._generation

        sample = self._fetch_sample(chain)
        if sample is None:
            return None

        with self._lock:
            if generation != self._generation:
                return None
            self.samples[chain] = sample
        return sample.difficulty

    def _fetch_sample(self, chain: str) -> Optional[DifficultySample]:
        try:
            difficulty = self.rpc_client.get_latest_difficulty(chain)
        except requests.exceptions.Timeout:
            logger.warning(f"Timeout fetching difficulty for {chain}")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching difficulty for {chain}: {e}")
            return None
        except RPCError as e:
            logger.error(f"Bad RPC response for {chain}: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error fetching difficulty for {chain}: {e}")
            return None

        if isinstance(difficulty, bool) or not isinstance(difficulty, int) or difficulty < 0:
            logger.error(f"Ignoring invalid difficulty for {chain}: {difficulty!r}")
            return None

        logger.debug(f"Difficulty for {chain}: {difficulty}")
        return DifficultySample(chain=chain, difficulty=difficulty, observed_at=datetime.now())

    # Reads

    def get_difficulty(self, chain: str) -> Optional[int]:
        """Current difficulty for a chain, None if never sampled"""
        with self._lock:
            sample = self.samples.get(chain)
        return sample.difficulty if sample else None

    def get_snapshot(self) -> Dict[str, int]:
        """Flat copy of the current chain -> difficulty map"""
        with self._lock:
            return {chain: s.difficulty for chain, s in self.samples.items()}

    def get_all_difficulties(self) -> Dict:
        """Current difficulties grouped by tier"""
        snapshot = group_by_tier(self.get_snapshot())
        snapshot['timestamp'] = datetime.now().isoformat()
        return snapshot

    @property
    def last_update(self) -> Optional[datetime]:
        """Time of the most recent completed sampling cycle"""
        with self._lock:
            return self.history[-1].timestamp if self.history else None

    # Profitability

    def calculate_profitability(self, chain: str, block_reward: float = 1.0) -> Optional[float]:
        """
        Profitability = block reward / difficulty

        Returns:
            None when the difficulty is unknown or zero
        """
        difficulty = self.get_difficulty(chain)
        if not difficulty:
            return None
        return block_reward / difficulty

    def get_most_profitable_chain(self, block_rewards: Optional[Dict[str, float]] = None) -> ProfitabilityResult:
        """
        Find the chain with the highest reward/difficulty ratio

        Chains missing from `block_rewards` use FALLBACK_BLOCK_REWARD. Only
        chains with a known, positive profitability are candidates. Ties go
        to the chain evaluated first: Prime, then regions, then zones, each
        in configured order.
        """
        block_rewards = block_rewards or {}
        best_chain = None
        best_profitability = None

        for chain in self.chains:
            reward = block_rewards.get(chain, config.FALLBACK_BLOCK_REWARD)
            profitability = self.calculate_profitability(chain, reward)
            if profitability is None or profitability <= 0:
                continue
            if best_profitability is None or profitability > best_profitability:
                best_chain = chain
                best_profitability = profitability

        return ProfitabilityResult(chain=best_chain, profitability=best_profitability)

    # History and trends

    def get_history(self, hours: float = 24) -> List[HistoryEntry]:
        """History entries recorded within the last `hours`"""
        try:
            cutoff = datetime.now() - timedelta(hours=hours)
        except OverflowError:
            cutoff = datetime.min  # window reaches past the first representable date
        with self._lock:
            return [entry for entry in self.history if entry.timestamp >= cutoff]

    def get_trends(self, chain: str, hours: float = 24) -> Optional[Trend]:
        """
        Difficulty trend for a chain

        Returns:
            Trend, or None if fewer than two samples fall inside the window
        """
        values = [
            entry.snapshot[chain]
            for entry in self.get_history(hours)
            if entry.snapshot.get(chain) is not None
        ]
        if len(values) < 2:
            return None

        first, last = values[0], values[-1]
        change_percent = ((last - first) / first) * 100 if first else None
        if last > first:
            trend = 'increasing'
        elif last < first:
            trend = 'decreasing'
        else:
            trend = 'stable'

        return Trend(
            chain=chain,
            trend=trend,
            change_percent=change_percent,
            current=last,
            average=sum(values) / len(values),
            min=min(values),
            max=max(values),
            samples=len(values)
        )

    def get_all_trends(self, hours: float = 24) -> Dict[str, Trend]:
        """Trends for every tracked chain that has enough samples"""
        trends = {}
        for chain in self.chains:
            trend = self.get_trends(chain, hours)
            if trend:
                trends[chain] = trend
        return trends
