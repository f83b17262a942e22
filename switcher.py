"""
Auto Chain Switcher

Points the miner at the most profitable Quai chain. Switches only when the
candidate beats the current chain by at least the configured threshold, so
small difficulty fluctuations do not cause the miner to bounce between chains.
"""
import logging
import math
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Dict, List, Optional, Tuple

import config
from chains import is_zone
from difficulty import DifficultyTracker
from miner_config import MinerConfigStore
from process import MinerProcessController
from scheduler import PeriodicTask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwitchRecord:
    """A completed chain switch"""
    chain: str
    timestamp: datetime
    profitability_at_switch: Optional[float]
    previous_chain: Optional[str] = None
    reason: str = ''

    def to_dict(self) -> Dict:
        return {
            'chain': self.chain,
            'timestamp': self.timestamp.isoformat(),
            'profitability_at_switch': self.profitability_at_switch,
            'previous_chain': self.previous_chain,
            'reason': self.reason
        }


def clamp_threshold(threshold: float) -> float:
    threshold = float(threshold)
    if math.isnan(threshold):
        raise ValueError("Threshold must be a number")
    return max(0.0, min(1.0, threshold))


class ChainSwitcher:
    """Monitors chain profitability and retargets the miner"""

    def __init__(self, tracker: DifficultyTracker, config_store: MinerConfigStore,
                 process_controller: MinerProcessController, check_interval: float = None,
                 threshold: float = None, block_rewards: Optional[Dict[str, float]] = None):
        self.tracker = tracker
        self.config_store = config_store
        self.process_controller = process_controller
        self.check_interval = check_interval or config.CHECK_INTERVAL

        self.enabled = False
        self.current_chain: Optional[str] = None
        self.threshold = clamp_threshold(
            config.PROFITABILITY_THRESHOLD if threshold is None else threshold
        )
        self.block_rewards = dict(config.DEFAULT_BLOCK_REWARDS)
        if block_rewards:
            self.block_rewards.update(block_rewards)
        self.sharding_enabled = False
        self.zone_preferences: List[str] = []
        self.switch_history = deque(maxlen=config.SWITCH_HISTORY_MAX)

        self.lock = RLock()
        self._cycle_lock = RLock()  # one decision or manual switch at a time
        self._generation = 0
        self._task = PeriodicTask('chain-switcher', self.check_interval, self._scheduled_check)

    def start(self):
        """Start sampling and periodic switch checks"""
        with self.lock:
            if self.enabled:
                logger.warning("Auto chain switcher already running")
                return
            self.enabled = True

        if not self.tracker.running:
            self.tracker.start(self.check_interval)

        # First check runs right away on the scheduler thread
        self._task.start(self.check_interval)
        logger.info("Auto chain switcher started")

    def stop(self):
        """Stop switching; safe to call when already stopped"""
        with self.lock:
            if not self.enabled:
                return
            self.enabled = False
            self._generation += 1

        self.tracker.stop()
        self._task.stop()
        logger.info("Auto chain switcher stopped")

    def _scheduled_check(self):
        if not self.enabled:
            return
        self.check_and_switch()

    def check_and_switch(self) -> Optional[SwitchRecord]:
        """
        Run one decision cycle

        Refreshes difficulties, picks the most profitable chain and switches
        to it if the switch policy allows.

        Returns:
            SwitchRecord if a switch happened, None otherwise

        Raises:
            OSError: the miner config could not be written
        """
        with self._cycle_lock:
            with self.lock:
                generation = self._generation
                rewards = dict(self.block_rewards)

            # Decide on the snapshot produced by this cycle's own update
            self.tracker.update_difficulties()

            best = self.tracker.get_most_profitable_chain(rewards)
            if best.chain is None:
                logger.warning("No profitable chain found, skipping switch check")
                return None

            with self.lock:
                if generation != self._generation:
                    logger.info("Switcher stopped during check, discarding result")
                    return None
                switch, reason = self._evaluate(best.chain, best.profitability)

            if not switch:
                logger.debug(f"Staying on {self.current_chain} ({reason})")
                return None

            return self.switch_to_chain(best.chain, best.profitability, reason)

    def should_switch(self, target_chain: str, target_profitability: float) -> bool:
        """Whether moving to target_chain is worth it under the threshold policy"""
        return self._evaluate(target_chain, target_profitability)[0]

    def _evaluate(self, target_chain: str, target_profitability: float) -> Tuple[bool, str]:
        with self.lock:
            current = self.current_chain
            threshold = self.threshold
            current_reward = self.block_rewards.get(current, config.FALLBACK_BLOCK_REWARD)

        if not current:
            return True, "initial chain selection"

        if current == target_chain:
            return False, "already on most profitable chain"

        current_profitability = self.tracker.calculate_profitability(current, current_reward)
        if not current_profitability:
            return True, f"profitability of {current} unknown"

        improvement = (target_profitability - current_profitability) / current_profitability
        if improvement >= threshold:
            return True, f"{improvement:.1%} more profitable than {current}"
        return False, f"{improvement:.1%} improvement below {threshold:.1%} threshold"

    def switch_to_chain(self, chain: str, profitability: Optional[float] = None,
                        reason: str = "manual switch") -> SwitchRecord:
        """
        Point the miner at a chain

        Writes the miner config, restarts the miner (best effort) and
        records the switch.

        Raises:
            OSError: the miner config could not be written
        """
        with self._cycle_lock:
            with self.lock:
                reward = self.block_rewards.get(chain, config.FALLBACK_BLOCK_REWARD)
                sharding_zones = None
                if self.sharding_enabled and is_zone(chain):
                    sharding_zones = list(self.zone_preferences) or [chain]

            if profitability is None:
                profitability = self.tracker.calculate_profitability(chain, reward)

            logger.info(f"Switching to chain {chain}: {reason}")
            self.config_store.apply_switch(
                chain,
                reason=reason,
                difficulty=self.tracker.get_difficulty(chain),
                sharding_zones=sharding_zones
            )

            self.restart_miner()

            with self.lock:
                record = SwitchRecord(
                    chain=chain,
                    timestamp=datetime.now(),
                    profitability_at_switch=profitability,
                    previous_chain=self.current_chain,
                    reason=reason
                )
                self.switch_history.append(record)
                self.current_chain = chain

            logger.info(f"Successfully switched to {chain}")
            return record

    def restart_miner(self) -> bool:
        """Restart the miner, or start it if it is not running. Never raises."""
        try:
            if not self.process_controller.is_active():
                self.process_controller.start()
            else:
                self.process_controller.restart()
            return True
        except Exception as e:
            logger.error(f"Error restarting miner: {e}")
            return False

    # Configuration

    def enable_sharding(self, zones: Optional[List[str]] = None):
        """Shard across zones on the next switch to a zone chain"""
        zones = list(zones or [])
        invalid = [zone for zone in zones if not is_zone(zone)]
        if invalid:
            raise ValueError(f"Not zone chains: {', '.join(invalid)}")

        with self.lock:
            self.sharding_enabled = True
            self.zone_preferences = list(dict.fromkeys(zones)) or list(config.DEFAULT_SHARDING_ZONES)
            preferences = list(self.zone_preferences)
        logger.info(f"Zone sharding enabled: {preferences}")

    def disable_sharding(self):
        with self.lock:
            self.sharding_enabled = False
            self.zone_preferences = []
        logger.info("Zone sharding disabled")

    def set_threshold(self, threshold: float) -> float:
        """Set the minimum relative improvement needed to switch, clamped to [0, 1]"""
        with self.lock:
            self.threshold = clamp_threshold(threshold)
            value = self.threshold
        logger.info(f"Profitability threshold set to {value:.2%}")
        return value

    def update_block_rewards(self, rewards: Dict[str, float]) -> Dict[str, float]:
        """Merge new per-chain rewards into the reward table"""
        parsed = {chain: float(reward) for chain, reward in rewards.items()}
        negative = [chain for chain, reward in parsed.items() if reward < 0 or math.isnan(reward)]
        if negative:
            raise ValueError(f"Invalid block reward for: {', '.join(negative)}")

        with self.lock:
            self.block_rewards.update(parsed)
            updated = dict(self.block_rewards)
        logger.info(f"Block rewards updated: {updated}")
        return updated

    # Status

    def get_status(self) -> Dict:
        """Read-only view of switcher state for the dashboard"""
        with self.lock:
            rewards = dict(self.block_rewards)
            status = {
                'enabled': self.enabled,
                'current_chain': self.current_chain,
                'threshold': self.threshold,
                'block_rewards': rewards,
                'sharding_enabled': self.sharding_enabled,
                'zone_preferences': list(self.zone_preferences),
                'switch_history': [
                    record.to_dict()
                    for record in list(self.switch_history)[-config.STATUS_HISTORY_LIMIT:]
                ]
            }

        best = self.tracker.get_most_profitable_chain(rewards)
        last_update = self.tracker.last_update
        status.update({
            'most_profitable_chain': best.chain,
            'profitability': best.profitability,
            'difficulties': self.tracker.get_all_difficulties(),
            'last_check': last_update.isoformat() if last_update else None
        })
        return status
