"""
Base abstract class for controlling the external miner process
"""
from abc import ABC, abstractmethod


class MinerProcessController(ABC):
    """Abstract base class for miner supervisors (service manager, container, ...)"""

    @abstractmethod
    def is_active(self) -> bool:
        """
        Check if the miner is currently running

        Returns:
            True if active, False otherwise (including when the check fails)
        """
        pass

    @abstractmethod
    def start(self):
        """
        Start the miner

        Raises:
            Exception: if the start command failed
        """
        pass

    @abstractmethod
    def restart(self):
        """
        Restart the miner so it picks up new configuration

        Raises:
            Exception: if the restart command failed
        """
        pass
