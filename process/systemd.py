"""
systemd-backed miner process control
"""
import subprocess
import logging
from typing import List
from .base import MinerProcessController
import config

logger = logging.getLogger(__name__)


class SystemdController(MinerProcessController):
    """Control the miner through systemctl"""

    def __init__(self, service_name: str = None, use_sudo: bool = None, timeout: int = None):
        self.service_name = service_name or config.MINER_SERVICE_NAME
        self.use_sudo = config.USE_SUDO if use_sudo is None else use_sudo
        self.timeout = timeout or config.SYSTEMCTL_TIMEOUT

    def _command(self, action: str, privileged: bool = True) -> List[str]:
        cmd = ['systemctl', action, self.service_name]
        if privileged and self.use_sudo:
            cmd.insert(0, 'sudo')
        return cmd

    def is_active(self) -> bool:
        """Check if the miner service is active"""
        try:
            result = subprocess.run(
                self._command('is-active', privileged=False),
                capture_output=True, text=True, timeout=self.timeout
            )
            return result.returncode == 0 and result.stdout.strip() == 'active'
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Could not query {self.service_name}: {e}")
            return False

    def start(self):
        """Start the miner service"""
        subprocess.run(
            self._command('start'),
            capture_output=True, text=True, check=True, timeout=self.timeout
        )
        logger.info(f"Started {self.service_name}")

    def restart(self):
        """Restart the miner service"""
        subprocess.run(
            self._command('restart'),
            capture_output=True, text=True, check=True, timeout=self.timeout
        )
        logger.info(f"Restarted {self.service_name}")


class NullController(MinerProcessController):
    """Dry-run controller: configuration is written but nothing is restarted"""

    def is_active(self) -> bool:
        return False

    def start(self):
        logger.info("Miner control disabled, skipping start")

    def restart(self):
        logger.info("Miner control disabled, skipping restart")


def create_controller(kind: str = None) -> MinerProcessController:
    """Build the controller named by MINER_CONTROL"""
    kind = (kind or config.MINER_CONTROL).lower()
    if kind == 'systemd':
        return SystemdController()
    if kind == 'none':
        return NullController()
    raise ValueError(f"Unknown miner control backend: {kind}")
