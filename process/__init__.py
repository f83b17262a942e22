from .base import MinerProcessController
from .systemd import SystemdController, NullController, create_controller

__all__ = [
    'MinerProcessController',
    'SystemdController',
    'NullController',
    'create_controller'
]
