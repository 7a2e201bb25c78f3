"""
Scanner configuration
"""

from dataclasses import dataclass
from enum import Enum

from .models import HISTORY_SIZE


# Defaults
MAX_HOPS = 30
PROBE_TIMEOUT = 3.0  # seconds
PING_INTERVAL = 1.0  # seconds
PROBE_PAYLOAD = b'hopwatch'


class LossPolicy(str, Enum):
    """
    How a hop's loss percentage is derived.

    REJECTION: 100 only when the last probe was explicitly rejected
    (destination unreachable), 0 otherwise, timeouts included.
    WINDOW: share of timeout samples in the current rolling window.
    """
    REJECTION = 'rejection'
    WINDOW = 'window'


@dataclass
class ScannerConfig:
    max_hops: int = MAX_HOPS
    timeout: float = PROBE_TIMEOUT
    interval: float = PING_INTERVAL
    history_size: int = HISTORY_SIZE
    loss_policy: LossPolicy = LossPolicy.REJECTION
    payload: bytes = PROBE_PAYLOAD

    def validate(self) -> 'ScannerConfig':
        """Check settings, raising ValueError on impossible values"""
        if not 1 <= self.max_hops <= 255:
            raise ValueError(f"max_hops must be within 1..255, got {self.max_hops}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.interval < 0:
            raise ValueError(f"interval cannot be negative, got {self.interval}")
        if self.history_size < 1:
            raise ValueError(f"history_size must be at least 1, got {self.history_size}")
        self.loss_policy = LossPolicy(self.loss_policy)
        return self
