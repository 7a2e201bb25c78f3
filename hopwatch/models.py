"""
Data models for hopwatch
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


# Rolling window capacity per hop
HISTORY_SIZE = 60

# Window entry meaning "no response this cycle"
TIMEOUT_SAMPLE = None


class ScannerStatus(str, Enum):
    """Scanner lifecycle phase"""
    TRACING = 'tracing'
    PINGING = 'pinging'
    STOPPED = 'stopped'
    ERROR = 'error'


class ProbeStatus(str, Enum):
    """Classification of a single probe cycle"""
    REPLY = 'reply'                  # echo reply from the probed address
    TIME_EXCEEDED = 'time_exceeded'  # router dropped the probe at hop-limit 0
    UNREACHABLE = 'unreachable'      # explicit rejection
    OTHER = 'other'                  # another ICMP error quoting our probe
    TIMEOUT = 'timeout'
    MALFORMED = 'malformed'


@dataclass(frozen=True)
class ProbeResult:
    """Result of a single probe"""
    status: ProbeStatus = ProbeStatus.TIMEOUT
    responder: Optional[str] = None
    rtt_ms: Optional[float] = None


@dataclass(frozen=True)
class Hop:
    """
    One router-level step on the path.

    Values are immutable; the monitor replaces the stored hop
    after every sample.
    """
    address: str = ''
    avg_latency: float = 0.0
    loss_percent: float = 0.0
    latency_history: tuple[Optional[float], ...] = field(default_factory=tuple)
    ttl: Optional[int] = None


@dataclass(frozen=True)
class HopUpdate:
    """Snapshot emitted whenever a hop is created or its statistics change"""
    index: int
    hop: Hop
