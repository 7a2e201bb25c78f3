"""
Per-hop rolling window statistics
"""

from typing import Optional

from .config import LossPolicy
from .models import HISTORY_SIZE, Hop, ProbeResult, ProbeStatus, TIMEOUT_SAMPLE


Window = tuple[Optional[float], ...]


def push_sample(history: Window, sample: Optional[float],
                capacity: int = HISTORY_SIZE) -> Window:
    """
    Append a sample to the window, evicting the oldest entries
    beyond capacity.

    Args:
        history: Current window, oldest first
        sample: Latency in ms, or None for "no response"

    Returns:
        New window of at most ``capacity`` entries
    """
    if sample is not None and sample <= 0:
        sample = TIMEOUT_SAMPLE
    window = history + (sample,)
    if len(window) > capacity:
        window = window[len(window) - capacity:]
    return window


def average_latency(history: Window) -> float:
    """Mean of the positive samples, 0 when there are none"""
    valid = [s for s in history if s is not None and s > 0]
    if not valid:
        return 0.0
    return sum(valid) / len(valid)


def window_loss(history: Window) -> float:
    """Percentage of timeout samples in the window"""
    if not history:
        return 0.0
    missed = sum(1 for s in history if s is None)
    return missed * 100.0 / len(history)


def classify(result: ProbeResult) -> tuple[Optional[float], bool]:
    """
    Map a probe outcome to ``(sample, rejected)``.

    Echo replies and time-exceeded answers carry a latency sample.
    Destination unreachable is the only rejection; every other
    outcome is a plain miss.
    """
    if result.status in (ProbeStatus.REPLY, ProbeStatus.TIME_EXCEEDED):
        return result.rtt_ms, False
    if result.status == ProbeStatus.UNREACHABLE:
        return TIMEOUT_SAMPLE, True
    return TIMEOUT_SAMPLE, False


def record(hop: Hop, sample: Optional[float], rejected: bool = False,
           policy: LossPolicy = LossPolicy.REJECTION,
           capacity: int = HISTORY_SIZE) -> Hop:
    """
    Fold one monitoring sample into a hop.

    Returns a new Hop; average and loss are always derived from the
    resulting window (loss only under the WINDOW policy).
    """
    history = push_sample(hop.latency_history, sample, capacity)
    if policy == LossPolicy.WINDOW:
        loss = window_loss(history)
    else:
        loss = 100.0 if rejected else 0.0
    return Hop(
        address=hop.address,
        avg_latency=average_latency(history),
        loss_percent=loss,
        latency_history=history,
        ttl=hop.ttl,
    )


def discovered_hop(address: str, rtt_ms: Optional[float], ttl: int,
                   capacity: int = HISTORY_SIZE) -> Hop:
    """Build a freshly discovered hop seeded with its discovery RTT"""
    history = push_sample((), rtt_ms, capacity)
    return Hop(
        address=address,
        avg_latency=average_latency(history),
        loss_percent=0.0,
        latency_history=history,
        ttl=ttl,
    )
