"""
Path discovery by incremental hop-limit probing
"""

import logging
import threading
from typing import Callable, Optional

from .config import MAX_HOPS
from .exceptions import TransportError
from .models import HISTORY_SIZE, Hop, ProbeStatus
from .probe import Prober
from .stats import discovered_hop


logger = logging.getLogger(__name__)


class PathDiscoverer:
    """
    Traceroute-style discovery.

    Sends one echo request per hop limit, 1 through ``max_hops``,
    each resolved (answer or timeout) before the next is sent.
    Routers answering with time-exceeded become hops; the
    destination's own echo reply ends the sweep.
    """

    def __init__(
        self,
        prober: Prober,
        destination: str,
        max_hops: int = MAX_HOPS,
        cancel: Optional[threading.Event] = None,
        history_size: int = HISTORY_SIZE,
    ):
        self.prober = prober
        self.destination = destination
        self.max_hops = max_hops
        self.cancel = cancel or threading.Event()
        self.history_size = history_size
        self.probes_sent = 0

    def discover(
        self,
        on_hop: Optional[Callable[[int, Hop], None]] = None
    ) -> list[Hop]:
        """
        Execute discovery.

        Args:
            on_hop: Optional callback receiving (index, hop) as each
                hop is found

        Returns:
            Hops in path order; possibly empty. Cancellation returns the
            hops found so far.

        Raises:
            TransportError: a send failed while not cancelled
        """
        hops: list[Hop] = []
        logger.info("Tracing route to %s (max %d hops)", self.destination, self.max_hops)

        for ttl in range(1, self.max_hops + 1):
            if self.cancel.is_set():
                logger.info("Discovery cancelled at ttl %d", ttl)
                return hops

            try:
                result = self.prober.probe(
                    self.destination, ttl=ttl, sequence=ttl, cancel=self.cancel
                )
            except TransportError:
                if self.cancel.is_set():
                    return hops
                raise
            self.probes_sent += 1

            if self.cancel.is_set():
                logger.info("Discovery cancelled at ttl %d", ttl)
                return hops

            if result.status == ProbeStatus.REPLY:
                hop = discovered_hop(self.destination, result.rtt_ms, ttl, self.history_size)
                self._add(hops, hop, on_hop)
                logger.info("Destination %s reached at ttl %d (%.2f ms)",
                            self.destination, ttl, hop.avg_latency)
                return hops

            if result.status == ProbeStatus.TIME_EXCEEDED:
                hop = discovered_hop(result.responder, result.rtt_ms, ttl, self.history_size)
                self._add(hops, hop, on_hop)
                logger.debug("ttl %d: %s (%.2f ms)", ttl, hop.address, hop.avg_latency)
                continue

            # timeout, malformed, unreachable or other error: nothing at this ttl
            logger.debug("ttl %d: %s", ttl, result.status.value)

        logger.warning("Destination %s not reached within %d hops",
                       self.destination, self.max_hops)
        return hops

    def _add(self, hops: list[Hop], hop: Hop,
             on_hop: Optional[Callable[[int, Hop], None]]):
        hops.append(hop)
        if on_hop:
            on_hop(len(hops) - 1, hop)
