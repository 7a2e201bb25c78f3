"""
Continuous per-hop monitoring loop
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

from .config import ScannerConfig
from .exceptions import TransportError
from .models import HopUpdate
from .probe import Prober
from .stats import classify, record
from .table import HopTable


logger = logging.getLogger(__name__)

MONITOR_SEQUENCE = 1


class MonitorState(str, Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    STOPPED = 'stopped'


class ContinuousMonitor:
    """
    Re-probes every known hop once per tick.

    Hops are probed one after another in index order, so a tick in
    which several hops time out takes longer than the interval. Such
    a tick is counted as an overrun and the next tick starts as soon
    as it finishes; ticks are never skipped or queued.
    """

    def __init__(
        self,
        prober: Prober,
        table: HopTable,
        emit: Callable[[HopUpdate], None],
        config: Optional[ScannerConfig] = None,
        cancel: Optional[threading.Event] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.prober = prober
        self.table = table
        self.emit = emit
        self.config = config or ScannerConfig()
        self.cancel = cancel or threading.Event()
        self.on_error = on_error
        self.state = MonitorState.IDLE
        self.cycles = 0
        self.overruns = 0
        self.thread: Optional[threading.Thread] = None

    def start(self) -> threading.Thread:
        """Run the loop in a background thread"""
        self.thread = threading.Thread(
            target=self.run, name='hopwatch-monitor', daemon=True
        )
        self.thread.start()
        return self.thread

    def join(self, timeout: Optional[float] = None):
        if self.thread is not None:
            self.thread.join(timeout)

    def run(self):
        """Tick until cancelled or the transport fails"""
        self.state = MonitorState.RUNNING
        interval = self.config.interval
        next_tick = time.monotonic() + interval
        logger.debug("Monitor loop started (interval %.2fs)", interval)

        try:
            while not self.cancel.wait(max(0.0, next_tick - time.monotonic())):
                self.run_cycle()
                if self.cancel.is_set():
                    break

                now = time.monotonic()
                next_tick += interval
                if interval > 0 and now > next_tick:
                    self.overruns += 1
                    logger.debug("Cycle %d overran its interval by %.2fs",
                                 self.cycles, now - next_tick)
                    next_tick = now
        except TransportError as e:
            if not self.cancel.is_set():
                logger.error("Monitoring stopped: %s", e)
                if self.on_error:
                    self.on_error(e)
        finally:
            self.state = MonitorState.STOPPED
            logger.debug("Monitor loop stopped after %d cycles", self.cycles)

    def run_cycle(self) -> int:
        """
        Probe every hop once and emit one update per hop.

        Returns:
            Number of updates emitted
        """
        hops = self.table.snapshot()
        if not hops:
            return 0

        emitted = 0
        for index, hop in enumerate(hops):
            if self.cancel.is_set():
                break
            if not hop.address:
                continue

            result = self.prober.probe(
                hop.address,
                ttl=None,
                sequence=MONITOR_SEQUENCE,
                expect_from=hop.address,
                cancel=self.cancel,
            )
            if self.cancel.is_set():
                break

            sample, rejected = classify(result)
            updated = record(
                hop, sample, rejected,
                policy=self.config.loss_policy,
                capacity=self.config.history_size,
            )
            self.table.set(index, updated)
            self.emit(HopUpdate(index=index, hop=updated))
            emitted += 1

            if sample is None:
                logger.debug("hop %d %s: %s", index + 1, hop.address, result.status.value)

        self.cycles += 1
        return emitted
