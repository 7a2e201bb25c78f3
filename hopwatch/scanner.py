"""
Scanner orchestrator

Composes discovery and monitoring into one session:
start (resolve, open transport, discover, monitor) and stop.
"""

import logging
import random
import socket
import threading
import time
from typing import Callable, Optional

from .config import ScannerConfig
from .discovery import PathDiscoverer
from .exceptions import HopwatchError, ResolutionError, ScannerError, TransportError
from .models import Hop, HopUpdate, ScannerStatus
from .monitor import ContinuousMonitor
from .probe import BaseTransport, IcmpTransport, Prober
from .stream import Stream
from .table import HopTable


logger = logging.getLogger(__name__)


def resolve_host(hostname: str) -> str:
    """Resolve a hostname to an IPv4 address"""
    try:
        return socket.gethostbyname(hostname)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(f"Cannot resolve hostname '{hostname}': {e}") from e


def new_identifier() -> int:
    """Session-scoped ICMP identifier"""
    return random.randint(1, 0xFFFF)


def open_icmp_transport(config: ScannerConfig) -> BaseTransport:
    return IcmpTransport(payload=config.payload)


class Scanner:
    """
    One monitoring session for one target host.

    Usage:
        scanner = Scanner('example.com')
        scanner.start_in_background()
        for update in scanner.updates():
            ...
        scanner.stop()
    """

    def __init__(
        self,
        hostname: str,
        config: Optional[ScannerConfig] = None,
        resolver: Callable[[str], str] = resolve_host,
        transport_factory: Callable[[ScannerConfig], BaseTransport] = open_icmp_transport,
        identifier: Optional[int] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.hostname = hostname
        self.config = (config or ScannerConfig()).validate()
        self.identifier = identifier if identifier is not None else new_identifier()
        self.destination: Optional[str] = None
        self.error: Optional[Exception] = None

        self._resolver = resolver
        self._transport_factory = transport_factory
        self._clock = clock
        self._table = HopTable()
        self._updates: Stream[HopUpdate] = Stream()
        self._statuses: Stream[ScannerStatus] = Stream()
        self._cancel = threading.Event()
        self._lock = threading.Lock()
        self._transport: Optional[BaseTransport] = None
        self._monitor: Optional[ContinuousMonitor] = None
        self._thread: Optional[threading.Thread] = None
        self._started = False
        self._stopped = False

    def start(self) -> list[Hop]:
        """
        Resolve the target, discover the path and begin monitoring.

        Discovery runs in the calling thread; monitoring continues in
        a background thread when at least one hop was found. An empty
        path ends the session.

        Returns:
            Hops found by discovery

        Raises:
            ResolutionError: hostname cannot be resolved
            TransportError: raw socket unavailable or a send failed
            ScannerError: the session was already started
        """
        with self._lock:
            if self._started:
                raise ScannerError("Scanner already started")
            self._started = True
            if self._stopped:
                return []

        destination = self._resolver(self.hostname)
        transport = self._transport_factory(self.config)

        with self._lock:
            if self._stopped:
                transport.close()
                return []
            self._transport = transport
            self.destination = destination

        logger.info("Starting scan of %s (%s), identifier %d",
                    self.hostname, destination, self.identifier)
        self._statuses.put(ScannerStatus.TRACING)

        prober = Prober(transport, self.identifier, self.config.timeout, self._clock)
        discoverer = PathDiscoverer(
            prober,
            destination,
            max_hops=self.config.max_hops,
            cancel=self._cancel,
            history_size=self.config.history_size,
        )
        try:
            hops = discoverer.discover(on_hop=self._store_hop)
        except TransportError as e:
            self._fail(e)
            raise

        logger.info("Discovered %d hops to %s", len(hops), destination)
        if not hops:
            logger.warning("No hops discovered, nothing to monitor")
            self.stop()
            return hops

        with self._lock:
            if self._stopped:
                return hops
            self._monitor = ContinuousMonitor(
                prober,
                self._table,
                self._updates.put,
                config=self.config,
                cancel=self._cancel,
                on_error=self._fail,
            )
            self._statuses.put(ScannerStatus.PINGING)
            self._monitor.start()
        return hops

    def start_in_background(self) -> threading.Thread:
        """
        Run ``start`` in a daemon thread.

        A failure is logged and kept in ``error``; the session then
        reports ERROR and stops.
        """
        def target():
            try:
                self.start()
            except HopwatchError as e:
                logger.error("Scan of %s failed: %s", self.hostname, e)
                self._fail(e)

        self._thread = threading.Thread(target=target, name='hopwatch-scan', daemon=True)
        self._thread.start()
        return self._thread

    def stop(self):
        """Cancel probing, release the transport and close both streams once"""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._cancel.set()
            transport, self._transport = self._transport, None

        if transport is not None:
            transport.close()

        self._updates.close()
        self._statuses.put(ScannerStatus.STOPPED)
        self._statuses.close()
        logger.info("Scan of %s stopped", self.hostname)

    def join(self, timeout: Optional[float] = None):
        """Wait for the background scan and monitor threads"""
        current = threading.current_thread()
        if self._thread is not None and self._thread is not current:
            self._thread.join(timeout)
        if self._monitor is not None and self._monitor.thread is not current:
            self._monitor.join(timeout)

    def updates(self) -> Stream[HopUpdate]:
        return self._updates

    def statuses(self) -> Stream[ScannerStatus]:
        return self._statuses

    def current_hops(self) -> list[Hop]:
        return self._table.snapshot()

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    @property
    def monitor(self) -> Optional[ContinuousMonitor]:
        return self._monitor

    def _store_hop(self, index: int, hop: Hop):
        self._table.set(index, hop)
        self._updates.put(HopUpdate(index=index, hop=hop))

    def _fail(self, error: Exception):
        with self._lock:
            if self._stopped:
                return
            self.error = error
        self._statuses.put(ScannerStatus.ERROR)
        self.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
