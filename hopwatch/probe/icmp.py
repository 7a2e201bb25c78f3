"""
Raw socket ICMP transport (Linux/macOS)

Raw sockets receive every ICMP datagram addressed to the host, so
correlation with our own probes is left to the prober.
"""

import errno
import logging
import select
import socket
import threading
import time
from typing import Optional

from ..config import PROBE_PAYLOAD
from ..exceptions import DestinationUnreachable, TransportError
from .base import BaseTransport, Datagram
from .packet import build_echo_request


logger = logging.getLogger(__name__)

RECV_BUFFER = 1500  # MTU size
UNREACHABLE_ERRNOS = frozenset({errno.EHOSTUNREACH, errno.ENETUNREACH})
POLL_SLICE = 0.25  # seconds between close/cancel checks while waiting


class IcmpTransport(BaseTransport):
    """
    ICMP transport over one IPv4 raw socket.

    The socket is opened on construction. ``close`` may be called from
    another thread while ``receive`` is waiting; the waiting call returns
    None within one poll slice.
    """

    def __init__(self, payload: bytes = PROBE_PAYLOAD, poll_slice: float = POLL_SLICE):
        self.payload = payload
        self.poll_slice = poll_slice
        self._closed = threading.Event()
        self._io_lock = threading.Lock()
        self._sock = self._open()
        self._default_ttl = self._sock.getsockopt(socket.IPPROTO_IP, socket.IP_TTL)
        self._ttl = self._default_ttl

    def _open(self) -> socket.socket:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
        except PermissionError as e:
            raise TransportError(
                "Raw ICMP socket requires elevated privileges. "
                "Run with sudo or grant CAP_NET_RAW to the interpreter."
            ) from e
        except OSError as e:
            raise TransportError(f"Cannot open raw ICMP socket: {e}") from e
        sock.setblocking(False)
        return sock

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, destination: str, ttl: Optional[int],
             identifier: int, sequence: int) -> None:
        packet = build_echo_request(identifier, sequence, self.payload)
        wanted_ttl = ttl if ttl is not None else self._default_ttl

        with self._io_lock:
            if self.closed:
                raise TransportError("Transport is closed")
            try:
                if wanted_ttl != self._ttl:
                    self._sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, wanted_ttl)
                    self._ttl = wanted_ttl
                self._sock.sendto(packet, (destination, 0))
            except OSError as e:
                if e.errno in UNREACHABLE_ERRNOS:
                    raise DestinationUnreachable(f"No route to {destination}: {e}") from e
                raise TransportError(f"Send to {destination} failed: {e}") from e

        logger.debug("Sent echo request to %s (ttl=%s, id=%d, seq=%d)",
                     destination, wanted_ttl, identifier, sequence)

    def receive(self, timeout: float,
                cancel: Optional[threading.Event] = None) -> Optional[Datagram]:
        deadline = time.monotonic() + timeout

        while True:
            if self.closed or (cancel is not None and cancel.is_set()):
                return None

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None

            with self._io_lock:
                if self.closed:
                    return None
                ready, _, _ = select.select([self._sock], [], [],
                                            min(remaining, self.poll_slice))
                if not ready:
                    continue
                try:
                    data, addr = self._sock.recvfrom(RECV_BUFFER)
                except (BlockingIOError, InterruptedError):
                    continue
                except OSError as e:
                    if e.errno == errno.EBADF:
                        return None
                    raise TransportError(f"Receive failed: {e}") from e

            return data, addr[0]

    def close(self):
        if self.closed:
            return
        self._closed.set()
        with self._io_lock:
            try:
                self._sock.close()
            except OSError:
                logger.debug("Error while closing raw socket", exc_info=True)
