"""
Abstract base class for probe transports
"""

import threading
from abc import ABC, abstractmethod
from typing import Optional


# (raw datagram, sender address)
Datagram = tuple[bytes, str]


class BaseTransport(ABC):
    """
    Raw channel for sending echo requests and reading ICMP datagrams.

    One instance is shared by discovery and monitoring; all calls
    come from one thread at a time, except ``close`` which may be
    called from any thread.
    """

    @abstractmethod
    def send(self, destination: str, ttl: Optional[int],
             identifier: int, sequence: int) -> None:
        """
        Send one echo request.

        Args:
            destination: IPv4 address (already resolved)
            ttl: Hop limit, None for the OS default
            identifier: Session identifier written into the request
            sequence: Sequence number written into the request

        Raises:
            TransportError: channel unavailable or send failed
        """
        pass

    @abstractmethod
    def receive(self, timeout: float,
                cancel: Optional[threading.Event] = None) -> Optional[Datagram]:
        """
        Wait for the next datagram.

        Returns:
            (payload, sender) or None when ``timeout`` elapsed, the
            ``cancel`` event was set, or the transport was closed
        """
        pass

    @abstractmethod
    def close(self):
        """Release the channel; safe to call repeatedly"""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
