"""
Scripted in-memory transport

Produces real IPv4/ICMP datagrams for scripted probe outcomes, so
discovery and monitoring run without privileges or network access.
"""

import socket
import struct
import threading
from collections import deque
from dataclasses import dataclass
from typing import Optional, Union

from ..exceptions import DestinationUnreachable, TransportError
from .base import BaseTransport, Datagram
from .packet import (
    ICMP_DEST_UNREACHABLE,
    ICMP_ECHO_REPLY,
    ICMP_TIME_EXCEEDED,
    build_echo_request,
    checksum,
)


ICMP_REDIRECT = 5
LOCAL_ADDRESS = '192.0.2.1'


class FakeClock:
    """Manually advanced clock (seconds)"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@dataclass
class FakeResponse:
    """
    One scripted datagram.

    kind: 'reply', 'time_exceeded', 'unreachable', 'redirect' or 'garbage'
    source: sender address; defaults to the probed destination
    identifier/sequence: override the echoed values (foreign traffic)
    """
    kind: str
    source: Optional[str] = None
    delay_ms: float = 1.0
    identifier: Optional[int] = None
    sequence: Optional[int] = None


# None = no answer; a list = several datagrams for one probe
Scripted = Union[None, FakeResponse, list[FakeResponse]]


def ipv4_datagram(source: str, destination: str, payload: bytes, ttl: int = 64) -> bytes:
    """Wrap an ICMP payload in a minimal IPv4 header"""
    header = struct.pack(
        '!BBHHHBBH4s4s',
        0x45, 0, 20 + len(payload), 0, 0, ttl, socket.IPPROTO_ICMP, 0,
        socket.inet_aton(source), socket.inet_aton(destination),
    )
    header = header[:10] + struct.pack('!H', checksum(header)) + header[12:]
    return header + payload


def icmp_error(icmp_type: int, code: int, quoted: bytes) -> bytes:
    """ICMP error message quoting an original datagram"""
    body = quoted[:28]
    header = struct.pack('!BBHI', icmp_type, code, 0, 0)
    cs = checksum(header + body)
    return struct.pack('!BBHI', icmp_type, code, cs, 0) + body


class FakeTransport(BaseTransport):
    """
    Transport driven by a script of responses.

    script maps ``(destination, ttl)`` or ``destination`` to a list of
    outcomes consumed one per probe; an exhausted or missing entry
    means the probe times out. Waiting advances ``clock`` instead of
    sleeping.
    Sends to ``fail_sends`` fail outright; sends to ``unreachable_sends``
    are refused as if there were no route.
    """

    def __init__(self, script: Optional[dict] = None, clock: Optional[FakeClock] = None,
                 fail_sends: Optional[set] = None, unreachable_sends: Optional[set] = None):
        self.script = {k: deque(v) for k, v in (script or {}).items()}
        self.clock = clock or FakeClock()
        self.fail_sends = fail_sends or set()
        self.unreachable_sends = unreachable_sends or set()
        self.sent: list[tuple[str, Optional[int], int, int]] = []
        self.close_calls = 0
        self._pending: deque = deque()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, destination: str, ttl: Optional[int],
             identifier: int, sequence: int) -> None:
        if self.closed:
            raise TransportError("Transport is closed")
        if destination in self.fail_sends:
            raise TransportError(f"Send to {destination} failed")
        if destination in self.unreachable_sends:
            raise DestinationUnreachable(f"No route to {destination}")
        self.sent.append((destination, ttl, identifier, sequence))

        outcome = self._next_outcome(destination, ttl)
        if outcome is None:
            outcomes = []
        elif isinstance(outcome, FakeResponse):
            outcomes = [outcome]
        else:
            outcomes = list(outcome)

        self._pending = deque(
            (r, self._render(r, destination, identifier, sequence))
            for r in outcomes
        )

    def receive(self, timeout: float,
                cancel: Optional[threading.Event] = None) -> Optional[Datagram]:
        if self.closed or (cancel is not None and cancel.is_set()):
            return None
        if not self._pending:
            self.clock.advance(timeout)
            return None

        response, datagram = self._pending.popleft()
        delay = response.delay_ms / 1000
        if delay > timeout:
            self.clock.advance(timeout)
            self._pending.clear()
            return None
        self.clock.advance(delay)
        return datagram

    def close(self):
        self.close_calls += 1
        self._closed.set()

    def _next_outcome(self, destination: str, ttl: Optional[int]) -> Scripted:
        for key in ((destination, ttl), destination):
            queue = self.script.get(key)
            if queue:
                return queue.popleft()
        return None

    def _render(self, response: FakeResponse, destination: str,
                identifier: int, sequence: int) -> Datagram:
        source = response.source or destination
        ident = response.identifier if response.identifier is not None else identifier
        seq = response.sequence if response.sequence is not None else sequence

        if response.kind == 'garbage':
            return b'\x45\x00\x00', source

        if response.kind == 'reply':
            icmp = build_echo_request(ident, seq, b'hopwatch', icmp_type=ICMP_ECHO_REPLY)
            return ipv4_datagram(source, LOCAL_ADDRESS, icmp), source

        types = {
            'time_exceeded': (ICMP_TIME_EXCEEDED, 0),
            'unreachable': (ICMP_DEST_UNREACHABLE, 1),
            'redirect': (ICMP_REDIRECT, 1),
        }
        if response.kind not in types:
            raise ValueError(f"Unknown fake response kind '{response.kind}'")
        icmp_type, code = types[response.kind]
        quoted_request = build_echo_request(ident, seq, b'hopwatch')
        quoted = ipv4_datagram(LOCAL_ADDRESS, destination, quoted_request, ttl=1)
        return ipv4_datagram(source, LOCAL_ADDRESS, icmp_error(icmp_type, code, quoted)), source
