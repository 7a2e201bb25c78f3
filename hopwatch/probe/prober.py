"""
Single echo request/response cycle over a shared transport
"""

import logging
import threading
import time
from typing import Callable, Optional

from ..config import PROBE_TIMEOUT
from ..exceptions import DestinationUnreachable, MalformedResponse
from ..models import ProbeResult, ProbeStatus
from .base import BaseTransport
from .packet import (
    ICMP_DEST_UNREACHABLE,
    ICMP_ECHO_REPLY,
    ICMP_TIME_EXCEEDED,
    IcmpMessage,
    parse_packet,
)


logger = logging.getLogger(__name__)


class Prober:
    """
    Sends one probe and waits for the datagram that answers it.

    Datagrams that belong to other sessions or earlier probes are
    skipped without shortening the wait; an unparseable datagram
    ends the cycle as MALFORMED.
    """

    def __init__(
        self,
        transport: BaseTransport,
        identifier: int,
        timeout: float = PROBE_TIMEOUT,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.transport = transport
        self.identifier = identifier & 0xFFFF
        self.timeout = timeout
        self.clock = clock

    def probe(
        self,
        destination: str,
        ttl: Optional[int] = None,
        sequence: int = 1,
        expect_from: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ProbeResult:
        """
        Send an echo request and classify the answer.

        Args:
            destination: Address to probe
            ttl: Hop limit, None for the OS default
            sequence: Sequence number for correlation
            expect_from: Only accept echo replies from this address
            cancel: Abort the wait when set (result is TIMEOUT)

        Raises:
            TransportError: the send failed (a send refused for lack of
                a route is reported as UNREACHABLE instead)
        """
        sequence &= 0xFFFF
        send_time = self.clock()
        try:
            self.transport.send(destination, ttl, self.identifier, sequence)
        except DestinationUnreachable as e:
            logger.debug("%s", e)
            return ProbeResult(status=ProbeStatus.UNREACHABLE, responder=destination)
        deadline = send_time + self.timeout

        while True:
            remaining = deadline - self.clock()
            if remaining <= 0:
                return ProbeResult()

            datagram = self.transport.receive(remaining, cancel)
            if datagram is None:
                return ProbeResult()

            recv_time = self.clock()
            data, sender = datagram
            try:
                message = parse_packet(data, sender)
            except MalformedResponse as e:
                logger.debug("Discarding malformed packet from %s: %s", sender, e)
                return ProbeResult(status=ProbeStatus.MALFORMED, responder=sender)

            status = self._match(message, sequence, expect_from)
            if status is None:
                logger.debug("Ignoring ICMP type %d from %s (not ours)",
                             message.type, message.source)
                continue

            rtt_ms = round((recv_time - send_time) * 1000, 3)
            return ProbeResult(status=status, responder=message.source, rtt_ms=rtt_ms)

    def _match(self, message: IcmpMessage, sequence: int,
               expect_from: Optional[str]) -> Optional[ProbeStatus]:
        """Classify a message, or None when it does not answer our probe"""
        if message.type == ICMP_ECHO_REPLY:
            if message.identifier != self.identifier or message.sequence != sequence:
                return None
            if expect_from is not None and message.source != expect_from:
                return None
            return ProbeStatus.REPLY

        if not message.is_error:
            return None

        if (message.quoted_identifier != self.identifier
                or message.quoted_sequence != sequence):
            return None

        if message.type == ICMP_TIME_EXCEEDED:
            return ProbeStatus.TIME_EXCEEDED
        if message.type == ICMP_DEST_UNREACHABLE:
            return ProbeStatus.UNREACHABLE
        return ProbeStatus.OTHER
