"""
ICMPv4 echo codec

Builds echo requests and parses raw IPv4 datagrams read from an
ICMP raw socket.
"""

import socket
import struct
from dataclasses import dataclass
from typing import Optional

from ..exceptions import MalformedResponse


ICMP_ECHO_REPLY = 0
ICMP_DEST_UNREACHABLE = 3
ICMP_ECHO_REQUEST = 8
ICMP_TIME_EXCEEDED = 11

# ICMP error messages that quote the offending datagram
ICMP_ERROR_TYPES = frozenset({3, 4, 5, 11, 12})

IP_HEADER_MIN = 20
ICMP_HEADER_LEN = 8


@dataclass(frozen=True)
class IcmpMessage:
    """Parsed ICMP message with the fields used for correlation"""
    type: int
    code: int
    source: str
    identifier: Optional[int] = None
    sequence: Optional[int] = None
    # Echo request quoted inside an error message
    quoted_identifier: Optional[int] = None
    quoted_sequence: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return self.type in ICMP_ERROR_TYPES


def checksum(data: bytes) -> int:
    """Calculate ICMP checksum (RFC 1071)"""
    if len(data) % 2:
        data += b'\x00'

    s = 0
    for i in range(0, len(data), 2):
        w = (data[i] << 8) + data[i + 1]
        s += w

    s = (s >> 16) + (s & 0xFFFF)
    s += s >> 16
    return ~s & 0xFFFF


def build_echo_request(identifier: int, sequence: int, payload: bytes = b'',
                       icmp_type: int = ICMP_ECHO_REQUEST) -> bytes:
    """
    Build an ICMP echo message.

    Args:
        identifier: 16-bit session identifier
        sequence: 16-bit sequence number
        payload: Opaque data carried after the header
        icmp_type: Echo request by default; echo reply is accepted too

    Returns:
        ICMP header + payload with a valid checksum
    """
    identifier &= 0xFFFF
    sequence &= 0xFFFF
    header = struct.pack('!BBHHH', icmp_type, 0, 0, identifier, sequence)
    cs = checksum(header + payload)
    header = struct.pack('!BBHHH', icmp_type, 0, cs, identifier, sequence)
    return header + payload


def _header_length(data: bytes, offset: int = 0) -> int:
    version = data[offset] >> 4
    if version != 4:
        raise MalformedResponse(f"Not an IPv4 datagram (version {version})")
    ihl = (data[offset] & 0x0F) * 4
    if ihl < IP_HEADER_MIN:
        raise MalformedResponse(f"Invalid IPv4 header length {ihl}")
    return ihl


def _quoted_echo(icmp_data: bytes) -> tuple[Optional[int], Optional[int]]:
    """Extract identifier/sequence of the echo request quoted in an error"""
    inner_ip_start = ICMP_HEADER_LEN
    if len(icmp_data) < inner_ip_start + IP_HEADER_MIN:
        return None, None
    try:
        inner_ip_len = _header_length(icmp_data, inner_ip_start)
    except MalformedResponse:
        return None, None

    inner_icmp_start = inner_ip_start + inner_ip_len
    if len(icmp_data) < inner_icmp_start + ICMP_HEADER_LEN:
        return None, None

    inner = icmp_data[inner_icmp_start:inner_icmp_start + ICMP_HEADER_LEN]
    if inner[0] != ICMP_ECHO_REQUEST:
        return None, None
    inner_ident, inner_seq = struct.unpack('!HH', inner[4:8])
    return inner_ident, inner_seq


def parse_packet(data: bytes, source: Optional[str] = None) -> IcmpMessage:
    """
    Parse a raw IPv4 datagram carrying ICMP.

    Args:
        data: Bytes as read from the raw socket (IP header included)
        source: Sender address reported by the socket; taken from the
            IP header when omitted

    Raises:
        MalformedResponse: when the datagram is truncated or not ICMPv4
    """
    if len(data) < IP_HEADER_MIN:
        raise MalformedResponse(
            f"Packet shorter than minimum IP header ({len(data)} bytes)"
        )

    ip_header_len = _header_length(data)
    if len(data) < ip_header_len + ICMP_HEADER_LEN:
        raise MalformedResponse("Packet shorter than IP header + ICMP header")

    protocol = data[9]
    if protocol != socket.IPPROTO_ICMP:
        raise MalformedResponse(f"Unexpected IP protocol {protocol}")

    if source is None:
        source = socket.inet_ntoa(data[12:16])

    icmp_data = data[ip_header_len:]
    icmp_type, code = icmp_data[0], icmp_data[1]

    if icmp_type in (ICMP_ECHO_REPLY, ICMP_ECHO_REQUEST):
        ident, seq = struct.unpack('!HH', icmp_data[4:8])
        return IcmpMessage(type=icmp_type, code=code, source=source,
                           identifier=ident, sequence=seq)

    if icmp_type in ICMP_ERROR_TYPES:
        quoted_ident, quoted_seq = _quoted_echo(icmp_data)
        return IcmpMessage(type=icmp_type, code=code, source=source,
                           quoted_identifier=quoted_ident,
                           quoted_sequence=quoted_seq)

    return IcmpMessage(type=icmp_type, code=code, source=source)
