"""
Exceptions raised by hopwatch
"""


class HopwatchError(Exception):
    """Base class for all hopwatch errors"""
    pass


class ResolutionError(HopwatchError):
    """Raised when the target hostname cannot be resolved"""
    pass


class TransportError(HopwatchError):
    """Raised when the raw ICMP channel cannot be opened or a send fails"""
    pass


class DestinationUnreachable(TransportError):
    """Raised when the local stack refuses a send to one destination (no route)"""
    pass


class MalformedResponse(HopwatchError):
    """Raised when a received datagram cannot be parsed as IPv4/ICMP"""
    pass


class ScannerError(HopwatchError):
    """Raised on scanner lifecycle misuse"""
    pass
