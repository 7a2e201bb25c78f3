"""
Probe transport and request/response correlation for hopwatch
"""

from .base import BaseTransport
from .icmp import IcmpTransport
from .prober import Prober

__all__ = ['BaseTransport', 'IcmpTransport', 'Prober']
