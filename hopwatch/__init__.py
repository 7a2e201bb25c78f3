"""
hopwatch - Continuous Network Path Monitor

ICMP path discovery followed by live per-hop latency and loss
monitoring with a rolling sample window.
"""

__version__ = "1.0.0"
__author__ = "hopwatch"
