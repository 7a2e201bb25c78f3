"""
Thread-safe hop table
"""

import threading

from .models import Hop


class HopTable:
    """
    Fixed-index slots for the hops of one session.

    Slots are appended during discovery and replaced during
    monitoring. Only one phase writes at a time; readers get
    snapshot copies taken under the lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._hops: list[Hop] = []

    def set(self, index: int, hop: Hop):
        """Store a hop; indices past the end grow the table with empty slots"""
        with self._lock:
            while len(self._hops) <= index:
                self._hops.append(Hop())
            self._hops[index] = hop

    def get(self, index: int) -> Hop:
        with self._lock:
            return self._hops[index]

    def snapshot(self) -> list[Hop]:
        with self._lock:
            return list(self._hops)

    def __len__(self) -> int:
        with self._lock:
            return len(self._hops)
