"""
Closable, unbounded streams feeding consumers
"""

import queue
import threading
from typing import Generic, Iterator, Optional, TypeVar


T = TypeVar('T')

_CLOSED = object()


class Stream(Generic[T]):
    """
    Unbounded FIFO with a single close.

    Producers ``put``; consumers iterate until the stream is closed.
    Items put after close are dropped. Every iterator sees the end,
    however many consumers there are.
    """

    def __init__(self):
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, item: T) -> bool:
        """Queue an item; returns False when the stream is already closed"""
        with self._lock:
            if self._closed:
                return False
            self._queue.put(item)
            return True

    def close(self) -> bool:
        """Close the stream; returns True only for the call that closed it"""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            self._queue.put(_CLOSED)
            return True

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """
        Next item, blocking up to ``timeout`` seconds.

        Returns:
            The item, or None when the stream ended or the wait timed out
        """
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            self._queue.put(_CLOSED)
            return None
        return item

    def drain(self) -> list[T]:
        """Items currently queued, without blocking"""
        items = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return items
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return items
            items.append(item)

    def __iter__(self) -> Iterator[T]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return
            yield item
