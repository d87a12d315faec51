from __future__ import annotations

import logging
import queue
import threading
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEND_POLL_SECONDS = 0.1


class Channel(Generic[T]):
    """Bounded FIFO shared between threads, closable from either end."""

    def __init__(self, maxsize: int, name: str = "channel") -> None:
        self._queue: queue.Queue[T] = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()
        self.name = name

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    def try_send(self, item: T) -> bool:
        """Enqueue without waiting; drops the item when full or closed."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(item)
        except queue.Full:
            logger.debug("%s full, dropped %r", self.name, item)
            return False
        return True

    def send(self, item: T) -> bool:
        """Enqueue, waiting for room until the channel is closed."""
        while not self.closed:
            try:
                self._queue.put(item, timeout=SEND_POLL_SECONDS)
            except queue.Full:
                continue
            return True
        return False

    def receive(self, timeout: float | None = None) -> T | None:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
