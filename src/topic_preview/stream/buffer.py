"""
History Buffer
==============

Async-safe bounded queue between the socket pump and the consumer.

This is the KEEP_LAST history of a subscription: when full, the oldest
unread item is dropped so the receive side never waits on a slow consumer.

Design Rules:
    - Fixed maximum size (drops oldest on overflow), or unbounded
    - Async-safe for a single producer / single consumer
    - Closing wakes any waiting consumer
    - Does NOT inspect or modify items
"""

import asyncio
import logging
from typing import Any, Optional


logger = logging.getLogger(__name__)


_CLOSED = object()


class HistoryBuffer:
    """
    Bounded drop-oldest queue.

    Attributes:
        maxsize: Maximum number of unread items (None = unbounded)
        dropped_count: Number of items dropped due to overflow

    Example:
        buffer = HistoryBuffer(maxsize=2)

        # Producer
        buffer.put(item)

        # Consumer
        item = await buffer.get()   # None once closed and drained
    """

    def __init__(self, maxsize: Optional[int] = 2) -> None:
        """
        Initialize history buffer.

        Args:
            maxsize: Maximum items to retain. Must be >= 1, or None.
        """
        if maxsize is not None and maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        # Unbounded underneath so the close marker always fits.
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed: bool = False
        self._dropped_count: int = 0
        self._total_put: int = 0

    @property
    def maxsize(self) -> Optional[int]:
        return self._maxsize

    @property
    def size(self) -> int:
        """Current number of unread items."""
        return self._queue.qsize() - (1 if self._closed else 0)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    @property
    def total_put(self) -> int:
        return self._total_put

    def put(self, item: Any) -> bool:
        """
        Add an item, dropping the oldest if full.

        Args:
            item: Item to add

        Returns:
            True if added without dropping, False if the oldest item was
            dropped to make room or the buffer is closed.
        """
        if self._closed:
            return False

        self._total_put += 1
        dropped = False

        if self._maxsize is not None and self._queue.qsize() >= self._maxsize:
            try:
                self._queue.get_nowait()
                self._dropped_count += 1
                dropped = True
                logger.debug(
                    f"History full, dropped oldest item. "
                    f"Total dropped: {self._dropped_count}"
                )
            except asyncio.QueueEmpty:
                pass

        self._queue.put_nowait(item)
        return not dropped

    async def get(self) -> Optional[Any]:
        """
        Wait for the next item.

        Returns:
            Next item, or None once the buffer is closed and drained.
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker in place for any later caller.
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def close(self) -> None:
        """Mark the buffer finished. Unread items remain readable."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def metrics(self) -> dict:
        """
        Get buffer metrics for observability.

        Returns:
            Dict with size, maxsize, dropped_count, total_put
        """
        return {
            "size": self.size,
            "maxsize": self._maxsize,
            "dropped_count": self._dropped_count,
            "total_put": self._total_put,
        }
