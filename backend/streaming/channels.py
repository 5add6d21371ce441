"""
Bounded, closable output channels.

Rules:
- Single producer (the dispatcher), any number of consumers.
- Capacity is counted in items; a full channel blocks the producer
  (the only backpressure path) until a consumer makes room, the channel
  closes, or the shutdown gate aborts pending puts.
- close() is idempotent; consumers drain whatever is buffered and
  then observe termination (async iteration stops, get() raises
  ChannelClosed).
- The error channel never blocks: overflow is dropped and counted.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, AsyncIterator, Deque, Generic, TypeVar


T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised by get() once a channel is closed and drained."""


class Channel(Generic[T]):
    """
    Bounded FIFO channel with close semantics.

    Usage:
        async for chunk in connection.audio():
            sink.write(chunk)
    """

    def __init__(self, *, capacity: int, name: str) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")

        self.name = name
        self._capacity = capacity
        self._items: Deque[T] = deque()
        self._getters: Deque[asyncio.Future[None]] = deque()
        self._putters: Deque[asyncio.Future[None]] = deque()
        self._closed = False
        self._aborted = False

    # -------------------------
    # Producer side
    # -------------------------

    async def put(self, item: T) -> bool:
        """
        Enqueue an item, waiting for room if the channel is full.

        Returns:
            True if enqueued
            False if the channel is closed or puts were aborted
            (the item is not delivered)
        """
        while len(self._items) >= self._capacity:
            if self._closed or self._aborted:
                return False
            await self._wait(self._putters)

        if self._closed or self._aborted:
            return False

        self._items.append(item)
        self._wake_all(self._getters)
        return True

    def try_put(self, item: T) -> bool:
        """Non-blocking enqueue. Returns False if full, closed or aborted."""
        if self._closed or self._aborted or len(self._items) >= self._capacity:
            return False
        self._items.append(item)
        self._wake_all(self._getters)
        return True

    def abort_puts(self) -> None:
        """
        Shutdown gate: fail every pending and future put().

        Buffered items stay readable.
        """
        self._aborted = True
        self._wake_all(self._putters)

    def close(self) -> bool:
        """
        Close the channel.

        Returns True on the first call only.
        """
        if self._closed:
            return False
        self._closed = True
        self._wake_all(self._getters)
        self._wake_all(self._putters)
        return True

    # -------------------------
    # Consumer side
    # -------------------------

    async def get(self) -> T:
        """
        Dequeue the oldest item, waiting if the channel is empty.

        Raises:
            ChannelClosed once the channel is closed and drained.
        """
        while not self._items:
            if self._closed:
                raise ChannelClosed(self.name)
            await self._wait(self._getters)

        item = self._items.popleft()
        self._wake_all(self._putters)
        return item

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while True:
            try:
                item = await self.get()
            except ChannelClosed:
                return
            yield item

    # -------------------------
    # Introspection helpers
    # -------------------------

    @property
    def closed(self) -> bool:
        """True once close() has been called (items may still be buffered)."""
        return self._closed

    @property
    def capacity(self) -> int:
        """Maximum number of undelivered items."""
        return self._capacity

    def __len__(self) -> int:
        return len(self._items)

    def is_full(self) -> bool:
        """True when a blocking put() would wait."""
        return len(self._items) >= self._capacity

    def has_blocked_producer(self) -> bool:
        """True while a put() is parked waiting for room."""
        return any(not w.done() for w in self._putters)

    def snapshot(self) -> dict[str, Any]:
        """
        Lightweight snapshot for logging / metrics.
        """
        return {
            "name": self.name,
            "items": len(self._items),
            "capacity": self._capacity,
            "closed": self._closed,
        }

    # -------------------------
    # Internal
    # -------------------------

    @staticmethod
    async def _wait(waiters: Deque[asyncio.Future[None]]) -> None:
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        waiters.append(fut)
        try:
            await fut
        finally:
            if fut in waiters:
                waiters.remove(fut)

    @staticmethod
    def _wake_all(waiters: Deque[asyncio.Future[None]]) -> None:
        while waiters:
            fut = waiters.popleft()
            if not fut.done():
                fut.set_result(None)


class ErrorChannel(Channel[Exception]):
    """
    Error channel with drop-on-overflow semantics.

    Reporting an error never blocks the dispatcher. Drops are counted
    so callers (and the WS_CLOSED log line) can see that errors were lost.
    """

    def __init__(self, *, capacity: int, name: str = "errors") -> None:
        super().__init__(capacity=capacity, name=name)
        self.dropped = 0

    def report(self, error: Exception) -> bool:
        """
        Offer an error without blocking.

        Returns True if enqueued, False if dropped (full, closed or aborted).
        """
        if self.try_put(error):
            return True
        self.dropped += 1
        return False
