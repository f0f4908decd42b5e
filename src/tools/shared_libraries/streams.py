"""Live subscriptions handed out by the cache and the state broadcaster."""

import asyncio
from typing import Callable, Generic, TypeVar

T = TypeVar('T')

_CLOSED = object()


class SubscriptionClosed(Exception):
    """Raised by `Subscription.get` once the subscription has been closed."""


class Subscription(Generic[T]):
    """An async-iterable stream of values pushed by a producer.

    Values pushed before the subscription existed are never seen. When
    `conflate` is set only the most recent undelivered value is kept, which
    suits state streams where every value supersedes the previous one.

    Usage:
        async with broadcaster.subscribe_to_places() as places:
            async for snapshot in places:
                ...
    """

    def __init__(
        self,
        on_close: Callable[['Subscription[T]'], None] | None = None,
        conflate: bool = False,
    ):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._on_close = on_close
        self._conflate = conflate
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, value: T) -> None:
        if self._closed:
            return
        if self._conflate:
            while not self._queue.empty():
                self._queue.get_nowait()
        self._queue.put_nowait(value)

    def pending(self) -> int:
        """Number of values pushed but not yet consumed."""
        return self._queue.qsize()

    async def get(self) -> T:
        if self._closed and self._queue.empty():
            raise SubscriptionClosed()
        value = await self._queue.get()
        if value is _CLOSED:
            raise SubscriptionClosed()
        return value

    def get_nowait(self) -> T:
        """Return the next pending value.

        Raises:
            asyncio.QueueEmpty: Nothing has been pushed since the last read.
            SubscriptionClosed: The subscription is closed and drained.
        """
        if self._closed and self._queue.empty():
            raise SubscriptionClosed()
        value = self._queue.get_nowait()
        if value is _CLOSED:
            raise SubscriptionClosed()
        return value

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake a consumer blocked in get()
        self._queue.put_nowait(_CLOSED)
        if self._on_close is not None:
            self._on_close(self)

    def __aiter__(self) -> 'Subscription[T]':
        return self

    async def __anext__(self) -> T:
        try:
            return await self.get()
        except SubscriptionClosed:
            raise StopAsyncIteration

    async def __aenter__(self) -> 'Subscription[T]':
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()
