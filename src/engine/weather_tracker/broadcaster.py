"""State broadcaster - shares the cache contents and error events with subscribers."""

import asyncio
import logging
from typing import Callable

from src.tools.data_tools.place_cache.models import PlaceRecord
from src.tools.data_tools.place_cache.place_cache import PlaceCache
from src.tools.shared_libraries.streams import Subscription


logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 5.0


class StateBroadcaster:
    """Republishes cache snapshots (state) and error notifications (events).

    The places stream observes the cache only while someone listens. The
    observation starts with the first subscriber and stops `grace_period`
    seconds after the last one leaves; a subscriber arriving during that
    window keeps the existing observation alive. Every places subscriber
    starts with the latest snapshot.

    Error notifications are delivered only to subscribers present at the
    time of `emit_error`; nothing is buffered for late subscribers.
    """

    def __init__(self, cache: PlaceCache, grace_period: float = DEFAULT_GRACE_PERIOD):
        self._cache = cache
        self.grace_period = grace_period
        self._latest: list[PlaceRecord] = []
        self._place_subscribers: list[Subscription[list[PlaceRecord]]] = []
        self._error_subscribers: list[Subscription[str]] = []
        self._stop_cache_observation: Callable[[], None] | None = None
        self._pending_stop: asyncio.TimerHandle | None = None

    @property
    def is_observing(self) -> bool:
        """Whether the underlying cache observation is running."""
        return self._stop_cache_observation is not None

    @property
    def latest(self) -> list[PlaceRecord]:
        return self._latest

    def subscribe_to_places(self) -> Subscription[list[PlaceRecord]]:
        subscription: Subscription[list[PlaceRecord]] = Subscription(
            on_close=self._release_places,
            conflate=True,
        )
        self._place_subscribers.append(subscription)

        if self._pending_stop is not None:
            self._pending_stop.cancel()
            self._pending_stop = None

        if self._stop_cache_observation is None:
            logger.debug('First places subscriber, starting cache observation')
            # The cache calls back immediately, which reaches the new subscriber
            self._stop_cache_observation = self._cache.observe(self._publish)
        else:
            subscription.push(self._latest)
        return subscription

    def subscribe_to_errors(self) -> Subscription[str]:
        subscription: Subscription[str] = Subscription(on_close=self._error_subscribers.remove)
        self._error_subscribers.append(subscription)
        return subscription

    def emit_error(self, message: str) -> None:
        """Push a user-facing notification to the current error subscribers."""
        if not self._error_subscribers:
            logger.info(f'No error subscribers, dropping notification: {message}')
        for subscription in list(self._error_subscribers):
            subscription.push(message)

    def _publish(self, snapshot: list[PlaceRecord]) -> None:
        self._latest = snapshot
        for subscription in list(self._place_subscribers):
            subscription.push(snapshot)

    def _release_places(self, subscription: Subscription[list[PlaceRecord]]) -> None:
        self._place_subscribers.remove(subscription)
        if self._place_subscribers or self._stop_cache_observation is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to time the grace period on
            self._stop_observation()
            return
        self._pending_stop = loop.call_later(self.grace_period, self._stop_observation)

    def _stop_observation(self) -> None:
        self._pending_stop = None
        if self._place_subscribers or self._stop_cache_observation is None:
            return
        logger.debug('No places subscribers left, stopping cache observation')
        self._stop_cache_observation()
        self._stop_cache_observation = None

    def close(self) -> None:
        """Close every subscription and stop observing the cache."""
        for subscription in list(self._place_subscribers) + list(self._error_subscribers):
            subscription.close()
        if self._pending_stop is not None:
            self._pending_stop.cancel()
        self._stop_observation()
