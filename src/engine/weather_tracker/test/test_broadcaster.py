"""Unit tests for the state broadcaster."""

import asyncio

from src.engine.weather_tracker.broadcaster import DEFAULT_GRACE_PERIOD, StateBroadcaster
from src.tools.data_tools.place_cache.models import PlaceRecord


def make_record(name: str, synced_at: int) -> PlaceRecord:
    return PlaceRecord(
        name=name,
        temperature=5.0,
        condition_summary='snow',
        icon_code='13d',
        observed_at='2024-01-01 12:00:00',
        raw_forecast_blob='{}',
        last_synced_at=synced_at,
    )


def names(snapshot: list[PlaceRecord]) -> list[str]:
    return [record.name for record in snapshot]


class TestPlacesStream:
    """Tests for the replayed places stream."""

    def test_default_grace_period(self, cache):
        assert StateBroadcaster(cache).grace_period == DEFAULT_GRACE_PERIOD == 5.0

    def test_lazy_start(self, cache):
        """Test the cache is only observed once someone subscribes."""
        broadcaster = StateBroadcaster(cache)
        assert not broadcaster.is_observing

        async def scenario():
            subscription = broadcaster.subscribe_to_places()
            return broadcaster.is_observing, subscription

        observing, subscription = asyncio.run(scenario())

        assert observing
        subscription.close()

    def test_first_subscriber_gets_current_contents(self, cache):
        cache.upsert(make_record('Oslo', 1))
        broadcaster = StateBroadcaster(cache)

        async def scenario():
            async with broadcaster.subscribe_to_places() as places:
                return await places.get()

        assert names(asyncio.run(scenario())) == ['Oslo']

    def test_updates_reach_every_subscriber(self, cache):
        broadcaster = StateBroadcaster(cache, grace_period=0.01)

        async def scenario():
            first = broadcaster.subscribe_to_places()
            second = broadcaster.subscribe_to_places()
            cache.upsert(make_record('Oslo', 1))
            cache.upsert(make_record('Lima', 2))
            received = (await first.get(), await second.get())
            first.close()
            second.close()
            return received

        first, second = asyncio.run(scenario())

        assert names(first) == names(second) == ['Lima', 'Oslo']

    def test_late_subscriber_gets_latest_snapshot(self, cache):
        """Test subscribing after an update still yields that update."""
        broadcaster = StateBroadcaster(cache, grace_period=0.01)

        async def scenario():
            early = broadcaster.subscribe_to_places()
            cache.upsert(make_record('Oslo', 1))
            await asyncio.sleep(0)
            late = broadcaster.subscribe_to_places()
            snapshot = late.get_nowait()
            early.close()
            late.close()
            return snapshot

        assert names(asyncio.run(scenario())) == ['Oslo']

    def test_stops_after_grace_period(self, cache):
        """Test observation ends once the grace period passes with no subscribers."""
        broadcaster = StateBroadcaster(cache, grace_period=0.05)

        async def scenario():
            subscription = broadcaster.subscribe_to_places()
            subscription.close()
            still_observing = broadcaster.is_observing
            await asyncio.sleep(0.1)
            return still_observing, broadcaster.is_observing

        assert asyncio.run(scenario()) == (True, False)

    def test_resubscribe_within_grace_period_keeps_observation(self, cache):
        """Test a quick resubscribe does not restart the cache observation."""
        broadcaster = StateBroadcaster(cache, grace_period=0.05)
        starts = []
        observe = cache.observe

        def counting_observe(listener):
            starts.append(listener)
            return observe(listener)

        cache.observe = counting_observe

        async def scenario():
            broadcaster.subscribe_to_places().close()
            await asyncio.sleep(0.01)
            subscription = broadcaster.subscribe_to_places()
            await asyncio.sleep(0.1)
            observing = broadcaster.is_observing
            subscription.close()
            return observing, subscription

        observing, subscription = asyncio.run(scenario())

        assert observing
        assert len(starts) == 1
        assert subscription.get_nowait() == []

    def test_no_updates_after_stop(self, cache):
        broadcaster = StateBroadcaster(cache, grace_period=0.01)

        async def scenario():
            broadcaster.subscribe_to_places().close()
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        cache.upsert(make_record('Oslo', 1))

        assert broadcaster.latest == []

    def test_close_without_loop_stops_immediately(self, cache):
        broadcaster = StateBroadcaster(cache)
        subscription = broadcaster.subscribe_to_places()

        subscription.close()

        assert not broadcaster.is_observing


class TestErrorStream:
    """Tests for the one-shot error stream."""

    def test_not_replayed_to_late_subscribers(self, cache):
        """Test a notification emitted before subscribing is never received."""
        broadcaster = StateBroadcaster(cache)

        async def scenario():
            broadcaster.emit_error('x')
            errors = broadcaster.subscribe_to_errors()
            missed = errors.pending()
            broadcaster.emit_error('y')
            return missed, await errors.get()

        assert asyncio.run(scenario()) == (0, 'y')

    def test_each_event_delivered_to_all_subscribers(self, cache):
        broadcaster = StateBroadcaster(cache)

        async def scenario():
            first = broadcaster.subscribe_to_errors()
            second = broadcaster.subscribe_to_errors()
            broadcaster.emit_error('a')
            broadcaster.emit_error('b')
            return [await first.get(), await first.get()], [await second.get(), await second.get()]

        assert asyncio.run(scenario()) == (['a', 'b'], ['a', 'b'])

    def test_closed_subscriber_receives_nothing(self, cache):
        broadcaster = StateBroadcaster(cache)
        errors = broadcaster.subscribe_to_errors()
        errors.close()

        broadcaster.emit_error('late')

        assert errors.pending() == 1  # only the close marker


class TestClose:
    def test_close_ends_everything(self, cache):
        broadcaster = StateBroadcaster(cache)

        async def scenario():
            places = broadcaster.subscribe_to_places()
            errors = broadcaster.subscribe_to_errors()
            broadcaster.close()
            return places.closed, errors.closed, broadcaster.is_observing

        assert asyncio.run(scenario()) == (True, True, False)
