"""Unit tests for shared helpers, geo and streams."""

import asyncio

import pytest

from src.tools.data_tools.place_cache.models import PlaceRecord
from src.tools.shared_libraries.geo import haversine
from src.tools.shared_libraries.helpers import (
    daily_forecasts,
    format_forecast_day,
    format_place_summary,
    format_temperature,
    icon_url,
)
from src.tools.shared_libraries.streams import Subscription, SubscriptionClosed


class TestHaversine:
    """Tests for great-circle distance."""

    def test_same_point(self):
        assert haversine(51.5, -0.12, 51.5, -0.12) == 0.0

    def test_london_paris(self):
        """Test a known distance (about 344 km)."""
        assert haversine(51.5074, -0.1278, 48.8566, 2.3522) == pytest.approx(343.5, abs=1.0)

    def test_symmetric(self):
        assert haversine(10, 20, -30, 40) == pytest.approx(haversine(-30, 40, 10, 20))

    def test_antipodal(self):
        """Test opposite points are half the circumference apart."""
        assert haversine(0, 0, 0, 180) == pytest.approx(20015.1, abs=0.5)


class TestFormatting:
    """Tests for presentation formatting."""

    def test_format_temperature(self):
        assert format_temperature(20.46) == '20.5C'
        assert format_temperature(70, 'imperial') == '70.0F'
        assert format_temperature(290.1, 'standard') == '290.1K'

    def test_icon_url(self):
        assert icon_url('10d') == 'https://openweathermap.org/img/wn/10d@2x.png'

    def test_format_forecast_day(self):
        assert format_forecast_day('2024-01-01 12:00:00') == 'Monday 01.01.2024'

    def test_format_place_summary(self):
        record = PlaceRecord(
            name='Seoul',
            temperature=20.5,
            condition_summary='clear sky',
            icon_code='01d',
            observed_at='2024-01-01 12:00:00',
            raw_forecast_blob='{}',
            last_synced_at=1,
        )
        assert format_place_summary(record) == 'Seoul: 20.5C, clear sky (as of 2024-01-01 12:00:00)'


class TestDailyForecasts:
    """Tests for the day-by-day breakdown of a stored forecast."""

    def test_one_sample_per_day(self, make_payload):
        """Test the first sample of each calendar day is kept."""
        # 8-hour steps from 20:00 give two samples on some days
        payload = make_payload(samples=12, start='2024-01-01 20:00:00', step_hours=8)
        blob = payload.model_dump_json(by_alias=True)

        days = daily_forecasts(blob)

        assert [s.dt_txt for s in days] == [
            '2024-01-01 20:00:00',
            '2024-01-02 04:00:00',
            '2024-01-03 04:00:00',
            '2024-01-04 04:00:00',
            '2024-01-05 04:00:00',
        ]

    def test_days_limit(self, make_payload):
        blob = make_payload(samples=40).model_dump_json(by_alias=True)
        assert len(daily_forecasts(blob, days=2)) == 2

    def test_undecodable_blob(self):
        """Test a broken blob yields no days instead of raising."""
        assert daily_forecasts('not json') == []
        assert daily_forecasts('{"list": []}') == []


class TestSubscription:
    """Tests for live subscriptions."""

    def test_values_in_order(self):
        async def scenario():
            subscription = Subscription()
            subscription.push(1)
            subscription.push(2)
            return [await subscription.get(), await subscription.get()]

        assert asyncio.run(scenario()) == [1, 2]

    def test_conflation_keeps_latest(self):
        async def scenario():
            subscription = Subscription(conflate=True)
            for value in ('a', 'b', 'c'):
                subscription.push(value)
            return subscription.pending(), await subscription.get()

        assert asyncio.run(scenario()) == (1, 'c')

    def test_close_ends_iteration(self):
        """Test iteration drains pending values and stops after close."""
        closed = []

        async def scenario():
            subscription = Subscription(on_close=closed.append)
            subscription.push('x')
            subscription.close()
            subscription.push('ignored')
            return [value async for value in subscription], subscription

        values, subscription = asyncio.run(scenario())

        assert values == ['x']
        assert closed == [subscription]
        with pytest.raises(SubscriptionClosed):
            subscription.get_nowait()

    def test_close_wakes_waiting_consumer(self):
        async def scenario():
            subscription = Subscription()
            waiter = asyncio.create_task(subscription.get())
            await asyncio.sleep(0)
            subscription.close()
            with pytest.raises(SubscriptionClosed):
                await waiter

        asyncio.run(scenario())
