"""Shared pytest fixtures."""

import os
import tempfile
from datetime import datetime, timedelta

import pytest

from src.tools.api_tools.openweather.models import ForecastPayload
from src.tools.data_tools.place_cache.place_cache import PlaceCache


@pytest.fixture
def temp_db_dir():
    """Create a temporary directory for test database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        os.environ['WEATHER_DB_DIR'] = tmpdir
        yield tmpdir
        # Cleanup
        if 'WEATHER_DB_DIR' in os.environ:
            del os.environ['WEATHER_DB_DIR']


@pytest.fixture
def cache(temp_db_dir):
    """A place cache backed by a fresh database file."""
    return PlaceCache(os.path.join(temp_db_dir, 'places.db'))


@pytest.fixture
def make_payload():
    """Factory for OpenWeatherMap-shaped forecast payloads."""

    def build(
        city: str = 'London',
        samples: int = 3,
        temp: float = 12.5,
        description: str = 'light rain',
        icon: str = '10d',
        start: str = '2024-01-01 12:00:00',
        step_hours: int = 3,
    ) -> ForecastPayload:
        first = datetime.strptime(start, '%Y-%m-%d %H:%M:%S')
        entries = []
        for i in range(samples):
            at = first + timedelta(hours=step_hours * i)
            entries.append({
                'dt': int(at.timestamp()),
                'main': {'temp': temp + i, 'feels_like': temp + i - 1, 'humidity': 70},
                'weather': [{'id': 500, 'description': description, 'icon': icon}],
                'dt_txt': at.strftime('%Y-%m-%d %H:%M:%S'),
            })
        return ForecastPayload.model_validate({
            'cod': '200',
            'city': {'name': city, 'country': 'GB', 'coord': {'lat': 51.5, 'lon': -0.12}},
            'list': entries,
        })

    return build
