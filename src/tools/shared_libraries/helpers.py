"""Shared helper functions for presenting tracked places."""

from datetime import datetime

from pydantic import ValidationError

from src.tools.api_tools.openweather.models import ForecastPayload, ForecastSample
from src.tools.data_tools.place_cache.models import PlaceRecord

ICON_URL_TEMPLATE = 'https://openweathermap.org/img/wn/{code}@2x.png'

SAMPLE_TIME_FORMAT = '%Y-%m-%d %H:%M:%S'


def format_temperature(temp: float, units: str = 'metric') -> str:
    """Format temperature with unit symbol.

    Args:
        temp: Temperature value.
        units: "metric" for Celsius, "imperial" for Fahrenheit, "standard"
            for Kelvin.

    Returns:
        Formatted temperature string.
    """
    unit_symbol = {'metric': 'C', 'imperial': 'F'}.get(units, 'K')
    return f'{temp:.1f}{unit_symbol}'


def icon_url(icon_code: str) -> str:
    """URL of the OpenWeatherMap glyph for an icon code."""
    return ICON_URL_TEMPLATE.format(code=icon_code)


def format_forecast_day(dt_txt: str) -> str:
    """Turn a sample timestamp into e.g. "Monday 01.01.2024".

    Args:
        dt_txt: Sample timestamp in "YYYY-MM-DD HH:MM:SS" form.

    Returns:
        Weekday name followed by the day.month.year date.
    """
    return datetime.strptime(dt_txt, SAMPLE_TIME_FORMAT).strftime('%A %d.%m.%Y')


def daily_forecasts(raw_forecast_blob: str, days: int = 5) -> list[ForecastSample]:
    """Break a stored forecast blob down into one sample per calendar day.

    Samples are grouped by the date part of `dt_txt`; the first sample of
    each day is kept, in payload order.

    Args:
        raw_forecast_blob: The serialized payload kept on a PlaceRecord.
        days: Maximum number of days to return.

    Returns:
        Up to `days` samples, or an empty list if the blob cannot be decoded.
    """
    try:
        payload = ForecastPayload.model_validate_json(raw_forecast_blob)
    except ValidationError:
        return []

    per_day: dict[str, ForecastSample] = {}
    for sample in payload.samples:
        per_day.setdefault(sample.dt_txt[:10], sample)
    return list(per_day.values())[:days]


def format_place_summary(record: PlaceRecord, units: str = 'metric') -> str:
    """Format a tracked place into a one-line summary.

    Args:
        record: The cached place.
        units: Units the temperature was fetched in.

    Returns:
        Formatted summary string.
    """
    temp_str = format_temperature(record.temperature, units)
    return f'{record.name}: {temp_str}, {record.condition_summary} (as of {record.observed_at})'
