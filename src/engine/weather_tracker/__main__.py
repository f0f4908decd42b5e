"""Weather Tracker CLI - command-line presentation layer for the engine."""

import asyncio
import logging
import os
import sys
from functools import wraps

import click
import httpx
from dotenv import load_dotenv

from observability import init_tracing
from src.tools.shared_libraries.helpers import (
    daily_forecasts,
    format_forecast_day,
    format_place_summary,
    format_temperature,
    icon_url,
)

from .config import MissingAPIKeyError, TrackerSettings
from .tracker import WeatherTracker


load_dotenv()

logging.basicConfig(level=os.getenv('LOG_LEVEL', 'INFO').upper())
logger = logging.getLogger(__name__)


def run_with_tracker(online: bool = True):
    """Run an async command body against a freshly wired tracker.

    Args:
        online: Whether the command reaches OpenWeatherMap. Commands that only
            read or edit the cache pass False and run without an API key.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                settings = TrackerSettings.from_env()
            except ValueError as e:
                logger.error(f'Error: invalid settings: {e}')
                sys.exit(1)

            async def runner():
                async with httpx.AsyncClient() as client:
                    tracker = WeatherTracker.from_settings(settings, client, online=online)
                    try:
                        return await func(tracker, settings, *args, **kwargs)
                    finally:
                        tracker.close()

            try:
                exit_code = asyncio.run(runner())
            except MissingAPIKeyError as e:
                logger.error(f'Error: {e}')
                sys.exit(1)
            if exit_code:
                sys.exit(exit_code)

        return wrapper

    return decorator


@click.group()
@click.option('--trace/--no-trace', default=False, help='Export spans to Phoenix')
def main(trace: bool):
    """Track weather forecasts for a set of named places."""
    if trace:
        init_tracing()


@main.command()
@click.argument('name')
@run_with_tracker()
async def add(tracker: WeatherTracker, settings: TrackerSettings, name: str):
    """Fetch NAME and add it to the tracked places."""
    async with tracker.subscribe_to_errors() as errors:
        added = await tracker.add_or_refresh_place(name)
        while errors.pending():
            click.echo(errors.get_nowait(), err=True)
    if not added:
        return 1
    click.echo(f'Tracking {name}')


@main.command()
@click.argument('name')
@run_with_tracker(online=False)
async def remove(tracker: WeatherTracker, settings: TrackerSettings, name: str):
    """Stop tracking NAME."""
    tracker.delete_place(name)


@main.command()
@run_with_tracker(online=False)
async def clear(tracker: WeatherTracker, settings: TrackerSettings):
    """Stop tracking every place."""
    tracker.delete_all_places()


@main.command(name='list')
@run_with_tracker(online=False)
async def list_places(tracker: WeatherTracker, settings: TrackerSettings):
    """Show tracked places, most recently synced first."""
    async with tracker.subscribe_to_places() as places:
        snapshot = await places.get()
    if not snapshot:
        click.echo('No places tracked yet.')
    for record in snapshot:
        click.echo(format_place_summary(record, settings.units))


@main.command()
@run_with_tracker()
async def refresh(tracker: WeatherTracker, settings: TrackerSettings):
    """Refresh the forecast of every tracked place."""
    report = await tracker.refresh_all()
    click.echo(f'Refreshed {len(report.refreshed)} of {report.total} places')
    for name, reason in report.failed.items():
        click.echo(f'  {name}: {reason}', err=True)


@main.command()
@click.argument('query')
@click.option('--lat', type=float, default=None, help='Current latitude')
@click.option('--lon', type=float, default=None, help='Current longitude')
@click.option('--add', 'add_rank', type=int, default=None, help='Track the suggestion at this rank')
@run_with_tracker()
async def search(
    tracker: WeatherTracker,
    settings: TrackerSettings,
    query: str,
    lat: float | None,
    lon: float | None,
    add_rank: int | None,
):
    """Search places whose name starts with QUERY."""
    if lat is not None and lon is not None:
        tracker.set_location(lat, lon)

    suggestions = await tracker.search(query)
    for suggestion in suggestions:
        click.echo(f'{suggestion.rank:>2}  {suggestion.label()}')

    if add_rank is None:
        return
    if not 0 <= add_rank < len(suggestions):
        raise click.BadParameter(f'no suggestion at rank {add_rank}', param_hint='--add')
    async with tracker.subscribe_to_errors() as errors:
        added = await tracker.select_suggestion(suggestions[add_rank])
        while errors.pending():
            click.echo(errors.get_nowait(), err=True)
    if not added:
        return 1
    click.echo(f'Tracking {suggestions[add_rank].name}')


@main.command()
@click.argument('name')
@click.option('--days', type=int, default=5, show_default=True)
@run_with_tracker(online=False)
async def forecast(tracker: WeatherTracker, settings: TrackerSettings, name: str, days: int):
    """Show the stored day-by-day forecast of a tracked place."""
    async with tracker.subscribe_to_places() as places:
        snapshot = await places.get()

    record = next((r for r in snapshot if r.name == name), None)
    if record is None:
        click.echo(f'{name} is not tracked.', err=True)
        return 1

    click.echo(format_place_summary(record, settings.units))
    click.echo(f'  icon: {icon_url(record.icon_code)}')
    for sample in daily_forecasts(record.raw_forecast_blob, days=days):
        temp = format_temperature(sample.main.temp, settings.units)
        click.echo(f'  {format_forecast_day(sample.dt_txt)}: {temp}, {sample.weather[0].description}')


if __name__ == '__main__':
    main()
