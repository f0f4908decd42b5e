"""Weather tracker - the engine instance wired once per process."""

import logging
from pathlib import Path

import httpx

from observability import trace_operation
from src.tools.api_tools.openweather.models import Coordinate, SearchSuggestion
from src.tools.api_tools.openweather.openweather_api import (
    OpenWeatherForecastClient,
    OpenWeatherGeocodeClient,
)
from src.tools.api_tools.openweather.sources import (
    ForecastSource,
    GeocodeSource,
    SourceUnavailableError,
)
from src.tools.data_tools.place_cache.models import PlaceRecord
from src.tools.data_tools.place_cache.place_cache import PlaceCache
from src.tools.shared_libraries.streams import Subscription

from .broadcaster import StateBroadcaster
from .config import TrackerSettings
from .orchestrator import ForecastSyncOrchestrator, RefreshReport
from .ranker import rank_candidates


logger = logging.getLogger(__name__)


class WeatherTracker:
    """Entry point for the presentation layer.

    Owns the cache, the sync orchestrator, the broadcaster and the current
    location. Build one instance at startup and pass it to whatever needs it.
    """

    def __init__(
        self,
        cache: PlaceCache,
        forecast_source: ForecastSource,
        geocode_source: GeocodeSource,
        grace_period: float = 5.0,
        refresh_concurrency: int = 1,
    ):
        self.cache = cache
        self.geocode_source = geocode_source
        self.broadcaster = StateBroadcaster(cache, grace_period=grace_period)
        self.orchestrator = ForecastSyncOrchestrator(
            cache,
            forecast_source,
            self.broadcaster,
            refresh_concurrency=refresh_concurrency,
        )
        self._location: Coordinate | None = None

    @classmethod
    def from_settings(
        cls,
        settings: TrackerSettings,
        client: httpx.AsyncClient,
        online: bool = True,
    ) -> 'WeatherTracker':
        """Wire a tracker against OpenWeatherMap and the on-disk cache.

        Args:
            settings: Loaded tracker settings.
            client: Shared HTTP client for both OpenWeatherMap sources.
            online: Whether the caller will reach the network. Cache-only
                callers pass False and do not need an API key.

        Raises:
            MissingAPIKeyError: If online and no API key is configured.
        """
        api_key = settings.require_api_key() if online else settings.openweather_api_key
        db_dir = Path(settings.db_dir)
        db_dir.mkdir(parents=True, exist_ok=True)
        return cls(
            cache=PlaceCache(str(db_dir / 'places.db')),
            forecast_source=OpenWeatherForecastClient(
                client,
                api_key,
                units=settings.units,
                timeout=settings.request_timeout,
            ),
            geocode_source=OpenWeatherGeocodeClient(
                client,
                api_key,
                timeout=settings.request_timeout,
            ),
            grace_period=settings.grace_period,
            refresh_concurrency=settings.refresh_concurrency,
        )

    # Location provider

    @property
    def current_location(self) -> Coordinate | None:
        return self._location

    def set_location(self, latitude: float, longitude: float) -> None:
        self._location = Coordinate(latitude=latitude, longitude=longitude)

    # Commands

    async def add_or_refresh_place(self, name: str) -> bool:
        return await self.orchestrator.fetch_and_add(name)

    async def select_suggestion(self, suggestion: SearchSuggestion) -> bool:
        return await self.orchestrator.fetch_and_add(suggestion.name)

    def delete_place(self, place: str | PlaceRecord) -> None:
        if isinstance(place, str):
            self.cache.delete(place)
        else:
            self.orchestrator.remove(place)

    def delete_all_places(self) -> None:
        self.cache.delete_all()

    async def refresh_all(self) -> RefreshReport:
        return await self.orchestrator.refresh_all()

    @trace_operation(name='search.places')
    async def search(self, query: str) -> list[SearchSuggestion]:
        """Search for places to add.

        Args:
            query: Text typed by the user. Blank queries skip the geocode call.

        Returns:
            Ranked suggestions, or an empty list if geocoding failed.
        """
        if not query.strip():
            return []
        try:
            candidates = await self.geocode_source.search(query)
        except SourceUnavailableError as e:
            logger.error(f'Place search for "{query}" failed: {e}')
            return []
        return rank_candidates(query, candidates, self._location)

    # Subscriptions

    def subscribe_to_places(self) -> Subscription[list[PlaceRecord]]:
        return self.broadcaster.subscribe_to_places()

    def subscribe_to_errors(self) -> Subscription[str]:
        return self.broadcaster.subscribe_to_errors()

    def close(self) -> None:
        self.broadcaster.close()
