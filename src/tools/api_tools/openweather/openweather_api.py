"""OpenWeatherMap integration - forecast and direct geocoding clients."""

import logging

import httpx
from pydantic import TypeAdapter

from observability import trace_operation

from .models import ForecastPayload, GeoCandidate
from .sources import PlaceNotFoundError, SourceUnavailableError


logger = logging.getLogger(__name__)

FORECAST_URL = 'https://api.openweathermap.org/data/2.5/forecast'
GEOCODE_URL = 'https://api.openweathermap.org/geo/1.0/direct'

GEOCODE_LIMIT = 50

_candidates_adapter = TypeAdapter(list[GeoCandidate])


class OpenWeatherForecastClient:
    """Forecast source backed by the 5 day / 3 hour forecast endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        units: str = 'metric',
        timeout: float = 10.0,
    ):
        self._client = client
        self.api_key = api_key
        self.units = units
        self.timeout = timeout

    @trace_operation(name='api.get_forecast', capture_output=False)
    async def get_forecast(self, place_name: str) -> ForecastPayload:
        """Get the multi-sample forecast for a place.

        Args:
            place_name: The place name (e.g., "Seoul", "London,GB").

        Returns:
            The parsed forecast payload.

        Raises:
            PlaceNotFoundError: OpenWeatherMap answered 404 for the name.
            SourceUnavailableError: Any other HTTP or decoding failure.
        """
        try:
            response = await self._client.get(
                FORECAST_URL,
                params={
                    'q': place_name,
                    'appid': self.api_key,
                    'units': self.units,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            return ForecastPayload.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise PlaceNotFoundError(place_name) from e
            raise SourceUnavailableError(f'API request failed: {e}') from e
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f'API request failed: {e}') from e
        except ValueError as e:
            raise SourceUnavailableError('Invalid forecast response from API.') from e


class OpenWeatherGeocodeClient:
    """Geocode source backed by the direct geocoding endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        limit: int = GEOCODE_LIMIT,
        timeout: float = 10.0,
    ):
        self._client = client
        self.api_key = api_key
        self.limit = limit
        self.timeout = timeout

    @trace_operation(name='api.geocode_search', capture_output=False)
    async def search(self, query: str) -> list[GeoCandidate]:
        """Get place candidates for a free-text query.

        Args:
            query: Text typed by the user.

        Returns:
            Candidates in the order the API returned them. An empty list
            means nothing matched.

        Raises:
            SourceUnavailableError: On any HTTP or decoding failure.
        """
        try:
            response = await self._client.get(
                GEOCODE_URL,
                params={
                    'q': query,
                    'limit': self.limit,
                    'appid': self.api_key,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            candidates = _candidates_adapter.validate_python(response.json())
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f'Geocoding request failed: {e}') from e
        except ValueError as e:
            raise SourceUnavailableError('Invalid geocoding response from API.') from e

        logger.debug(f'Geocoding "{query}" returned {len(candidates)} candidates')
        return candidates
