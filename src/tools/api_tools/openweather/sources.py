"""Source interfaces and the error taxonomy shared by all source clients."""

from typing import Protocol

from .models import ForecastPayload, GeoCandidate


class ForecastSourceError(Exception):
    """Base class for failures reported by a forecast or geocode source."""


class PlaceNotFoundError(ForecastSourceError):
    """The source could not resolve the requested place name."""

    def __init__(self, place_name: str):
        super().__init__(f'Place "{place_name}" not found.')
        self.place_name = place_name


class SourceUnavailableError(ForecastSourceError):
    """Transport failure, unexpected HTTP status or malformed response."""


class ForecastSource(Protocol):
    async def get_forecast(self, place_name: str) -> ForecastPayload:
        """Return the forecast payload for `place_name`.

        Raises:
            PlaceNotFoundError: The name cannot be resolved.
            SourceUnavailableError: The source cannot be reached or answered
                with something that is not a forecast.
        """
        ...


class GeocodeSource(Protocol):
    async def search(self, query: str) -> list[GeoCandidate]:
        """Return candidates for a free-text query, `[]` when nothing matches.

        Raises:
            SourceUnavailableError: The source cannot be reached.
        """
        ...
