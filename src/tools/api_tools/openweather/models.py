"""Pydantic models for OpenWeatherMap forecast and geocoding responses."""

from pydantic import BaseModel, ConfigDict, Field


class Condition(BaseModel):
    """One weather condition entry of a forecast sample."""

    model_config = ConfigDict(extra='allow')

    description: str
    icon: str


class SampleReadings(BaseModel):
    """The `main` block of a forecast sample."""

    model_config = ConfigDict(extra='allow')

    temp: float
    feels_like: float | None = None
    humidity: float | None = None


class ForecastSample(BaseModel):
    """A single timestamped sample (OpenWeatherMap returns one per 3 hours)."""

    model_config = ConfigDict(extra='allow')

    dt: int
    main: SampleReadings
    weather: list[Condition] = Field(min_length=1)
    dt_txt: str


class ForecastCity(BaseModel):
    model_config = ConfigDict(extra='allow')

    name: str = Field(min_length=1)
    country: str | None = None


class ForecastPayload(BaseModel):
    """Full multi-sample forecast for a place.

    `city.name` is the canonical place name as resolved by the source.
    Unknown fields are kept so that serializing the payload keeps
    everything the source returned.
    """

    model_config = ConfigDict(extra='allow', populate_by_name=True)

    city: ForecastCity
    samples: list[ForecastSample] = Field(default_factory=list, alias='list')


class GeoCandidate(BaseModel):
    """A location match returned by the geocoding source."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    admin_area: str | None = Field(default=None, alias='state')
    country: str = ''
    latitude: float = Field(alias='lat')
    longitude: float = Field(alias='lon')

    def label(self) -> str:
        parts = [self.name, self.admin_area, self.country]
        return ', '.join(part for part in parts if part)


class SearchSuggestion(GeoCandidate):
    """A geocode candidate annotated with its position in a ranked search."""

    rank: int


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
