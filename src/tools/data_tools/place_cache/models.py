"""Database models and schema for tracked places."""

from pydantic import BaseModel, ConfigDict, Field

# SQLite schema definitions
SCHEMA_SQL = """
-- One row per tracked place, keyed by the place name
CREATE TABLE IF NOT EXISTS places_weather (
    name TEXT PRIMARY KEY NOT NULL,
    temperature REAL NOT NULL,
    condition_summary TEXT NOT NULL,
    icon_code TEXT NOT NULL,
    observed_at TEXT NOT NULL,
    raw_forecast_blob TEXT NOT NULL,
    last_synced_at INTEGER NOT NULL
);

-- Index for recency ordering
CREATE INDEX IF NOT EXISTS idx_places_weather_last_synced_at
    ON places_weather(last_synced_at);
"""

RECORD_COLUMNS = (
    'name',
    'temperature',
    'condition_summary',
    'icon_code',
    'observed_at',
    'raw_forecast_blob',
    'last_synced_at',
)


class PlaceRecord(BaseModel):
    """Latest synced forecast for one tracked place."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    temperature: float
    condition_summary: str
    icon_code: str
    observed_at: str
    raw_forecast_blob: str = Field(repr=False)
    last_synced_at: int = Field(description='Epoch milliseconds of the last write')
