"""Tracker settings loaded from environment variables."""

import os

from pydantic import BaseModel, Field


class MissingAPIKeyError(Exception):
    """Exception for missing API key."""


class TrackerSettings(BaseModel):
    openweather_api_key: str = ''
    units: str = Field(default='metric', pattern='^(metric|imperial|standard)$')
    request_timeout: float = Field(default=10.0, gt=0)
    db_dir: str = './data'
    grace_period: float = Field(default=5.0, ge=0)
    refresh_concurrency: int = Field(default=1, ge=1)

    @classmethod
    def from_env(cls) -> 'TrackerSettings':
        """Build settings from the process environment (call load_dotenv first).

        Raises:
            pydantic.ValidationError: If a variable does not parse or is out of range.
        """
        return cls(
            openweather_api_key=os.getenv('OPENWEATHER_API_KEY', ''),
            units=os.getenv('OPENWEATHER_UNITS', 'metric'),
            request_timeout=os.getenv('OPENWEATHER_TIMEOUT', '10.0'),
            db_dir=os.getenv('WEATHER_DB_DIR', './data'),
            grace_period=os.getenv('PLACES_GRACE_PERIOD', '5.0'),
            refresh_concurrency=os.getenv('REFRESH_CONCURRENCY', '1'),
        )

    def require_api_key(self) -> str:
        if not self.openweather_api_key:
            raise MissingAPIKeyError('OPENWEATHER_API_KEY environment variable not set.')
        return self.openweather_api_key
