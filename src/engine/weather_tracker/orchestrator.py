"""Forecast sync orchestrator - keeps the place cache in step with the forecast source."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from observability import trace_operation
from src.tools.api_tools.openweather.models import ForecastPayload
from src.tools.api_tools.openweather.sources import ForecastSource, ForecastSourceError
from src.tools.data_tools.place_cache.models import PlaceRecord
from src.tools.data_tools.place_cache.place_cache import PlaceCache

from .broadcaster import StateBroadcaster


logger = logging.getLogger(__name__)

PLACE_NOT_FOUND_MESSAGE = 'Place not found'


def to_place_record(payload: ForecastPayload, synced_at: int) -> PlaceRecord | None:
    """Map a forecast payload to the record stored for its place.

    Args:
        payload: Payload returned by the forecast source.
        synced_at: Write time in epoch milliseconds.

    Returns:
        The record built from the first sample, or None if the payload has
        no samples.
    """
    if not payload.samples:
        return None

    current = payload.samples[0]
    condition = current.weather[0]
    return PlaceRecord(
        name=payload.city.name,
        temperature=current.main.temp,
        condition_summary=condition.description,
        icon_code=condition.icon,
        observed_at=current.dt_txt,
        raw_forecast_blob=payload.model_dump_json(by_alias=True),
        last_synced_at=synced_at,
    )


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RefreshReport:
    """Outcome of a bulk refresh, kept for diagnostics."""

    refreshed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.refreshed) + len(self.skipped) + len(self.failed)


class ForecastSyncOrchestrator:
    """Fetches forecasts and writes them into the place cache.

    Source failures never escape the public operations: bulk refresh logs
    them and carries on, user-initiated adds turn them into a single error
    notification.
    """

    def __init__(
        self,
        cache: PlaceCache,
        forecast_source: ForecastSource,
        broadcaster: StateBroadcaster,
        clock: Callable[[], int] = _now_ms,
        refresh_concurrency: int = 1,
    ):
        if refresh_concurrency < 1:
            raise ValueError('refresh_concurrency must be at least 1')
        self.cache = cache
        self.forecast_source = forecast_source
        self.broadcaster = broadcaster
        self._clock = clock
        self.refresh_concurrency = refresh_concurrency
        self._last_stamp = 0

    def _stamp(self) -> int:
        # Never hand out a timestamp older than one already written
        self._last_stamp = max(self._clock(), self._last_stamp)
        return self._last_stamp

    @trace_operation(name='sync.refresh_one', capture_output=False)
    async def refresh_one(self, name: str) -> PlaceRecord | None:
        """Fetch the forecast for `name` and store it.

        Args:
            name: Place name to fetch.

        Returns:
            The stored record, or None when the payload had no samples.

        Raises:
            ForecastSourceError: The source failed; the cache is untouched.
        """
        payload = await self.forecast_source.get_forecast(name)
        record = to_place_record(payload, self._stamp())
        if record is None:
            logger.info(f'Empty forecast for "{name}", leaving cache unchanged')
            return None
        self.cache.upsert(record)
        return record

    @trace_operation(name='sync.refresh_all')
    async def refresh_all(self) -> RefreshReport:
        """Refresh every cached place, isolating per-place failures.

        Returns:
            Which places were refreshed, skipped (empty payload) or failed.
        """
        names = [record.name for record in self.cache.all_places()]
        report = RefreshReport()
        if self.refresh_concurrency == 1:
            for name in names:
                await self._refresh_isolated(name, report)
        else:
            semaphore = asyncio.Semaphore(self.refresh_concurrency)

            async def bounded(name: str) -> None:
                async with semaphore:
                    await self._refresh_isolated(name, report)

            await asyncio.gather(*(bounded(name) for name in names))

        logger.info(
            f'Refreshed {len(report.refreshed)}/{report.total} places '
            f'({len(report.failed)} failed, {len(report.skipped)} empty)'
        )
        return report

    async def _refresh_isolated(self, name: str, report: RefreshReport) -> None:
        try:
            record = await self.refresh_one(name)
        except ForecastSourceError as e:
            logger.warning(f'Background refresh of "{name}" failed: {e}')
            report.failed[name] = str(e)
            return
        except Exception as e:
            logger.exception(f'Background refresh of "{name}" raised unexpectedly')
            report.failed[name] = repr(e)
            return
        if record is None:
            report.skipped.append(name)
        else:
            report.refreshed.append(name)

    @trace_operation(name='sync.fetch_and_add')
    async def fetch_and_add(self, name: str) -> bool:
        """Fetch and store a place the user asked for.

        Args:
            name: Place name typed or selected by the user.

        Returns:
            True if a record was written. On a source failure a "Place not
            found" notification is emitted and False is returned.
        """
        try:
            record = await self.refresh_one(name)
        except ForecastSourceError as e:
            logger.warning(f'Adding "{name}" failed: {e}')
            self.broadcaster.emit_error(PLACE_NOT_FOUND_MESSAGE)
            return False
        except Exception:
            logger.exception(f'Adding "{name}" raised unexpectedly')
            self.broadcaster.emit_error(PLACE_NOT_FOUND_MESSAGE)
            return False
        return record is not None

    @trace_operation(name='sync.remove', capture_input=False)
    def remove(self, record: PlaceRecord) -> None:
        self.cache.delete(record.name)
