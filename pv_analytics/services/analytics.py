"""
Analytics query orchestration.

Validates the requested entity and date range, pulls the reading window from
the reading store, and dispatches to the daily aggregator or the energy
integrator. Plant energy fans out one inverter-level computation per child
inverter, runs them concurrently, and sums their totals.

Every request follows: validate entity -> validate range -> fetch -> compute.
NotFoundError and InvalidRangeError are raised before any reading is fetched;
StoreError from the collaborators propagates unchanged.

CHANGELOG:
- 2026-10-16: Log skipped integration segments at DEBUG (STORY-114)
- 2026-10-14: Add plant energy fan-out (STORY-108)
- 2026-10-12: Initial creation (STORY-103)

TODO:
- None
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Literal, Protocol

from pv_analytics.services.aggregation import (
    AggregateOp,
    DailyAggregateEntry,
    MetricField,
    Reading,
    aggregate_by_day,
)
from pv_analytics.services.energy import (
    ENERGY_DECIMALS,
    PowerSample,
    count_skipped_segments,
    integrate_energy_wh,
)
from pv_analytics.services.errors import InvalidRangeError, NotFoundError
from pv_analytics.services.numeric import round_half_away

logger = logging.getLogger(__name__)

DateInput = datetime | date | str | None


class ReadingStore(Protocol):
    """Source of reading windows for one inverter."""

    async def fetch_metric_values(
        self, inverter_id: int, metric: MetricField, start: datetime, end: datetime
    ) -> list[Reading]: ...

    async def fetch_power_series(
        self, inverter_id: int, start: datetime, end: datetime
    ) -> list[PowerSample]: ...


class EntityDirectory(Protocol):
    """Lookup of plants, inverters, and plant membership."""

    async def inverter_exists(self, inverter_id: int) -> bool: ...

    async def plant_exists(self, plant_id: int) -> bool: ...

    async def plant_inverter_ids(self, plant_id: int) -> list[int]: ...


@dataclass(frozen=True)
class DateRange:
    """Validated query range.

    Attributes:
        start: Inclusive lower bound, UTC.
        end: Upper bound as requested, UTC.
        adjusted_end: ``end`` moved to 23:59:59.999 of its UTC day; used as
            the inclusive upper bound when filtering readings.
    """

    start: datetime
    end: datetime
    adjusted_end: datetime


@dataclass(frozen=True)
class EnergyResult:
    """Estimated energy generated by an inverter or plant over a range."""

    total_wh: float
    start_date: datetime
    end_date: datetime
    entity_id: int
    entity_type: Literal["inverter", "plant"]


def _parse_bound(value: DateInput, name: str) -> datetime:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidRangeError(f"{name} is required.")
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            raise InvalidRangeError(
                f"{name} must be a valid ISO 8601 date string."
            ) from None
    elif not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_date_range(start: DateInput, end: DateInput) -> DateRange:
    """Validate and normalise a ``[start, end]`` query range.

    Both bounds are required. Strings are parsed as ISO 8601 (bare dates
    allowed); naive values are taken as UTC.

    Raises:
        InvalidRangeError: If a bound is missing or unparseable, or if
            start is after end.
    """
    start_dt = _parse_bound(start, "start_date")
    end_dt = _parse_bound(end, "end_date")
    if start_dt > end_dt:
        raise InvalidRangeError("End date must be after or the same as start date.")
    adjusted_end = end_dt.replace(hour=23, minute=59, second=59, microsecond=999000)
    return DateRange(start=start_dt, end=end_dt, adjusted_end=adjusted_end)


class AnalyticsService:
    """Entry point for the four analytics queries.

    Args:
        readings: Reading store used to fetch windows.
        directory: Entity directory used for existence checks.
    """

    def __init__(self, readings: ReadingStore, directory: EntityDirectory) -> None:
        self.readings = readings
        self.directory = directory

    async def _require_inverter(self, inverter_id: int) -> None:
        if not await self.directory.inverter_exists(inverter_id):
            raise NotFoundError("inverter", inverter_id)

    async def _daily(
        self,
        inverter_id: int,
        start: DateInput,
        end: DateInput,
        metric: MetricField,
        op: AggregateOp,
    ) -> list[DailyAggregateEntry]:
        await self._require_inverter(inverter_id)
        window = parse_date_range(start, end)
        readings = await self.readings.fetch_metric_values(
            inverter_id, metric, window.start, window.adjusted_end
        )
        logger.debug(
            "Daily %s(%s): inverter=%d readings=%d",
            op.value,
            metric.value,
            inverter_id,
            len(readings),
        )
        return aggregate_by_day(readings, metric, op)

    async def daily_max_power(
        self, inverter_id: int, start: DateInput, end: DateInput
    ) -> list[DailyAggregateEntry]:
        """Return the maximum active power per day for an inverter."""
        return await self._daily(
            inverter_id, start, end, MetricField.ACTIVE_POWER, AggregateOp.MAX
        )

    async def daily_average_temperature(
        self, inverter_id: int, start: DateInput, end: DateInput
    ) -> list[DailyAggregateEntry]:
        """Return the average temperature per day for an inverter."""
        return await self._daily(
            inverter_id, start, end, MetricField.TEMPERATURE, AggregateOp.AVG
        )

    async def _integrate_inverter(
        self, inverter_id: int, window: DateRange
    ) -> EnergyResult:
        samples = await self.readings.fetch_power_series(
            inverter_id, window.start, window.adjusted_end
        )
        logger.debug(
            "Found %d power samples for inverter %d in range",
            len(samples),
            inverter_id,
        )
        total = integrate_energy_wh({inverter_id: samples})
        if logger.isEnabledFor(logging.DEBUG):
            skipped = count_skipped_segments(samples)
            if skipped:
                logger.debug(
                    "Skipped %d invalid segment(s) for inverter %d",
                    skipped,
                    inverter_id,
                )
        return EnergyResult(
            total_wh=total,
            start_date=window.start,
            end_date=window.end,
            entity_id=inverter_id,
            entity_type="inverter",
        )

    async def inverter_energy(
        self, inverter_id: int, start: DateInput, end: DateInput
    ) -> EnergyResult:
        """Estimate the energy an inverter generated over the range.

        Raises:
            NotFoundError: If the inverter does not exist.
            InvalidRangeError: If the range is missing or reversed.
        """
        await self._require_inverter(inverter_id)
        window = parse_date_range(start, end)
        return await self._integrate_inverter(inverter_id, window)

    async def plant_energy(
        self, plant_id: int, start: DateInput, end: DateInput
    ) -> EnergyResult:
        """Estimate the energy a plant generated as the sum of its inverters.

        Each inverter is integrated on its own readings; the per-inverter
        totals are summed and re-rounded. A plant without inverters yields
        0 Wh without reading from the store.

        Raises:
            NotFoundError: If the plant does not exist.
            InvalidRangeError: If the range is missing or reversed.
        """
        if not await self.directory.plant_exists(plant_id):
            raise NotFoundError("plant", plant_id)
        inverter_ids = await self.directory.plant_inverter_ids(plant_id)
        window = parse_date_range(start, end)

        if not inverter_ids:
            logger.info("Plant %d has no inverters, returning 0 Wh", plant_id)
            return EnergyResult(
                total_wh=0.0,
                start_date=window.start,
                end_date=window.end,
                entity_id=plant_id,
                entity_type="plant",
            )

        results = await asyncio.gather(
            *(self._integrate_inverter(inv_id, window) for inv_id in inverter_ids)
        )
        total = round_half_away(sum(r.total_wh for r in results), ENERGY_DECIMALS)
        logger.debug(
            "Plant %d energy from %d inverter(s): %.3f Wh",
            plant_id,
            len(results),
            total,
        )
        return EnergyResult(
            total_wh=total,
            start_date=window.start,
            end_date=window.end,
            entity_id=plant_id,
            entity_type="plant",
        )
