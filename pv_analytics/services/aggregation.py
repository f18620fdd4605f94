"""
Daily aggregation of inverter readings.

Groups a window of readings for one inverter by UTC calendar day and reduces
each group with MAX or AVG over one metric (active power or temperature).
Null readings are dropped before grouping, so a day without any value for
the metric never shows up in the result. Grouping happens in-process on the
window fetched by the reading store; the store's range filter uses the same
UTC day boundaries (see ``analytics.parse_date_range``).

CHANGELOG:
- 2026-10-15: Coerce string/Decimal aggregates from the store (STORY-112)
- 2026-10-12: Replace continuous-aggregate frames with per-day grouping (STORY-102)

TODO:
- None
"""

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from statistics import fmean

from pv_analytics.services.numeric import round_half_away, to_finite_float

logger = logging.getLogger(__name__)

AGGREGATE_DECIMALS = 2


class MetricField(enum.StrEnum):
    """Reading column an aggregation runs over."""

    ACTIVE_POWER = "active_power_w"
    TEMPERATURE = "temperature_c"


class AggregateOp(enum.StrEnum):
    """Reducer applied to each day's values."""

    MAX = "max"
    AVG = "avg"


@dataclass(frozen=True)
class Reading:
    """One timestamped sample from an inverter.

    Attributes:
        inverter_id: Internal id of the inverter that produced the sample.
        ts: Measurement timestamp (naive values are taken as UTC).
        active_power_w: Active power in watts, or None if not reported.
        temperature_c: Temperature in Celsius, or None if not reported.
    """

    inverter_id: int
    ts: datetime
    active_power_w: float | None = None
    temperature_c: float | None = None

    def value_of(self, metric: MetricField) -> object:
        """Return the raw value of ``metric`` for this reading."""
        return getattr(self, metric.value)


@dataclass(frozen=True)
class DailyAggregateEntry:
    """Aggregated value for one calendar day.

    Attributes:
        day: Day in ``YYYY-MM-DD`` format.
        value: Aggregated value rounded to 2 decimals, or None if the raw
            aggregate could not be read as a number.
    """

    day: str
    value: float | None


def day_key(ts: datetime) -> str:
    """Truncate a timestamp to its UTC calendar day (``YYYY-MM-DD``)."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC).strftime("%Y-%m-%d")


def format_aggregate(raw: object) -> float | None:
    """Convert a raw aggregate to a float rounded to 2 decimals.

    ``"500.50"`` becomes ``500.5``; values that do not parse as a finite
    number become None.
    """
    value = to_finite_float(raw)
    if value is None:
        return None
    return round_half_away(value, AGGREGATE_DECIMALS)


def _reduce(values: list[float], op: AggregateOp) -> float:
    if op is AggregateOp.MAX:
        return max(values)
    return fmean(values)


def aggregate_by_day(
    readings: Iterable[Reading],
    metric: MetricField,
    op: AggregateOp,
) -> list[DailyAggregateEntry]:
    """Group readings by UTC day and reduce each day with ``op``.

    Args:
        readings: Readings of a single inverter, in any order.
        metric: Which reading column to aggregate.
        op: MAX or AVG.

    Returns:
        list[DailyAggregateEntry]: One entry per day that has at least one
        non-null value, sorted ascending by day.
    """
    groups: dict[str, list[float]] = {}
    dropped = 0
    for reading in readings:
        raw = reading.value_of(metric)
        if raw is None:
            continue
        value = to_finite_float(raw)
        if value is None:
            dropped += 1
            continue
        groups.setdefault(day_key(reading.ts), []).append(value)

    if dropped:
        logger.debug("Ignored %d non-numeric %s values", dropped, metric.value)

    return [
        DailyAggregateEntry(day=day, value=format_aggregate(_reduce(values, op)))
        for day, values in sorted(groups.items())
    ]
