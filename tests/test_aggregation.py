"""
Tests for the daily aggregator.

Covers day grouping in UTC, null exclusion, omission of empty days, MAX/AVG
reducers, ordering, and 2-decimal half-away-from-zero rounding.
"""

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from pv_analytics.services.aggregation import (
    AggregateOp,
    DailyAggregateEntry,
    MetricField,
    Reading,
    aggregate_by_day,
    day_key,
    format_aggregate,
)


def _reading(
    ts: str,
    power: float | None = None,
    temperature: float | None = None,
    inverter_id: int = 1,
) -> Reading:
    return Reading(
        inverter_id=inverter_id,
        ts=datetime.fromisoformat(ts),
        active_power_w=power,
        temperature_c=temperature,
    )


class TestDayKey:
    """Tests for UTC day truncation."""

    def test_aware_timestamp_uses_utc_day(self) -> None:
        """23:30 at UTC-3 belongs to the next UTC day."""
        ts = datetime(2023, 1, 15, 23, 30, tzinfo=timezone(timedelta(hours=-3)))
        assert day_key(ts) == "2023-01-16"

    def test_naive_timestamp_is_utc(self) -> None:
        assert day_key(datetime(2023, 1, 15, 23, 59, 59)) == "2023-01-15"

    def test_utc_midnight_starts_new_day(self) -> None:
        assert day_key(datetime(2023, 1, 16, 0, 0, tzinfo=UTC)) == "2023-01-16"


class TestFormatAggregate:
    """Tests for coercion and rounding of raw aggregate values."""

    def test_string_value_is_coerced(self) -> None:
        assert format_aggregate("500.50") == 500.5

    def test_decimal_value_is_coerced(self) -> None:
        assert format_aggregate(Decimal("42.456")) == 42.46

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(2.675, 2.68), (-2.675, -2.68), (1.005, 1.01), (0.125, 0.13), (7.0, 7.0)],
    )
    def test_rounds_half_away_from_zero(self, raw: float, expected: float) -> None:
        assert format_aggregate(raw) == expected

    @pytest.mark.parametrize("raw", [None, "abc", "", float("nan"), float("inf")])
    def test_unparseable_becomes_none(self, raw: object) -> None:
        assert format_aggregate(raw) is None


class TestAggregateByDay:
    """Tests for grouping and reducing readings per day."""

    def test_max_per_day_sorted_ascending(self) -> None:
        readings = [
            _reading("2023-01-16T10:00:00+00:00", power=900.0),
            _reading("2023-01-15T10:00:00+00:00", power=1000.0),
            _reading("2023-01-15T12:00:00+00:00", power=1500.25),
            _reading("2023-01-16T12:00:00+00:00", power=800.0),
        ]

        result = aggregate_by_day(readings, MetricField.ACTIVE_POWER, AggregateOp.MAX)

        assert result == [
            DailyAggregateEntry(day="2023-01-15", value=1500.25),
            DailyAggregateEntry(day="2023-01-16", value=900.0),
        ]

    def test_average_per_day_rounded(self) -> None:
        readings = [
            _reading("2023-01-15T10:00:00+00:00", temperature=30.0),
            _reading("2023-01-15T11:00:00+00:00", temperature=31.0),
            _reading("2023-01-15T12:00:00+00:00", temperature=31.0),
        ]

        result = aggregate_by_day(readings, MetricField.TEMPERATURE, AggregateOp.AVG)

        assert result == [DailyAggregateEntry(day="2023-01-15", value=30.67)]

    def test_nulls_excluded_before_reducing(self) -> None:
        """A null temperature does not drag the average down to zero."""
        readings = [
            _reading("2023-01-15T10:00:00+00:00", temperature=40.0),
            _reading("2023-01-15T11:00:00+00:00", temperature=None, power=100.0),
        ]

        result = aggregate_by_day(readings, MetricField.TEMPERATURE, AggregateOp.AVG)

        assert result == [DailyAggregateEntry(day="2023-01-15", value=40.0)]

    def test_day_with_only_nulls_is_absent(self) -> None:
        """A day with only null values never appears, not even as 0."""
        readings = [
            _reading("2023-01-15T10:00:00+00:00", power=None, temperature=25.0),
            _reading("2023-01-15T11:00:00+00:00", power=None, temperature=26.0),
            _reading("2023-01-16T10:00:00+00:00", power=500.0),
        ]

        result = aggregate_by_day(readings, MetricField.ACTIVE_POWER, AggregateOp.MAX)

        assert [entry.day for entry in result] == ["2023-01-16"]
        assert all(entry.value != 0 for entry in result)

    def test_zero_readings_are_kept(self) -> None:
        """Real zero values (night-time power) are aggregated, not dropped."""
        readings = [_reading("2023-01-15T02:00:00+00:00", power=0.0)]

        result = aggregate_by_day(readings, MetricField.ACTIVE_POWER, AggregateOp.MAX)

        assert result == [DailyAggregateEntry(day="2023-01-15", value=0.0)]

    def test_empty_input_returns_empty_list(self) -> None:
        assert aggregate_by_day([], MetricField.ACTIVE_POWER, AggregateOp.MAX) == []

    def test_days_unique_and_strictly_ascending(self) -> None:
        start = datetime(2023, 3, 1, tzinfo=UTC)
        readings = [
            Reading(
                inverter_id=1,
                ts=start + timedelta(hours=7 * i),
                active_power_w=float(i),
            )
            for i in reversed(range(40))
        ]

        days = [
            e.day
            for e in aggregate_by_day(
                readings, MetricField.ACTIVE_POWER, AggregateOp.MAX
            )
        ]

        assert days == sorted(set(days))

    def test_string_values_from_store_are_coerced(self) -> None:
        readings = [_reading("2023-01-15T10:00:00+00:00", power="500.50")]  # type: ignore[arg-type]

        result = aggregate_by_day(readings, MetricField.ACTIVE_POWER, AggregateOp.MAX)

        assert result == [DailyAggregateEntry(day="2023-01-15", value=500.5)]
