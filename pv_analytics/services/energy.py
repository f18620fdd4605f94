"""
Energy generation estimate from sampled active power.

Integrates each entity's power curve with the trapezoidal rule between
consecutive samples and sums the results. Segments touching a negative,
NaN or non-numeric power value, an uninterpretable timestamp, or a
non-positive time step contribute nothing; they are skipped, never clamped.

CHANGELOG:
- 2026-10-16: Add count_skipped_segments for query diagnostics (STORY-114)
- 2026-10-12: Initial creation (STORY-104)

TODO:
- None
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from pv_analytics.services.numeric import round_half_away, to_finite_float

ENERGY_DECIMALS = 3
_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class PowerSample:
    """Active power reading at a point in time.

    Attributes:
        ts: Timestamp as a datetime or ISO-8601 string.
        power_w: Active power in watts.
    """

    ts: datetime | str
    power_w: float


def _as_utc(ts: datetime | str) -> datetime | None:
    """Interpret a sample timestamp, or return None if it cannot be read."""
    if isinstance(ts, str):
        try:
            ts = datetime.fromisoformat(ts)
        except ValueError:
            return None
    if not isinstance(ts, datetime):
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts


def _valid_power(power: object) -> float | None:
    value = to_finite_float(power)
    if value is None or value < 0:
        return None
    return value


def _sorted_points(
    samples: Sequence[PowerSample],
) -> list[tuple[datetime | None, object]]:
    # Stable sort; samples with an unreadable timestamp go last.
    points = [(_as_utc(s.ts), s.power_w) for s in samples]
    return sorted(points, key=lambda p: (p[0] is None, p[0] or datetime.min))


def _segment_wh(
    a: tuple[datetime | None, object],
    b: tuple[datetime | None, object],
) -> float | None:
    """Trapezoid energy between two points, or None if the pair is skipped."""
    p_a, p_b = _valid_power(a[1]), _valid_power(b[1])
    if p_a is None or p_b is None or a[0] is None or b[0] is None:
        return None
    hours = (b[0] - a[0]).total_seconds() / _SECONDS_PER_HOUR
    if hours <= 0:
        return None
    return ((p_a + p_b) / 2) * hours


def _entity_wh(samples: Sequence[PowerSample]) -> float:
    if len(samples) < 2:
        return 0.0
    points = _sorted_points(samples)
    total = 0.0
    for a, b in zip(points, points[1:]):
        segment = _segment_wh(a, b)
        if segment is not None:
            total += segment
    return total


def integrate_energy_wh(
    series_by_entity: Mapping[int, Sequence[PowerSample]],
) -> float:
    """Estimate total energy in watt-hours across entities.

    Args:
        series_by_entity: Power samples per entity id. Each entity is
            integrated independently; order within a series does not matter.

    Returns:
        float: Total energy in Wh, rounded to 3 decimals (half away from
        zero). 0.0 when no entity has at least two usable samples.
    """
    total = sum(_entity_wh(samples) for samples in series_by_entity.values())
    return round_half_away(total, ENERGY_DECIMALS)


def count_skipped_segments(samples: Sequence[PowerSample]) -> int:
    """Return how many consecutive pairs of one series were discarded."""
    if len(samples) < 2:
        return 0
    points = _sorted_points(samples)
    return sum(1 for a, b in zip(points, points[1:]) if _segment_wh(a, b) is None)
