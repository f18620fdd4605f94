"""
SQL-backed reading store and entity directory.

These are the collaborators the analytics orchestrator reads from. Each call
opens its own AsyncSession from the session factory, so concurrent calls
(e.g. the per-inverter fan-out of plant energy) never share a session.
Database failures are re-raised as StoreError; nothing is retried here.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-105)

TODO:
- None
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pv_analytics.db.models import Inverter, InverterMetric, Plant
from pv_analytics.services.aggregation import MetricField, Reading
from pv_analytics.services.energy import PowerSample
from pv_analytics.services.errors import StoreError

logger = logging.getLogger(__name__)


class _SqlBase:
    """Shared session handling for the SQL collaborators."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _rows(self, stmt: Select[Any]) -> Sequence[Any]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Store query failed: %s", exc)
            raise StoreError("Reading store is unavailable.") from exc

    async def _scalars(self, stmt: Select[Any]) -> Sequence[Any]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.scalars().all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Directory query failed: %s", exc)
            raise StoreError("Entity directory is unavailable.") from exc


class SqlReadingStore(_SqlBase):
    """Reads windows of inverter_metrics rows, ordered by timestamp."""

    async def fetch_metric_values(
        self,
        inverter_id: int,
        metric: MetricField,
        start: datetime,
        end: datetime,
    ) -> list[Reading]:
        """Return non-null readings of ``metric`` in ``[start, end]``.

        Args:
            inverter_id: Internal inverter id.
            metric: Column to read.
            start: Inclusive lower bound.
            end: Inclusive upper bound (already end-of-day adjusted).

        Returns:
            list[Reading]: Readings ordered by timestamp ascending, with only
            the requested metric populated.
        """
        column = getattr(InverterMetric, metric.value)
        stmt = (
            select(InverterMetric.ts, column)
            .where(InverterMetric.inverter_id == inverter_id)
            .where(InverterMetric.ts >= start)
            .where(InverterMetric.ts <= end)
            .where(column.is_not(None))
            .order_by(InverterMetric.ts.asc())
        )
        rows = await self._rows(stmt)
        return [
            Reading(inverter_id=inverter_id, ts=ts, **{metric.value: value})
            for ts, value in rows
        ]

    async def fetch_power_series(
        self,
        inverter_id: int,
        start: datetime,
        end: datetime,
    ) -> list[PowerSample]:
        """Return (timestamp, power) samples with non-null power in ``[start, end]``."""
        stmt = (
            select(InverterMetric.ts, InverterMetric.active_power_w)
            .where(InverterMetric.inverter_id == inverter_id)
            .where(InverterMetric.ts >= start)
            .where(InverterMetric.ts <= end)
            .where(InverterMetric.active_power_w.is_not(None))
            .order_by(InverterMetric.ts.asc())
        )
        rows = await self._rows(stmt)
        return [PowerSample(ts=ts, power_w=power) for ts, power in rows]


class SqlEntityDirectory(_SqlBase):
    """Resolves plant and inverter ids against the registry tables."""

    async def inverter_exists(self, inverter_id: int) -> bool:
        """Return True if an inverter with this internal id exists."""
        stmt = select(Inverter.id).where(Inverter.id == inverter_id).limit(1)
        return bool(await self._scalars(stmt))

    async def plant_exists(self, plant_id: int) -> bool:
        """Return True if a plant with this id exists."""
        stmt = select(Plant.id).where(Plant.id == plant_id).limit(1)
        return bool(await self._scalars(stmt))

    async def plant_inverter_ids(self, plant_id: int) -> list[int]:
        """Return the ids of the plant's inverters, ascending."""
        stmt = (
            select(Inverter.id)
            .where(Inverter.plant_id == plant_id)
            .order_by(Inverter.id.asc())
        )
        return list(await self._scalars(stmt))
