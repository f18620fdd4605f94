"""
Inverter registry service.

Inverters carry two ids: the internal ``id`` used by the analytics queries
and the ``external_id`` used by the telemetry source, which ingestion maps
back to internal ids.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-106)

TODO:
- None
"""

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pv_analytics.db.models import Inverter, Plant
from pv_analytics.services.errors import (
    ConflictError,
    InvalidReferenceError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


async def _require_plant(db: AsyncSession, plant_id: int) -> None:
    if await db.get(Plant, plant_id) is None:
        raise InvalidReferenceError(
            f'Plant with ID "{plant_id}" not found. Cannot assign inverter.'
        )


async def _external_id_taken(
    db: AsyncSession, external_id: int, exclude_id: int | None = None
) -> bool:
    stmt = select(Inverter.id).where(Inverter.external_id == external_id)
    if exclude_id is not None:
        stmt = stmt.where(Inverter.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def _commit(db: AsyncSession, external_id: int) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(
            f'Inverter with external ID "{external_id}" already exists.'
        ) from None


async def get_inverter(db: AsyncSession, inverter_id: int) -> Inverter:
    """Return an inverter by internal id with its plant loaded.

    Raises:
        NotFoundError: If no inverter has this id.
    """
    stmt = (
        select(Inverter)
        .options(selectinload(Inverter.plant))
        .where(Inverter.id == inverter_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    inverter = result.scalar_one_or_none()
    if inverter is None:
        raise NotFoundError("inverter", inverter_id)
    return inverter


async def list_inverters(db: AsyncSession, plant_id: int | None = None) -> list[Inverter]:
    """Return inverters ordered by id, optionally limited to one plant."""
    stmt = select(Inverter).options(selectinload(Inverter.plant))
    if plant_id is not None:
        stmt = stmt.where(Inverter.plant_id == plant_id)
    result = await db.execute(stmt.order_by(Inverter.id.asc()))
    return list(result.scalars().all())


async def create_inverter(
    db: AsyncSession, external_id: int, name: str, plant_id: int
) -> Inverter:
    """Register an inverter under an existing plant.

    Raises:
        InvalidReferenceError: If the plant does not exist.
        ConflictError: If ``external_id`` is already registered.
    """
    await _require_plant(db, plant_id)
    if await _external_id_taken(db, external_id):
        raise ConflictError(f'Inverter with external ID "{external_id}" already exists.')
    inverter = Inverter(external_id=external_id, name=name, plant_id=plant_id)
    db.add(inverter)
    await _commit(db, external_id)
    logger.info(
        "Created inverter %d (external_id=%d, plant_id=%d)",
        inverter.id,
        external_id,
        plant_id,
    )
    return await get_inverter(db, inverter.id)


async def update_inverter(
    db: AsyncSession,
    inverter_id: int,
    *,
    external_id: int | None = None,
    name: str | None = None,
    plant_id: int | None = None,
) -> Inverter:
    """Apply a partial update to an inverter; None fields are left as is.

    Raises:
        NotFoundError: If no inverter has this id.
        InvalidReferenceError: If the new plant does not exist.
        ConflictError: If the new external id is already registered.
    """
    inverter = await get_inverter(db, inverter_id)
    if plant_id is not None and plant_id != inverter.plant_id:
        await _require_plant(db, plant_id)
        inverter.plant_id = plant_id
    if external_id is not None and external_id != inverter.external_id:
        if await _external_id_taken(db, external_id, exclude_id=inverter_id):
            raise ConflictError(
                f'Inverter with external ID "{external_id}" already exists.'
            )
        inverter.external_id = external_id
    if name is not None:
        inverter.name = name
    await _commit(db, inverter.external_id)
    return await get_inverter(db, inverter_id)


async def delete_inverter(db: AsyncSession, inverter_id: int) -> None:
    """Delete an inverter and, by cascade, its readings.

    Raises:
        NotFoundError: If no inverter has this id.
    """
    inverter = await get_inverter(db, inverter_id)
    await db.delete(inverter)
    await db.commit()
    logger.info("Deleted inverter %d", inverter_id)


async def map_external_ids(
    db: AsyncSession, external_ids: Iterable[int]
) -> dict[int, int]:
    """Map telemetry-source ids to internal inverter ids.

    Unknown external ids are absent from the returned mapping.
    """
    wanted = set(external_ids)
    if not wanted:
        return {}
    stmt = select(Inverter.external_id, Inverter.id).where(
        Inverter.external_id.in_(wanted)
    )
    result = await db.execute(stmt)
    return {external_id: internal_id for external_id, internal_id in result.all()}
