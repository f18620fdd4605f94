"""
Plant registry service.

Create, list, read, rename and delete plants. Deleting a plant removes its
inverters and their readings through ON DELETE CASCADE; the ids of the
removed inverters are returned so callers can drop cached results.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-106)

TODO:
- None
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pv_analytics.db.models import Inverter, Plant
from pv_analytics.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


async def _name_taken(db: AsyncSession, name: str, exclude_id: int | None = None) -> bool:
    stmt = select(Plant.id).where(Plant.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Plant.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def _commit(db: AsyncSession, name: str) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f'Plant with name "{name}" already exists.') from None


async def create_plant(db: AsyncSession, name: str) -> Plant:
    """Create a plant with a unique name.

    Raises:
        ConflictError: If another plant already uses ``name``.
    """
    if await _name_taken(db, name):
        raise ConflictError(f'Plant with name "{name}" already exists.')
    plant = Plant(name=name)
    db.add(plant)
    await _commit(db, name)
    await db.refresh(plant)
    logger.info("Created plant %d (%s)", plant.id, plant.name)
    return plant


async def list_plants(db: AsyncSession) -> list[Plant]:
    """Return all plants ordered by id."""
    result = await db.execute(select(Plant).order_by(Plant.id.asc()))
    return list(result.scalars().all())


async def get_plant(db: AsyncSession, plant_id: int) -> Plant:
    """Return a plant by id.

    Raises:
        NotFoundError: If no plant has this id.
    """
    plant = await db.get(Plant, plant_id)
    if plant is None:
        raise NotFoundError("plant", plant_id)
    return plant


async def update_plant(db: AsyncSession, plant_id: int, name: str | None) -> Plant:
    """Rename a plant; a None name leaves it unchanged.

    Raises:
        NotFoundError: If no plant has this id.
        ConflictError: If another plant already uses ``name``.
    """
    plant = await get_plant(db, plant_id)
    if name is None or name == plant.name:
        return plant
    if await _name_taken(db, name, exclude_id=plant_id):
        raise ConflictError(f'Another plant with name "{name}" already exists.')
    plant.name = name
    await _commit(db, name)
    await db.refresh(plant)
    return plant


async def delete_plant(db: AsyncSession, plant_id: int) -> list[int]:
    """Delete a plant and return the ids of the inverters removed with it.

    Raises:
        NotFoundError: If no plant has this id.
    """
    plant = await get_plant(db, plant_id)
    result = await db.execute(select(Inverter.id).where(Inverter.plant_id == plant_id))
    inverter_ids = list(result.scalars().all())
    await db.delete(plant)
    await db.commit()
    logger.info(
        "Deleted plant %d with %d inverter(s)", plant_id, len(inverter_ids)
    )
    return inverter_ids
