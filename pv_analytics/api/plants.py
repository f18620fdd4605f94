"""
Plant registry endpoints (/v1/plants).

CHANGELOG:
- 2026-10-13: Initial creation (STORY-106)

TODO:
- None
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from pv_analytics.api.deps import get_db, require_client
from pv_analytics.cache.redis_client import invalidate_inverter_cache
from pv_analytics.services.plants import (
    create_plant,
    delete_plant,
    get_plant,
    list_plants,
    update_plant,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/v1/plants",
    tags=["plants"],
    dependencies=[Depends(require_client)],
)

PlantId = Annotated[int, Path(gt=0, description="Numeric ID of the plant.")]
Db = Annotated[AsyncSession, Depends(get_db)]


class PlantCreate(BaseModel):
    """Payload for creating a plant."""

    name: str = Field(min_length=3, max_length=200)


class PlantUpdate(BaseModel):
    """Partial update of a plant."""

    name: str | None = Field(default=None, min_length=3, max_length=200)


class PlantOut(BaseModel):
    """Plant as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime


@router.post("", response_model=PlantOut, status_code=201)
async def create(payload: PlantCreate, db: Db) -> PlantOut:
    """Create a new plant. 409 if the name is already used."""
    plant = await create_plant(db, payload.name)
    return PlantOut.model_validate(plant)


@router.get("", response_model=list[PlantOut])
async def list_all(db: Db) -> list[PlantOut]:
    """List all plants."""
    return [PlantOut.model_validate(p) for p in await list_plants(db)]


@router.get("/{plant_id}", response_model=PlantOut)
async def read(plant_id: PlantId, db: Db) -> PlantOut:
    """Return one plant. 404 if it does not exist."""
    return PlantOut.model_validate(await get_plant(db, plant_id))


@router.patch("/{plant_id}", response_model=PlantOut)
async def update(plant_id: PlantId, payload: PlantUpdate, db: Db) -> PlantOut:
    """Rename a plant. 404 if missing, 409 on a name clash."""
    plant = await update_plant(db, plant_id, payload.name)
    return PlantOut.model_validate(plant)


@router.delete("/{plant_id}", status_code=204)
async def remove(plant_id: PlantId, db: Db) -> Response:
    """Delete a plant together with its inverters and their readings."""
    removed_inverters = await delete_plant(db, plant_id)
    await invalidate_inverter_cache(removed_inverters)
    return Response(status_code=204)
