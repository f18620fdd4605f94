"""
Inverter registry endpoints (/v1/inverters).

Responses include the owning plant's name. Any change to an inverter drops
its cached analytics results.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-106)

TODO:
- None
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from pv_analytics.api.deps import get_db, require_client
from pv_analytics.cache.redis_client import invalidate_inverter_cache
from pv_analytics.db.models import Inverter
from pv_analytics.services.inverters import (
    create_inverter,
    delete_inverter,
    get_inverter,
    list_inverters,
    update_inverter,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/v1/inverters",
    tags=["inverters"],
    dependencies=[Depends(require_client)],
)

InverterId = Annotated[int, Path(gt=0, description="Internal ID of the inverter.")]
Db = Annotated[AsyncSession, Depends(get_db)]


class InverterCreate(BaseModel):
    """Payload for registering an inverter."""

    external_id: int = Field(ge=1, description="ID used by the telemetry source.")
    name: str = Field(min_length=1, max_length=100)
    plant_id: int = Field(ge=1)


class InverterUpdate(BaseModel):
    """Partial update of an inverter."""

    external_id: int | None = Field(default=None, ge=1)
    name: str | None = Field(default=None, min_length=1, max_length=100)
    plant_id: int | None = Field(default=None, ge=1)


class InverterOut(BaseModel):
    """Inverter as returned by the API."""

    id: int
    external_id: int
    name: str
    plant_id: int
    plant_name: str | None
    created_at: datetime


def _to_out(inverter: Inverter) -> InverterOut:
    return InverterOut(
        id=inverter.id,
        external_id=inverter.external_id,
        name=inverter.name,
        plant_id=inverter.plant_id,
        plant_name=inverter.plant.name if inverter.plant is not None else None,
        created_at=inverter.created_at,
    )


@router.post("", response_model=InverterOut, status_code=201)
async def create(payload: InverterCreate, db: Db) -> InverterOut:
    """Register an inverter. 400 if the plant is unknown, 409 on a duplicate external ID."""
    inverter = await create_inverter(
        db, payload.external_id, payload.name, payload.plant_id
    )
    return _to_out(inverter)


@router.get("", response_model=list[InverterOut])
async def list_all(
    db: Db,
    plant_id: Annotated[int | None, Query(ge=1, description="Filter by plant ID.")] = None,
) -> list[InverterOut]:
    """List inverters, optionally only those of one plant."""
    return [_to_out(inv) for inv in await list_inverters(db, plant_id)]


@router.get("/{inverter_id}", response_model=InverterOut)
async def read(inverter_id: InverterId, db: Db) -> InverterOut:
    """Return one inverter. 404 if it does not exist."""
    return _to_out(await get_inverter(db, inverter_id))


@router.patch("/{inverter_id}", response_model=InverterOut)
async def update(inverter_id: InverterId, payload: InverterUpdate, db: Db) -> InverterOut:
    """Update an inverter's external ID, name or plant."""
    inverter = await update_inverter(
        db, inverter_id, **payload.model_dump(exclude_unset=True)
    )
    await invalidate_inverter_cache([inverter_id])
    return _to_out(inverter)


@router.delete("/{inverter_id}", status_code=204)
async def remove(inverter_id: InverterId, db: Db) -> Response:
    """Delete an inverter and its readings."""
    await delete_inverter(db, inverter_id)
    await invalidate_inverter_cache([inverter_id])
    return Response(status_code=204)
