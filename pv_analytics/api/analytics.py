"""
Analytics endpoints: daily aggregates and energy generation.

Inverter-level results are cached in Redis for CACHE_TTL_S seconds and
dropped whenever the inverter's readings or registry entry change. A
per-inverter generation counter in the key keeps a result computed before
such a change from being served after it. Plant energy is always computed
from the per-inverter integrations.

Missing or malformed start_date/end_date are reported as 400 by the service
(InvalidRangeError), not as FastAPI 422s, so the query parameters are taken
as plain strings here.

CHANGELOG:
- 2026-10-18: Key cached results by inverter generation (STORY-116)
- 2026-10-15: Cache inverter results (STORY-111)
- 2026-10-14: Add plant energy endpoint (STORY-108)
- 2026-10-12: Initial creation (STORY-103)

TODO:
- None
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from pv_analytics.api.deps import get_analytics_service, get_settings, require_client
from pv_analytics.cache.redis_client import (
    get_cache_generation,
    get_cached,
    inverter_cache_key,
    set_cached,
)
from pv_analytics.config import ApiSettings
from pv_analytics.services.analytics import AnalyticsService, EnergyResult

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/v1/analytics",
    tags=["analytics"],
    dependencies=[Depends(require_client)],
)

InverterId = Annotated[int, Path(gt=0, description="Internal ID of the inverter.")]
PlantId = Annotated[int, Path(gt=0, description="Internal ID of the plant.")]
StartDate = Annotated[
    str | None,
    Query(description="Start of the range (ISO 8601).", examples=["2023-01-01T00:00:00Z"]),
]
EndDate = Annotated[
    str | None,
    Query(
        description="End of the range (ISO 8601), inclusive through end of day.",
        examples=["2023-01-31"],
    ),
]
Service = Annotated[AnalyticsService, Depends(get_analytics_service)]
Settings = Annotated[ApiSettings, Depends(get_settings)]


# ---------------------------------------------------------------------------
# Pydantic response models
# ---------------------------------------------------------------------------


class DailyMaxPowerEntry(BaseModel):
    """Maximum active power (W) of one day; null if not a valid number."""

    day: str
    max_active_power_w: float | None


class DailyMaxPowerResponse(BaseModel):
    data: list[DailyMaxPowerEntry]


class DailyAverageTemperatureEntry(BaseModel):
    """Average temperature (°C) of one day; null if not a valid number."""

    day: str
    average_temperature_c: float | None


class DailyAverageTemperatureResponse(BaseModel):
    data: list[DailyAverageTemperatureEntry]


class EnergyGenerationResponse(BaseModel):
    """Energy generated by an inverter or plant within the range.

    Attributes:
        total_generation_wh: Total energy in watt-hours.
        start_date: Start of the range considered.
        end_date: End of the range as requested.
        entity_id: Inverter or plant id.
        entity_type: ``inverter`` or ``plant``.
    """

    total_generation_wh: float
    start_date: datetime
    end_date: datetime
    entity_id: int
    entity_type: Literal["inverter", "plant"]

    @classmethod
    def from_result(cls, result: EnergyResult) -> "EnergyGenerationResponse":
        return cls(
            total_generation_wh=result.total_wh,
            start_date=result.start_date,
            end_date=result.end_date,
            entity_id=result.entity_id,
            entity_type=result.entity_type,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _cached_inverter_result(
    settings: ApiSettings,
    inverter_id: int,
    kind: str,
    start_date: str | None,
    end_date: str | None,
    compute: Callable[[], Awaitable[BaseModel]],
) -> Any:
    """Return a cached result or compute and cache it.

    The key carries the inverter's cache generation read before computing,
    so a write that races an invalidation is never served.
    """
    generation = await get_cache_generation(inverter_id)
    if generation is None:
        return await compute()
    key = inverter_cache_key(
        inverter_id, generation, kind, start_date or "", end_date or ""
    )
    cached = await get_cached(key)
    if cached is not None:
        logger.debug("Cache hit for %s", key)
        return cached

    response = await compute()
    await set_cached(key, response.model_dump(mode="json"), settings.cache_ttl_s)
    return response


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get(
    "/inverters/{inverter_id}/max-power-by-day",
    response_model=DailyMaxPowerResponse,
)
async def max_power_by_day(
    inverter_id: InverterId,
    service: Service,
    settings: Settings,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> Any:
    """Maximum active power per day for an inverter within a date range.

    Raises:
        NotFoundError: 404 if the inverter does not exist.
        InvalidRangeError: 400 if the dates are missing, invalid or reversed.
    """

    async def compute() -> DailyMaxPowerResponse:
        entries = await service.daily_max_power(inverter_id, start_date, end_date)
        return DailyMaxPowerResponse(
            data=[
                DailyMaxPowerEntry(day=e.day, max_active_power_w=e.value)
                for e in entries
            ]
        )

    return await _cached_inverter_result(
        settings, inverter_id, "max-power-by-day", start_date, end_date, compute
    )


@router.get(
    "/inverters/{inverter_id}/average-temperature-by-day",
    response_model=DailyAverageTemperatureResponse,
)
async def average_temperature_by_day(
    inverter_id: InverterId,
    service: Service,
    settings: Settings,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> Any:
    """Average temperature per day for an inverter within a date range."""

    async def compute() -> DailyAverageTemperatureResponse:
        entries = await service.daily_average_temperature(
            inverter_id, start_date, end_date
        )
        return DailyAverageTemperatureResponse(
            data=[
                DailyAverageTemperatureEntry(day=e.day, average_temperature_c=e.value)
                for e in entries
            ]
        )

    return await _cached_inverter_result(
        settings,
        inverter_id,
        "average-temperature-by-day",
        start_date,
        end_date,
        compute,
    )


@router.get(
    "/inverters/{inverter_id}/energy-generation",
    response_model=EnergyGenerationResponse,
)
async def inverter_energy_generation(
    inverter_id: InverterId,
    service: Service,
    settings: Settings,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> Any:
    """Total energy generated by an inverter within a date range."""

    async def compute() -> EnergyGenerationResponse:
        result = await service.inverter_energy(inverter_id, start_date, end_date)
        return EnergyGenerationResponse.from_result(result)

    return await _cached_inverter_result(
        settings, inverter_id, "energy-generation", start_date, end_date, compute
    )


@router.get(
    "/plants/{plant_id}/energy-generation",
    response_model=EnergyGenerationResponse,
)
async def plant_energy_generation(
    plant_id: PlantId,
    service: Service,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> EnergyGenerationResponse:
    """Total energy generated by all inverters of a plant within a date range."""
    result = await service.plant_energy(plant_id, start_date, end_date)
    logger.debug(
        "Plant energy query: plant_id=%d total_wh=%.3f", plant_id, result.total_wh
    )
    return EnergyGenerationResponse.from_result(result)
