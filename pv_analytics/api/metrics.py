"""
POST /v1/metrics/ingest endpoint for batch ingestion of inverter readings.

Accepts ``{"records": [...]}`` in the telemetry source's export format
(``datetime`` as ``{"$date": ISO}`` or a plain ISO string, ``inversor_id``,
``potencia_ativa_watt``, ``temperatura_celsius``); snake-case field names are
accepted as well. Each record is validated on its own: invalid records and
records for unregistered inverters are skipped and reported, the rest are
inserted idempotently.

CHANGELOG:
- 2026-10-14: Enforce MAX_REQUEST_BYTES / MAX_RECORDS_PER_REQUEST (STORY-110)
- 2026-10-13: Initial creation (STORY-107)

TODO:
- None
"""

import logging
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from pv_analytics.api.deps import get_db, get_settings, require_client
from pv_analytics.config import ApiSettings
from pv_analytics.services.ingestion import ingest_metrics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/metrics", tags=["metrics"])


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class MetricRecordIn(BaseModel):
    """Single reading as exported by the telemetry source."""

    ts: datetime = Field(validation_alias=AliasChoices("datetime", "ts"))
    external_inverter_id: int = Field(
        ge=1, validation_alias=AliasChoices("inversor_id", "external_inverter_id")
    )
    active_power_w: float | None = Field(
        default=None,
        allow_inf_nan=False,
        validation_alias=AliasChoices("potencia_ativa_watt", "active_power_w"),
    )
    temperature_c: float | None = Field(
        default=None,
        allow_inf_nan=False,
        validation_alias=AliasChoices("temperatura_celsius", "temperature_c"),
    )

    @field_validator("ts", mode="before")
    @classmethod
    def unwrap_date_object(cls, v: Any) -> Any:
        """Accept ``{"$date": "..."}`` wrappers around the timestamp."""
        if isinstance(v, dict) and "$date" in v:
            return v["$date"]
        return v

    @field_validator("ts")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


class IngestPayload(BaseModel):
    """Batch payload; records are validated one by one by the route."""

    records: list[dict[str, Any]]


class IngestResponse(BaseModel):
    """Response from the ingest endpoint."""

    ingested: int
    duplicates: int
    skipped_invalid: int
    skipped_unknown_inverter: int
    errors: list[str]


def _describe(idx: int, exc: ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
        for err in exc.errors(include_url=False)
    )
    return f"Validation failed for record {idx}: {details}"


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------


@router.post("/ingest", response_model=IngestResponse)
async def ingest(
    request: Request,
    client: Annotated[str, Depends(require_client)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[ApiSettings, Depends(get_settings)],
) -> Any:
    """Ingest a batch of inverter readings.

    Raises:
        HTTPException: 413 if the body exceeds MAX_REQUEST_BYTES or the batch
            exceeds MAX_RECORDS_PER_REQUEST.
        HTTPException: 400 if Content-Length is not a number.
    """
    max_request_bytes = settings.max_request_bytes
    content_length = request.headers.get("content-length")
    if content_length is not None:
        try:
            content_length_int = int(content_length)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail="Invalid Content-Length header.",
            ) from None
        if content_length_int > max_request_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"Request body exceeds limit of {max_request_bytes} bytes.",
            )

    body = await request.body()
    if len(body) > max_request_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Request body exceeds limit of {max_request_bytes} bytes.",
        )

    try:
        payload = IngestPayload.model_validate_json(body)
    except ValidationError as exc:
        return JSONResponse(
            status_code=422,
            content={"detail": exc.errors(include_url=False, include_context=False)},
        )

    if len(payload.records) > settings.max_records_per_request:
        raise HTTPException(
            status_code=413,
            detail=f"Batch size {len(payload.records)} exceeds limit of "
            f"{settings.max_records_per_request}. Split into smaller batches.",
        )

    valid: list[dict] = []
    errors: list[str] = []
    for idx, raw in enumerate(payload.records):
        try:
            valid.append(MetricRecordIn.model_validate(raw).model_dump())
        except ValidationError as exc:
            message = _describe(idx, exc)
            logger.warning(message)
            errors.append(message)

    summary = await ingest_metrics(db, valid)
    logger.info(
        "Ingest from %s: %d records, %d inserted",
        client,
        len(payload.records),
        summary.ingested,
    )

    return IngestResponse(
        ingested=summary.ingested,
        duplicates=summary.duplicates,
        skipped_invalid=len(errors),
        skipped_unknown_inverter=summary.skipped_unknown_inverter,
        errors=errors + summary.errors,
    )
