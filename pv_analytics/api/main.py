"""
FastAPI application entry point for the PV analytics API.

Loads ApiSettings at startup, configures JSON logging, parses API_TOKENS into
a BearerAuth instance stored on app.state, and maps service-layer exceptions
to HTTP responses.

CHANGELOG:
- 2026-10-14: Register plants, inverters and metrics routers (STORY-106, STORY-107)
- 2026-10-13: Map service exceptions to HTTP status codes (STORY-103)
- 2026-10-12: Initial creation (STORY-101)
"""

import json
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pv_analytics.api.analytics import router as analytics_router
from pv_analytics.api.health import router as health_router
from pv_analytics.api.inverters import router as inverters_router
from pv_analytics.api.metrics import router as metrics_router
from pv_analytics.api.plants import router as plants_router
from pv_analytics.auth.bearer import BearerAuth, parse_api_tokens
from pv_analytics.config import ApiSettings
from pv_analytics.db.session import dispose_engine
from pv_analytics.services.errors import (
    AnalyticsError,
    ConflictError,
    InvalidRangeError,
    InvalidReferenceError,
    NotFoundError,
    StoreError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class _JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Send JSON-formatted records from the root logger to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: load settings and auth, dispose the engine on exit.

    Raises:
        RuntimeError: If API_TOKENS contains no valid token:client entry.
        pydantic.ValidationError: If required settings are missing or invalid.
    """
    settings = ApiSettings()
    configure_logging(settings.log_level)
    app.state.settings = settings

    token_map = parse_api_tokens(settings.api_tokens)
    if not token_map:
        raise RuntimeError(
            "API_TOKENS parsed but contains no valid token:client entries"
        )
    app.state.auth = BearerAuth(token_map)
    logger.info("Parsed %d API token(s) from API_TOKENS", len(token_map))

    logger.info("Settings validated, PV analytics API ready")
    yield
    await dispose_engine()
    logger.info("PV analytics API shutting down")


app = FastAPI(
    title="PV Analytics API",
    description="Photovoltaic plant monitoring: ingestion, daily aggregates, energy.",
    version="0.1.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Service exception mapping
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR: dict[type[AnalyticsError], int] = {
    NotFoundError: 404,
    InvalidRangeError: 400,
    InvalidReferenceError: 400,
    ConflictError: 409,
    StoreError: 503,
}


@app.exception_handler(AnalyticsError)
async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    """Translate a service exception into a JSON error response."""
    status_code = next(
        (code for kind, code in _STATUS_BY_ERROR.items() if isinstance(exc, kind)),
        500,
    )
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


app.include_router(health_router)
app.include_router(plants_router)
app.include_router(inverters_router)
app.include_router(metrics_router)
app.include_router(analytics_router)


@app.get("/")
async def root() -> dict:
    """Root health check endpoint."""
    return {"status": "ok"}
