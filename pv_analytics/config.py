"""
API configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All configuration values come from environment variables or .env files;
no hardcoded URLs or credentials.

CHANGELOG:
- 2026-10-14: Add LOG_LEVEL (STORY-109)
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


class ApiSettings(BaseSettings):
    """Runtime configuration for the PV analytics API.

    Required variables must be set; optional variables have sensible defaults.

    Attributes:
        database_url: SQLAlchemy async URL of the PostgreSQL/TimescaleDB store.
        redis_url: Redis URL used for the analytics result cache.
        api_tokens: Comma-separated ``token:client`` pairs for bearer auth.
        cache_ttl_s: Seconds an analytics result stays cached (0 disables).
        max_records_per_request: Max metric records accepted per ingest call.
        max_request_bytes: Max ingest request body size in bytes.
        log_level: Root log level name (DEBUG, INFO, ...).
    """

    database_url: str
    redis_url: str
    api_tokens: str
    cache_ttl_s: int = 60
    max_records_per_request: int = 5000
    max_request_bytes: int = 5 * 1024 * 1024
    log_level: str = "INFO"

    @field_validator("cache_ttl_s")
    @classmethod
    def cache_ttl_must_be_non_negative(cls, v: int) -> int:
        """Validate cache TTL is non-negative."""
        if v < 0:
            raise ValueError("CACHE_TTL_S must be >= 0")
        return v

    @field_validator("max_records_per_request")
    @classmethod
    def max_records_must_be_valid(cls, v: int) -> int:
        """Validate the ingest batch limit is between 1 and 50000."""
        if v < 1 or v > 50000:
            raise ValueError("MAX_RECORDS_PER_REQUEST must be >= 1 and <= 50000")
        return v

    @field_validator("max_request_bytes")
    @classmethod
    def max_request_bytes_must_be_positive(cls, v: int) -> int:
        """Validate the request body limit is positive."""
        if v <= 0:
            raise ValueError("MAX_REQUEST_BYTES must be > 0")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Normalise LOG_LEVEL to upper case and reject unknown names."""
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}")
        return level

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
