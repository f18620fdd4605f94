"""
Redis client for the analytics result cache.

Provides helpers for creating Redis connections, reading and writing cached
JSON results, and invalidating every cached result of an inverter. All cache
operations are best-effort: connection failures are logged but do not
propagate exceptions, so the API keeps answering from the database.

Every inverter has a generation counter that is part of its result keys.
Invalidation bumps the counter before deleting keys, so a result computed
before an ingest and written after it lands under a key no reader will
build again; it simply expires with its TTL.

CHANGELOG:
- 2026-10-18: Generation counter in result keys (STORY-116)
- 2026-10-15: Cache analytics results, invalidate per inverter (STORY-111)
- 2026-10-12: Initial creation (STORY-101)
"""

import json
import logging
import os
from collections.abc import Iterable
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)

_KEY_PREFIX = "analytics:inverter"
_GENERATION_PREFIX = "analytics:generation:inverter"


def _get_redis_url() -> str:
    """Read REDIS_URL from environment.

    Returns:
        str: The Redis connection URL.

    Raises:
        RuntimeError: If REDIS_URL is not set.
    """
    url = os.environ.get("REDIS_URL")
    if not url:
        raise RuntimeError("REDIS_URL environment variable is required")
    return url


async def get_redis() -> redis.Redis:
    """Create and return an async Redis client from environment settings.

    Returns:
        redis.Redis: Async Redis client.
    """
    return redis.from_url(_get_redis_url())


def _generation_key(inverter_id: int) -> str:
    return f"{_GENERATION_PREFIX}:{inverter_id}"


def inverter_cache_key(
    inverter_id: int, generation: int, kind: str, start: str, end: str
) -> str:
    """Build the cache key of one inverter analytics result."""
    return f"{_KEY_PREFIX}:{inverter_id}:{generation}:{kind}:{start}:{end}"


async def get_cache_generation(inverter_id: int) -> int | None:
    """Return the inverter's current cache generation.

    0 when the inverter was never invalidated; None when Redis cannot be
    read, in which case callers should not use the cache at all.
    """
    try:
        client = await get_redis()
        try:
            raw = await client.get(_generation_key(inverter_id))
        finally:
            await client.aclose()
        return int(raw) if raw is not None else 0
    except Exception:
        logger.warning(
            "Redis generation read failed for inverter %d", inverter_id, exc_info=True
        )
        return None


async def get_cached(key: str) -> Any | None:
    """Return the decoded JSON value stored at ``key``, or None.

    Returns None on a cache miss and on any Redis failure.
    """
    try:
        client = await get_redis()
        try:
            cached = await client.get(key)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Redis read failed for key %s", key, exc_info=True)
        return None
    if cached is None:
        return None
    return json.loads(cached)


async def set_cached(key: str, value: Any, ttl_s: int) -> None:
    """Store ``value`` as JSON at ``key`` for ``ttl_s`` seconds.

    A non-positive TTL disables caching.
    """
    if ttl_s <= 0:
        return
    try:
        client = await get_redis()
        try:
            await client.set(key, json.dumps(value), ex=ttl_s)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Redis write failed for key %s", key, exc_info=True)


async def invalidate_inverter_cache(inverter_ids: Iterable[int]) -> None:
    """Bump the generation of the given inverters and delete their cached results.

    Best-effort operation: if Redis is unavailable or the delete fails,
    the error is logged but not raised.

    Args:
        inverter_ids: Internal ids of the inverters whose data changed.
    """
    ids = sorted(set(inverter_ids))
    if not ids:
        return
    try:
        client = await get_redis()
        try:
            for inverter_id in ids:
                await client.incr(_generation_key(inverter_id))
                keys = [
                    key
                    async for key in client.scan_iter(
                        match=f"{_KEY_PREFIX}:{inverter_id}:*"
                    )
                ]
                if keys:
                    await client.delete(*keys)
        finally:
            await client.aclose()
    except Exception:
        logger.warning(
            "Failed to invalidate cache for inverters %s",
            ids,
            exc_info=True,
        )
