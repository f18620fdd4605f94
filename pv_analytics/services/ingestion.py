"""
Ingestion service for batch-inserting inverter readings.

Maps each record's external inverter id to the internal id, skips records
for inverters that are not registered, and inserts the rest with
ON CONFLICT (inverter_id, ts) DO NOTHING so re-sent readings are ignored.
Invalidates the cached analytics of every inverter that received rows.

CHANGELOG:
- 2026-10-14: Chunk inserts, report duplicates separately (STORY-110)
- 2026-10-13: Resolve external inverter ids, skip unknown inverters (STORY-107)

TODO:
- None
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from pv_analytics.cache.redis_client import invalidate_inverter_cache
from pv_analytics.db.models import InverterMetric
from pv_analytics.services.inverters import map_external_ids

logger = logging.getLogger(__name__)

# Keeps each statement well below the asyncpg bind parameter limit.
INSERT_CHUNK_SIZE = 1000


@dataclass
class IngestSummary:
    """Outcome of one ingestion batch.

    Attributes:
        ingested: Rows actually inserted.
        duplicates: Valid rows ignored because the reading already existed.
        skipped_unknown_inverter: Records whose external inverter id is not
            registered.
        errors: Human-readable description of every skipped record.
    """

    ingested: int = 0
    duplicates: int = 0
    skipped_unknown_inverter: int = 0
    errors: list[str] = field(default_factory=list)


async def ingest_metrics(db: AsyncSession, records: list[dict]) -> IngestSummary:
    """Insert a batch of validated metric records.

    Args:
        db: Async SQLAlchemy session.
        records: Dicts with ``external_inverter_id``, ``ts``,
            ``active_power_w`` and ``temperature_c``.

    Returns:
        IngestSummary: Counts of inserted, duplicate and skipped records.
    """
    summary = IngestSummary()
    if not records:
        return summary

    id_map = await map_external_ids(db, (r["external_inverter_id"] for r in records))

    rows: list[dict] = []
    for record in records:
        external_id = record["external_inverter_id"]
        inverter_id = id_map.get(external_id)
        if inverter_id is None:
            message = (
                f"Inverter with external ID {external_id} not found for record "
                f"at {record['ts'].isoformat()}. Skipping."
            )
            logger.warning(message)
            summary.errors.append(message)
            summary.skipped_unknown_inverter += 1
            continue
        rows.append(
            {
                "inverter_id": inverter_id,
                "ts": record["ts"],
                "active_power_w": record["active_power_w"],
                "temperature_c": record["temperature_c"],
            }
        )

    for offset in range(0, len(rows), INSERT_CHUNK_SIZE):
        chunk = rows[offset : offset + INSERT_CHUNK_SIZE]
        stmt = (
            pg_insert(InverterMetric)
            .values(chunk)
            .on_conflict_do_nothing(index_elements=["inverter_id", "ts"])
        )
        result = await db.execute(stmt)
        summary.ingested += result.rowcount
    if rows:
        await db.commit()

    summary.duplicates = len(rows) - summary.ingested
    logger.info(
        "Ingested %d/%d records (%d duplicate, %d unknown inverter)",
        summary.ingested,
        len(records),
        summary.duplicates,
        summary.skipped_unknown_inverter,
    )

    if summary.ingested > 0:
        await invalidate_inverter_cache(row["inverter_id"] for row in rows)

    return summary
