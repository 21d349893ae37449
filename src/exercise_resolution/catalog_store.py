"""Postgres-backed exercise catalog: cold-start loading and seed upserts."""

from __future__ import annotations

import json
import logging
from typing import Any

import psycopg
from psycopg.rows import dict_row

from .catalog import ExerciseCatalog, ExerciseRecord
from .errors import CatalogUnavailableError

logger = logging.getLogger(__name__)

_SELECT_CATALOG = """
    SELECT exercise_id, name, target_muscles, body_parts, equipment,
           secondary_muscles, media_refs, instructions
    FROM exercise_catalog
    ORDER BY position, exercise_id
"""


async def load_catalog_from_database(conn: psycopg.AsyncConnection[Any]) -> ExerciseCatalog:
    """Read every row of ``exercise_catalog`` into an immutable catalog.

    Array columns arrive as lists and ``media_refs`` as decoded JSONB, which is
    the snake_case row shape ExerciseRecord.from_payload already accepts.
    """
    try:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(_SELECT_CATALOG)
            rows = await cur.fetchall()
    except psycopg.Error as exc:
        raise CatalogUnavailableError(f"Cannot read exercise_catalog: {exc}") from exc

    records: list[ExerciseRecord] = []
    for row in rows:
        if isinstance(row.get("media_refs"), str):
            row = {**row, "media_refs": json.loads(row["media_refs"])}
        try:
            records.append(ExerciseRecord.from_payload(row))
        except (KeyError, TypeError, ValueError) as exc:
            raise CatalogUnavailableError(f"Invalid exercise_catalog row: {exc}") from exc

    catalog = ExerciseCatalog(records)
    logger.info("Loaded exercise catalog from database (%d exercises)", len(catalog))
    return catalog


async def connect_and_load(database_url: str) -> ExerciseCatalog:
    try:
        conn = await psycopg.AsyncConnection.connect(database_url)
    except psycopg.Error as exc:
        raise CatalogUnavailableError(f"Cannot connect to catalog database: {exc}") from exc
    async with conn:
        return await load_catalog_from_database(conn)


async def ensure_exercise_catalog(
    conn: psycopg.AsyncConnection[Any], catalog: ExerciseCatalog
) -> int:
    """Upsert every catalog record, keyed by exercise id. Returns rows written."""
    written = 0
    for position, record in enumerate(catalog):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO exercise_catalog (
                    exercise_id, position, name, target_muscles, body_parts, equipment,
                    secondary_muscles, media_refs, instructions
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (exercise_id) DO UPDATE SET
                    position = EXCLUDED.position,
                    name = EXCLUDED.name,
                    target_muscles = EXCLUDED.target_muscles,
                    body_parts = EXCLUDED.body_parts,
                    equipment = EXCLUDED.equipment,
                    secondary_muscles = EXCLUDED.secondary_muscles,
                    media_refs = EXCLUDED.media_refs,
                    instructions = EXCLUDED.instructions,
                    updated_at = NOW()
                """,
                (
                    record.exercise_id,
                    position,
                    record.name,
                    list(record.target_muscles),
                    list(record.body_parts),
                    list(record.equipment),
                    list(record.secondary_muscles),
                    json.dumps(
                        [{"provider": ref.provider, "asset_key": ref.asset_key} for ref in record.media_refs]
                    ),
                    list(record.instructions),
                ),
            )
            written += 1
    logger.info("Upserted %d exercise catalog rows", written)
    return written
