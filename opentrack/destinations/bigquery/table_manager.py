"""
Table and schema management for the BigQuery destination.

``SchemaSynchronizer`` makes sure a table exists and can hold a row before the
row is inserted:
- creates missing datasets and tables from the canonical base schema
- widens existing schemas when rows bring new columns or looser types
- caches schemas per (dataset, table) with a TTL
- absorbs create races: an "already exists" failure is treated as success

It never retries on its own. Errors propagate to the destination's retry
executor, which wraps the whole ``insert_with_auto_schema`` call.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from opentrack.destinations.bigquery.constants import (
    DATASET_LABELS,
    DATASET_LOCATION,
    SCHEMA_CACHE_TTL_SECONDS,
)
from opentrack.destinations.bigquery.schema_manager import (
    TableSchema,
    generate_schema_from_row,
    get_base_schema_for_table,
    merge_schemas,
)
from opentrack.destinations.bigquery.store import WarehouseStore
from opentrack.exceptions import SchemaConflictError

logger = logging.getLogger(__name__)

HTTP_CONFLICT = 409

CacheKey = tuple[str, str]


@dataclass(frozen=True)
class TableInfo:
    """Existence and (when present) schema of a table."""

    exists: bool
    schema: TableSchema | None = None


@dataclass(frozen=True)
class SchemaCacheEntry:
    """Cached schema and the clock reading when it was stored."""

    schema: TableSchema
    last_updated: float


def is_conflict_error(error: Exception) -> bool:
    """Whether a create failure means someone else created the dataset or table."""
    if isinstance(error, SchemaConflictError):
        return True
    for attr in ("code", "status_code"):
        if getattr(error, attr, None) == HTTP_CONFLICT:
            return True
    message = str(error).lower()
    return "already exists" in message or "duplicate" in message


class SchemaSynchronizer:
    """
    Keeps warehouse tables able to hold incoming rows.

    Usage:
        sync = SchemaSynchronizer(BigQueryStore("my-project"))
        await sync.insert_with_auto_schema("analytics", "tracks", "tracks", [row])
    """

    def __init__(
        self,
        store: WarehouseStore,
        *,
        cache_ttl_seconds: float = SCHEMA_CACHE_TTL_SECONDS,
        dataset_location: str = DATASET_LOCATION,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.cache_ttl_seconds = cache_ttl_seconds
        self.dataset_location = dataset_location
        self._clock = clock
        self._schema_cache: dict[CacheKey, SchemaCacheEntry] = {}

    # =========================================================================
    # DATASETS
    # =========================================================================

    async def ensure_dataset_exists(self, dataset_id: str) -> None:
        """Create the dataset if the store reports it missing."""
        try:
            if await self.store.dataset_exists(dataset_id):
                return
            await self.store.create_dataset(
                dataset_id,
                location=self.dataset_location,
                description=f"OpenTrack analytics data for {dataset_id}",
                labels=dict(DATASET_LABELS),
            )
            logger.info(f"Created BigQuery dataset: {dataset_id}")
        except Exception as e:
            if is_conflict_error(e):
                logger.info(f"Dataset {dataset_id} was created concurrently")
                return
            logger.error(f"Failed to ensure dataset exists: {dataset_id}: {e}")
            raise

    # =========================================================================
    # TABLES
    # =========================================================================

    async def get_table_info(self, dataset_id: str, table_id: str) -> TableInfo:
        """Return table existence and schema, from cache when fresh."""
        cached = self._get_cached_schema(dataset_id, table_id)
        if cached is not None:
            return TableInfo(exists=True, schema=cached)

        try:
            if not await self.store.table_exists(dataset_id, table_id):
                return TableInfo(exists=False)

            schema = await self.store.get_table_schema(dataset_id, table_id)
        except Exception as e:
            logger.error(f"Failed to get table info: {dataset_id}.{table_id}: {e}")
            raise

        self._set_cached_schema(dataset_id, table_id, schema)
        return TableInfo(exists=True, schema=schema)

    async def create_table(
        self,
        dataset_id: str,
        table_id: str,
        table_type: str,
        sample_row: dict[str, Any],
    ) -> TableSchema:
        """
        Create a table from the base schema for its type plus the sample row.

        If another writer created the table first, the existing remote schema
        is fetched and cached instead of failing.

        Returns:
            The schema now cached for the table
        """
        base_schema = get_base_schema_for_table(table_type)
        row_schema = generate_schema_from_row(sample_row)
        final_schema = merge_schemas(base_schema, row_schema).schema

        try:
            await self.store.create_table(
                dataset_id,
                table_id,
                final_schema,
                description=f"OpenTrack {table_type} data table",
                labels={**DATASET_LABELS, "table_type": table_type},
            )
        except Exception as e:
            if not is_conflict_error(e):
                logger.error(f"Failed to create table: {dataset_id}.{table_id}: {e}")
                raise
            logger.info(f"Table {dataset_id}.{table_id} was created concurrently; loading its schema")
            remote_schema = await self.store.get_table_schema(dataset_id, table_id)
            self._set_cached_schema(dataset_id, table_id, remote_schema)
            return remote_schema

        self._set_cached_schema(dataset_id, table_id, final_schema)
        logger.info(f"Created BigQuery table: {dataset_id}.{table_id}")
        return final_schema

    async def update_table_schema(
        self,
        dataset_id: str,
        table_id: str,
        new_row: dict[str, Any],
        current_schema: TableSchema,
    ) -> bool:
        """
        Widen a table's schema so it can hold ``new_row``.

        Returns:
            True if the remote schema was changed, False if no change was needed
        """
        result = merge_schemas(current_schema, generate_schema_from_row(new_row))
        if not result.has_changes:
            return False

        try:
            await self.store.set_table_schema(dataset_id, table_id, result.schema)
        except Exception as e:
            logger.error(f"Failed to update table schema: {dataset_id}.{table_id}: {e}")
            raise

        self._set_cached_schema(dataset_id, table_id, result.schema)
        logger.info(
            f"Updated schema for table: {dataset_id}.{table_id} "
            f"(added={result.added_fields}, relaxed={result.relaxed_fields})"
        )
        return True

    async def ensure_table_ready(
        self,
        dataset_id: str,
        table_id: str,
        table_type: str,
        sample_row: dict[str, Any],
    ) -> None:
        """Make sure the dataset and table exist and the schema fits the row."""
        await self.ensure_dataset_exists(dataset_id)

        table_info = await self.get_table_info(dataset_id, table_id)

        if not table_info.exists:
            await self.create_table(dataset_id, table_id, table_type, sample_row)
        elif table_info.schema is not None:
            await self.update_table_schema(dataset_id, table_id, sample_row, table_info.schema)

    async def insert_with_auto_schema(
        self,
        dataset_id: str,
        table_id: str,
        table_type: str,
        rows: list[dict[str, Any]],
    ) -> None:
        """
        Insert rows, preparing the table first.

        Only the first row drives schema evolution; later rows in the same
        batch with new fields may be rejected by the warehouse.
        """
        if not rows:
            return

        await self.ensure_table_ready(dataset_id, table_id, table_type, rows[0])
        await self.store.insert_rows(dataset_id, table_id, rows)

    # =========================================================================
    # CACHE
    # =========================================================================

    def _get_cached_schema(self, dataset_id: str, table_id: str) -> TableSchema | None:
        key = (dataset_id, table_id)
        entry = self._schema_cache.get(key)
        if entry is None:
            return None

        if self._clock() - entry.last_updated > self.cache_ttl_seconds:
            del self._schema_cache[key]
            return None

        return entry.schema

    def _set_cached_schema(self, dataset_id: str, table_id: str, schema: TableSchema) -> None:
        self._schema_cache[(dataset_id, table_id)] = SchemaCacheEntry(
            schema=schema,
            last_updated=self._clock(),
        )

    def clear_cache(self, dataset_id: str | None = None, table_id: str | None = None) -> None:
        """Evict cached schemas: everything, one dataset, or one table."""
        if dataset_id is None:
            self._schema_cache.clear()
        elif table_id is None:
            for key in [k for k in self._schema_cache if k[0] == dataset_id]:
                del self._schema_cache[key]
        else:
            self._schema_cache.pop((dataset_id, table_id), None)

    def cached_tables(self) -> list[CacheKey]:
        """Keys currently held in the schema cache (including stale ones)."""
        return list(self._schema_cache)
