"""
Warehouse store contract and its BigQuery implementation.

The table manager talks to the warehouse only through ``WarehouseStore`` so the
schema engine can be exercised against an in-memory store. ``BigQueryStore``
wraps the blocking google-cloud-bigquery client and runs each call in a worker
thread, keeping every remote call a suspension point for the event loop.
"""

import asyncio
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol, TYPE_CHECKING

from google.api_core.exceptions import Conflict, NotFound

# Lazy import for BigQuery - only needed when actually talking to the warehouse
if TYPE_CHECKING:
    from google.cloud import bigquery

from opentrack.destinations.bigquery.constants import TYPE_ALIASES, ColumnType, FieldMode
from opentrack.destinations.bigquery.object_flattener import to_json_text
from opentrack.destinations.bigquery.schema_manager import ColumnSchema, TableSchema
from opentrack.exceptions import SchemaConflictError, WarehouseInsertError

logger = logging.getLogger(__name__)


class WarehouseStore(Protocol):
    """Remote operations the schema synchronizer depends on."""

    async def dataset_exists(self, dataset_id: str) -> bool: ...

    async def create_dataset(
        self,
        dataset_id: str,
        *,
        location: str,
        description: str,
        labels: dict[str, str],
    ) -> None:
        """Create a dataset. May raise SchemaConflictError if it already exists."""
        ...

    async def table_exists(self, dataset_id: str, table_id: str) -> bool: ...

    async def get_table_schema(self, dataset_id: str, table_id: str) -> TableSchema: ...

    async def create_table(
        self,
        dataset_id: str,
        table_id: str,
        schema: TableSchema,
        *,
        description: str,
        labels: dict[str, str],
    ) -> None:
        """Create a table. Raises SchemaConflictError if it already exists."""
        ...

    async def set_table_schema(self, dataset_id: str, table_id: str, schema: TableSchema) -> None: ...

    async def insert_rows(self, dataset_id: str, table_id: str, rows: list[dict[str, Any]]) -> None: ...


# =============================================================================
# VALUE CONVERSION
# =============================================================================


def to_json_value(value: Any) -> Any:
    """Convert a row value into something the streaming insert API accepts."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (dict, list, tuple)):
        return to_json_text(value)
    return value


def to_json_row(row: dict[str, Any]) -> dict[str, Any]:
    return {key: to_json_value(value) for key, value in row.items()}


def column_from_field(schema_field: Any) -> ColumnSchema:
    """Convert a ``bigquery.SchemaField`` into a ColumnSchema."""
    field_type = str(schema_field.field_type).upper()
    column_type = TYPE_ALIASES.get(field_type)
    if column_type is None:
        logger.warning(
            f"Column {schema_field.name} has unsupported type {field_type}; treating as STRING"
        )
        column_type = ColumnType.STRING
    mode = FieldMode(str(schema_field.mode or FieldMode.NULLABLE.value).upper())
    return ColumnSchema(name=schema_field.name, type=column_type, mode=mode)


# =============================================================================
# BIGQUERY STORE
# =============================================================================


class BigQueryStore:
    """
    WarehouseStore backed by google-cloud-bigquery.

    Usage:
        store = BigQueryStore(project_id="my-project")
        await store.insert_rows("analytics", "tracks", rows)
    """

    def __init__(
        self,
        project_id: str,
        *,
        credentials: Any = None,
        client: Any = None,
    ):
        """
        Initialize the store.

        Args:
            project_id: GCP project owning the datasets
            credentials: Optional google-auth credentials (defaults to ADC)
            client: Pre-built bigquery.Client, mainly for tests
        """
        self.project_id = project_id
        self._credentials = credentials
        self._client: Any = client
        self._bigquery_module: Any = None

    def _get_bigquery(self) -> Any:
        """Lazy import of BigQuery module."""
        if self._bigquery_module is None:
            try:
                from google.cloud import bigquery
                self._bigquery_module = bigquery
            except ImportError:
                raise ImportError(
                    "google-cloud-bigquery is required for the BigQuery destination. "
                    "Install it with: pip install google-cloud-bigquery"
                )
        return self._bigquery_module

    @property
    def client(self) -> Any:
        """Get or create BigQuery client."""
        if self._client is None:
            bigquery = self._get_bigquery()
            self._client = bigquery.Client(project=self.project_id, credentials=self._credentials)
        return self._client

    def _table_ref(self, dataset_id: str, table_id: str) -> str:
        return f"{self.project_id}.{dataset_id}.{table_id}"

    def _schema_fields(self, schema: TableSchema) -> list[Any]:
        bigquery = self._get_bigquery()
        return [
            bigquery.SchemaField(column.name, column.type.value, mode=column.mode.value)
            for column in schema.fields
        ]

    # -------------------------------------------------------------------------
    # Datasets
    # -------------------------------------------------------------------------

    async def dataset_exists(self, dataset_id: str) -> bool:
        return await asyncio.to_thread(self._dataset_exists, dataset_id)

    def _dataset_exists(self, dataset_id: str) -> bool:
        try:
            self.client.get_dataset(f"{self.project_id}.{dataset_id}")
        except NotFound:
            return False
        return True

    async def create_dataset(
        self,
        dataset_id: str,
        *,
        location: str,
        description: str,
        labels: dict[str, str],
    ) -> None:
        await asyncio.to_thread(self._create_dataset, dataset_id, location, description, labels)

    def _create_dataset(
        self,
        dataset_id: str,
        location: str,
        description: str,
        labels: dict[str, str],
    ) -> None:
        bigquery = self._get_bigquery()
        dataset = bigquery.Dataset(f"{self.project_id}.{dataset_id}")
        dataset.location = location
        dataset.description = description
        dataset.labels = dict(labels)
        # Another insert for the same event may create it first
        self.client.create_dataset(dataset, exists_ok=True)

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    async def table_exists(self, dataset_id: str, table_id: str) -> bool:
        return await asyncio.to_thread(self._table_exists, dataset_id, table_id)

    def _table_exists(self, dataset_id: str, table_id: str) -> bool:
        try:
            self.client.get_table(self._table_ref(dataset_id, table_id))
        except NotFound:
            return False
        return True

    async def get_table_schema(self, dataset_id: str, table_id: str) -> TableSchema:
        return await asyncio.to_thread(self._get_table_schema, dataset_id, table_id)

    def _get_table_schema(self, dataset_id: str, table_id: str) -> TableSchema:
        table = self.client.get_table(self._table_ref(dataset_id, table_id))
        return TableSchema(fields=tuple(column_from_field(f) for f in table.schema))

    async def create_table(
        self,
        dataset_id: str,
        table_id: str,
        schema: TableSchema,
        *,
        description: str,
        labels: dict[str, str],
    ) -> None:
        await asyncio.to_thread(self._create_table, dataset_id, table_id, schema, description, labels)

    def _create_table(
        self,
        dataset_id: str,
        table_id: str,
        schema: TableSchema,
        description: str,
        labels: dict[str, str],
    ) -> None:
        bigquery = self._get_bigquery()
        table = bigquery.Table(self._table_ref(dataset_id, table_id), schema=self._schema_fields(schema))
        table.description = description
        table.labels = dict(labels)
        try:
            self.client.create_table(table)
        except Conflict as e:
            raise SchemaConflictError(
                f"Table already exists: {dataset_id}.{table_id}",
                dataset_id=dataset_id,
                table_id=table_id,
            ) from e

    async def set_table_schema(self, dataset_id: str, table_id: str, schema: TableSchema) -> None:
        await asyncio.to_thread(self._set_table_schema, dataset_id, table_id, schema)

    def _set_table_schema(self, dataset_id: str, table_id: str, schema: TableSchema) -> None:
        table = self.client.get_table(self._table_ref(dataset_id, table_id))
        table.schema = self._schema_fields(schema)
        self.client.update_table(table, ["schema"])

    async def insert_rows(self, dataset_id: str, table_id: str, rows: list[dict[str, Any]]) -> None:
        await asyncio.to_thread(self._insert_rows, dataset_id, table_id, rows)

    def _insert_rows(self, dataset_id: str, table_id: str, rows: list[dict[str, Any]]) -> None:
        errors = self.client.insert_rows_json(
            self._table_ref(dataset_id, table_id),
            [to_json_row(row) for row in rows],
        )
        if errors:
            raise WarehouseInsertError(
                f"BigQuery rejected {len(errors)} row(s) for {dataset_id}.{table_id}",
                row_errors=list(errors),
                destination="BigQuery",
            )
