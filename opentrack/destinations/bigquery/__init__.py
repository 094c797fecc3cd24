"""
BigQuery destination.

Row transformation, schema inference and table synchronization for streaming
Segment events into a BigQuery dataset.
"""

from opentrack.destinations.bigquery.case_converter import event_name_to_table_name, to_snake_case
from opentrack.destinations.bigquery.config import BigQueryConfig
from opentrack.destinations.bigquery.constants import ColumnType, FieldMode
from opentrack.destinations.bigquery.destination import BigQueryDestination
from opentrack.destinations.bigquery.errors import BigQueryErrorClassifier
from opentrack.destinations.bigquery.object_flattener import flatten_object
from opentrack.destinations.bigquery.row_transformer import transform_to_row
from opentrack.destinations.bigquery.schema_manager import (
    ColumnSchema,
    SchemaMergeResult,
    TableSchema,
    detect_type,
    generate_schema_from_row,
    get_base_schema_for_table,
    merge_schemas,
)
from opentrack.destinations.bigquery.store import BigQueryStore, WarehouseStore
from opentrack.destinations.bigquery.table_manager import SchemaSynchronizer, TableInfo
from opentrack.destinations.bigquery.table_mapper import get_table_name, get_table_names

__all__ = [
    # Destination
    "BigQueryConfig",
    "BigQueryDestination",
    "BigQueryErrorClassifier",
    # Row building
    "event_name_to_table_name",
    "flatten_object",
    "get_table_name",
    "get_table_names",
    "to_snake_case",
    "transform_to_row",
    # Schema
    "ColumnSchema",
    "ColumnType",
    "FieldMode",
    "SchemaMergeResult",
    "TableSchema",
    "detect_type",
    "generate_schema_from_row",
    "get_base_schema_for_table",
    "merge_schemas",
    # Tables
    "BigQueryStore",
    "SchemaSynchronizer",
    "TableInfo",
    "WarehouseStore",
]
