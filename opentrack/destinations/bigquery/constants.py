"""
Constants used throughout the BigQuery destination.
"""

import re
from enum import Enum


class ColumnType(str, Enum):
    """BigQuery column types produced by schema inference."""

    BOOLEAN = "BOOLEAN"
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    TIMESTAMP = "TIMESTAMP"
    STRING = "STRING"


class FieldMode(str, Enum):
    """BigQuery column modes."""

    REQUIRED = "REQUIRED"
    NULLABLE = "NULLABLE"
    REPEATED = "REPEATED"


class TableType(str, Enum):
    """Shared tables, one per Segment call type."""

    TRACKS = "tracks"
    IDENTIFIES = "identifies"
    PAGES = "pages"
    GROUPS = "groups"
    ALIASES = "aliases"


# Most restrictive to most permissive
TYPE_HIERARCHY: tuple[ColumnType, ...] = (
    ColumnType.BOOLEAN,
    ColumnType.INTEGER,
    ColumnType.FLOAT,
    ColumnType.TIMESTAMP,
    ColumnType.STRING,
)

# Permitted (existing -> incoming) widenings. Pairs not listed are left alone.
RELAXATION_RULES: frozenset[tuple[ColumnType, ColumnType]] = frozenset({
    (ColumnType.INTEGER, ColumnType.FLOAT),
    (ColumnType.INTEGER, ColumnType.STRING),
    (ColumnType.FLOAT, ColumnType.STRING),
    (ColumnType.BOOLEAN, ColumnType.STRING),
    (ColumnType.TIMESTAMP, ColumnType.STRING),
})

# BigQuery reports standard SQL names for some legacy types
TYPE_ALIASES: dict[str, ColumnType] = {
    "BOOL": ColumnType.BOOLEAN,
    "BOOLEAN": ColumnType.BOOLEAN,
    "INT64": ColumnType.INTEGER,
    "INTEGER": ColumnType.INTEGER,
    "FLOAT64": ColumnType.FLOAT,
    "FLOAT": ColumnType.FLOAT,
    "TIMESTAMP": ColumnType.TIMESTAMP,
    "STRING": ColumnType.STRING,
}

ISO_8601_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{3})?Z?$")

SCHEMA_CACHE_TTL_SECONDS = 5 * 60

DATASET_LOCATION = "US"
DATASET_LABELS: dict[str, str] = {
    "created_by": "opentrack",
    "source": "segment_integration",
}
