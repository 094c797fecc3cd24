"""
Utility functions for managing BigQuery schemas and type detection.

Handles:
- Mapping Python values to BigQuery column types
- Generating a schema from a single row
- Merging schemas with directional type relaxation
- Canonical starter schemas per table type (Segment conventions)
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from opentrack.destinations.bigquery.constants import (
    ISO_8601_PATTERN,
    RELAXATION_RULES,
    TYPE_HIERARCHY,
    ColumnType,
    FieldMode,
)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class ColumnSchema:
    """A single BigQuery column definition."""

    name: str
    type: ColumnType
    mode: FieldMode = FieldMode.NULLABLE


@dataclass(frozen=True)
class TableSchema:
    """Ordered set of columns for one table."""

    fields: tuple[ColumnSchema, ...] = ()

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get(self, name: str) -> ColumnSchema | None:
        """Get a column by name, or None."""
        for column in self.fields:
            if column.name == name:
                return column
        return None


@dataclass(frozen=True)
class SchemaMergeResult:
    """Result of merging an incoming schema into an existing one."""

    schema: TableSchema
    has_changes: bool = False
    added_fields: list[str] = field(default_factory=list)
    relaxed_fields: list[str] = field(default_factory=list)


# =============================================================================
# TYPE DETECTION
# =============================================================================


def is_valid_timestamp(value: str) -> bool:
    """Check whether a string is an ISO-8601 timestamp that parses to a real date."""
    if not ISO_8601_PATTERN.match(value):
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def detect_type(value: Any) -> ColumnType:
    """
    Map a Python value to a BigQuery column type.

    None defaults to STRING (it can be relaxed later). Integral numbers are
    INTEGER, other numbers FLOAT. Strings are TIMESTAMP only when they look
    like ISO-8601 and parse. Lists and dicts are stored as JSON text.
    """
    if value is None:
        return ColumnType.STRING

    # bool is a subclass of int
    if isinstance(value, bool):
        return ColumnType.BOOLEAN

    if isinstance(value, int):
        return ColumnType.INTEGER

    if isinstance(value, (float, Decimal)):
        try:
            return ColumnType.INTEGER if value == int(value) else ColumnType.FLOAT
        except (OverflowError, ValueError):
            # inf / nan
            return ColumnType.FLOAT

    if isinstance(value, str):
        return ColumnType.TIMESTAMP if is_valid_timestamp(value) else ColumnType.STRING

    if isinstance(value, (datetime, date)):
        return ColumnType.TIMESTAMP

    return ColumnType.STRING


def generate_schema_from_row(row: dict[str, Any]) -> TableSchema:
    """Generate a schema with one nullable column per row key."""
    return TableSchema(fields=tuple(
        ColumnSchema(name=column_name, type=detect_type(value), mode=FieldMode.NULLABLE)
        for column_name, value in row.items()
    ))


# =============================================================================
# SCHEMA MERGING
# =============================================================================


def needs_type_relaxation(existing: ColumnType, incoming: ColumnType) -> bool:
    """True when (existing -> incoming) is one of the permitted widenings."""
    if existing == incoming:
        return False
    return (existing, incoming) in RELAXATION_RULES


def relax_type(type1: ColumnType, type2: ColumnType) -> ColumnType:
    """Return whichever type sits further along the hierarchy."""
    if type1 == type2:
        return type1
    return type1 if TYPE_HIERARCHY.index(type1) > TYPE_HIERARCHY.index(type2) else type2


def merge_schemas(existing: TableSchema, incoming: TableSchema) -> SchemaMergeResult:
    """
    Merge an incoming schema into an existing one.

    New columns are appended as nullable. Columns present in both are widened
    only when the (existing -> incoming) pair is a permitted relaxation; any
    other type mismatch is left untouched. Modes on existing columns are kept.

    Args:
        existing: Current table schema
        incoming: Schema generated from new data

    Returns:
        SchemaMergeResult with the merged schema and whether anything changed
    """
    merged: list[ColumnSchema] = list(existing.fields)
    positions = {column.name: index for index, column in enumerate(merged)}
    added: list[str] = []
    relaxed: list[str] = []

    for new_column in incoming.fields:
        index = positions.get(new_column.name)

        if index is None:
            positions[new_column.name] = len(merged)
            merged.append(replace(new_column, mode=FieldMode.NULLABLE))
            added.append(new_column.name)
            continue

        current = merged[index]
        if needs_type_relaxation(current.type, new_column.type):
            relaxed_type = relax_type(current.type, new_column.type)
            if relaxed_type != current.type:
                merged[index] = replace(current, type=relaxed_type)
                relaxed.append(new_column.name)

    return SchemaMergeResult(
        schema=TableSchema(fields=tuple(merged)),
        has_changes=bool(added or relaxed),
        added_fields=added,
        relaxed_fields=relaxed,
    )


# =============================================================================
# BASE SCHEMAS
# =============================================================================


def _column(name: str, column_type: ColumnType, mode: FieldMode) -> ColumnSchema:
    return ColumnSchema(name=name, type=column_type, mode=mode)


_S = ColumnType.STRING
_T = ColumnType.TIMESTAMP
_REQ = FieldMode.REQUIRED
_NULL = FieldMode.NULLABLE

COMMON_FIELDS: tuple[ColumnSchema, ...] = (
    _column("id", _S, _REQ),
    _column("received_at", _T, _REQ),
    _column("sent_at", _T, _NULL),
    _column("timestamp", _T, _NULL),
    _column("uuid_ts", _T, _REQ),
    _column("loaded_at", _T, _REQ),
    _column("user_id", _S, _NULL),
    _column("anonymous_id", _S, _NULL),
)

_TRACK_FIELDS = (_column("event", _S, _REQ), _column("event_text", _S, _NULL))
_IDENTIFY_FIELDS = (_column("user_id", _S, _REQ),)
_PAGE_FIELDS = tuple(
    _column(name, _S, _NULL) for name in ("name", "url", "path", "referrer", "search", "title")
)
_GROUP_FIELDS = (_column("group_id", _S, _REQ),)
_ALIAS_FIELDS = (_column("previous_id", _S, _REQ), _column("user_id", _S, _REQ))

# Keyed by call type, plus the plural table names for compatibility
TYPE_SPECIFIC_FIELDS: dict[str, tuple[ColumnSchema, ...]] = {
    "track": _TRACK_FIELDS,
    "identify": _IDENTIFY_FIELDS,
    "page": _PAGE_FIELDS,
    "group": _GROUP_FIELDS,
    "alias": _ALIAS_FIELDS,
    "tracks": _TRACK_FIELDS,
    "identifies": _IDENTIFY_FIELDS,
    "pages": _PAGE_FIELDS,
    "groups": _GROUP_FIELDS,
    "aliases": _ALIAS_FIELDS,
}


def get_base_schema_for_table(table_type: str) -> TableSchema:
    """
    Get the canonical starter schema for a table type.

    Per-event-name tables (any unknown table type) use the track template.
    Type-specific columns override common columns with the same name.
    """
    specific = TYPE_SPECIFIC_FIELDS.get(table_type, _TRACK_FIELDS)

    columns = list(COMMON_FIELDS)
    for specific_column in specific:
        for index, column in enumerate(columns):
            if column.name == specific_column.name:
                columns[index] = specific_column
                break
        else:
            columns.append(specific_column)

    return TableSchema(fields=tuple(columns))
