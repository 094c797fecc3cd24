"""
Utility functions for flattening nested objects according to Segment BigQuery conventions.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from opentrack.destinations.bigquery.case_converter import to_snake_case


def _json_default(value: Any) -> Any:
    """Serialize values json doesn't know, matching JSON.stringify output."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return str(value)


def to_json_text(value: Any) -> str:
    """Compact JSON encoding used for array (and object) column values."""
    return json.dumps(value, default=_json_default, separators=(",", ":"))


def flatten_object(obj: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """
    Flatten a nested object into a flat object with snake_case keys.

    Nested dicts are walked recursively and their path segments joined with
    ``_``. Lists are never walked: they are stored as JSON text. Datetimes,
    ``None`` and other scalars pass through unchanged.

    Args:
        obj: Object to flatten
        prefix: Optional prefix for every key (e.g. ``"context"``)

    Returns:
        Flat dict with snake_case keys

    Example:
        >>> flatten_object({"user": {"firstName": "John"}})
        {'user_first_name': 'John'}
    """
    flattened: dict[str, Any] = {}

    for key, value in obj.items():
        new_key = f"{prefix}_{to_snake_case(key)}" if prefix else to_snake_case(key)

        if isinstance(value, dict):
            flattened.update(flatten_object(value, new_key))
        elif isinstance(value, (list, tuple)):
            flattened[new_key] = to_json_text(list(value))
        else:
            flattened[new_key] = value

    return flattened
