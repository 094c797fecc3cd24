"""
Utility functions for transforming Segment events into BigQuery rows.

Column naming follows Segment's warehouse conventions: common load columns,
identity columns, ``context_*`` columns, then call-specific columns with
properties/traits flattened to the top level.
"""

from datetime import datetime, timezone
from typing import Any

from opentrack.destinations.bigquery.case_converter import event_name_to_table_name
from opentrack.destinations.bigquery.object_flattener import flatten_object
from opentrack.events.schemas import (
    AliasEvent,
    BaseEvent,
    GroupEvent,
    IdentifyEvent,
    PageEvent,
    TrackEvent,
)
from opentrack.exceptions import UnknownPayloadTypeError

_ROW_EVENT_TYPES = (TrackEvent, IdentifyEvent, PageEvent, GroupEvent, AliasEvent)


def transform_to_row(event: BaseEvent, now: datetime | None = None) -> dict[str, Any]:
    """
    Transform a Segment event into a BigQuery row.

    Args:
        event: Event to transform
        now: Load time to stamp on the row (defaults to current UTC time)

    Returns:
        Flat row keyed by snake_case column name

    Raises:
        UnknownPayloadTypeError: If the event is not one of the five call types
    """
    if not isinstance(event, _ROW_EVENT_TYPES):
        raise UnknownPayloadTypeError(
            f"Unknown payload type: {getattr(event, 'type', None)}",
            payload_type=getattr(event, "type", None),
        )

    now = now or datetime.now(timezone.utc)
    event_time = event.timestamp or now

    row: dict[str, Any] = {
        "id": event.message_id,
        "received_at": now,
        "sent_at": event_time,
        "timestamp": event_time,
        "uuid_ts": now,
        "loaded_at": now,
    }

    # Identity columns
    if event.user_id:
        row["user_id"] = event.user_id
    if not isinstance(event, AliasEvent) and event.anonymous_id:
        row["anonymous_id"] = event.anonymous_id

    if event.context:
        row.update(flatten_object(event.context, "context"))

    if isinstance(event, TrackEvent):
        row["event"] = event_name_to_table_name(event.event)
        row["event_text"] = event.event
        if event.properties:
            row.update(flatten_object(event.properties))

    elif isinstance(event, IdentifyEvent):
        if event.traits:
            row.update(flatten_object(event.traits))

    elif isinstance(event, PageEvent):
        if event.name:
            row["name"] = event.name
        if event.properties:
            row.update(flatten_object(event.properties))

    elif isinstance(event, GroupEvent):
        row["group_id"] = event.group_id
        if event.traits:
            row.update(flatten_object(event.traits))

    else:
        row["previous_id"] = event.previous_id

    return row
