"""
Utility functions for mapping Segment events to BigQuery table names.
"""

from opentrack.destinations.bigquery.case_converter import event_name_to_table_name
from opentrack.destinations.bigquery.constants import TableType
from opentrack.events.schemas import (
    AliasEvent,
    BaseEvent,
    GroupEvent,
    IdentifyEvent,
    PageEvent,
    TrackEvent,
)
from opentrack.exceptions import UnknownPayloadTypeError


def get_table_name(event: BaseEvent) -> str:
    """
    Determine the primary BigQuery table for an event.

    Track events go to a per-event-name table; other calls go to their
    pluralized shared table.
    """
    if isinstance(event, TrackEvent):
        return event_name_to_table_name(event.event)
    if isinstance(event, IdentifyEvent):
        return TableType.IDENTIFIES.value
    if isinstance(event, PageEvent):
        return TableType.PAGES.value
    if isinstance(event, GroupEvent):
        return TableType.GROUPS.value
    if isinstance(event, AliasEvent):
        return TableType.ALIASES.value
    raise UnknownPayloadTypeError(
        f"Unknown payload type: {getattr(event, 'type', None)}",
        payload_type=getattr(event, "type", None),
    )


def get_table_names(event: BaseEvent) -> list[str]:
    """
    Get every table that should receive a row for this event.

    Track events are written twice: to their event-specific table and to the
    shared ``tracks`` table.
    """
    tables = [get_table_name(event)]

    if isinstance(event, TrackEvent):
        tables.append(TableType.TRACKS.value)

    return tables
