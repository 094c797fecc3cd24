"""
Events module.

Typed Segment calls (track, identify, page, group, alias) consumed by the
delivery core.
"""

from opentrack.events.schemas import (
    AliasEvent,
    BaseEvent,
    Event,
    EventKind,
    GroupEvent,
    IdentifyEvent,
    PageEvent,
    TrackEvent,
    parse_event,
    parse_events,
)

__all__ = [
    "AliasEvent",
    "BaseEvent",
    "Event",
    "EventKind",
    "GroupEvent",
    "IdentifyEvent",
    "PageEvent",
    "TrackEvent",
    "parse_event",
    "parse_events",
]
