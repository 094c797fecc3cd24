"""
Module: schemas

Purpose: Pydantic models for the Segment-style events accepted by the delivery core.

Events arrive already validated by the HTTP layer. The models here give them an
explicit tagged shape (discriminated on ``type``) and re-check the identity
invariants every destination relies on.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel

from opentrack.exceptions import UnknownPayloadTypeError


# =============================================================================
# ENUMS
# =============================================================================


class EventKind(str, Enum):
    """Segment call types."""

    TRACK = "track"
    IDENTIFY = "identify"
    PAGE = "page"
    GROUP = "group"
    ALIAS = "alias"


# =============================================================================
# BASE MODELS
# =============================================================================


class BaseEvent(BaseModel):
    """Fields shared by every Segment call."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime | None = None
    user_id: str | None = None
    anonymous_id: str | None = None
    context: dict[str, Any] | None = None
    integrations: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _require_identity(self) -> "BaseEvent":
        if not self.user_id and not self.anonymous_id:
            raise ValueError("Either userId or anonymousId must be provided.")
        return self

    def to_wire(self) -> dict[str, Any]:
        """Dump the event back into Segment's camelCase JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# EVENT KINDS
# =============================================================================


class TrackEvent(BaseEvent):
    """A user action, e.g. ``Product Purchased``."""

    type: Literal["track"] = "track"
    event: str
    properties: dict[str, Any] | None = None

    @field_validator("event")
    @classmethod
    def _event_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Track events require a non-empty event name")
        return v


class IdentifyEvent(BaseEvent):
    """Ties a user to their traits."""

    type: Literal["identify"] = "identify"
    traits: dict[str, Any] | None = None


class PageEvent(BaseEvent):
    """A page view."""

    type: Literal["page"] = "page"
    name: str | None = None
    properties: dict[str, Any] | None = None


class GroupEvent(BaseEvent):
    """Associates a user with a group (account, organization)."""

    type: Literal["group"] = "group"
    group_id: str
    traits: dict[str, Any] | None = None


class AliasEvent(BaseEvent):
    """Merges a previous identity into ``user_id``."""

    type: Literal["alias"] = "alias"
    previous_id: str

    @model_validator(mode="after")
    def _require_identity(self) -> "AliasEvent":
        if not self.user_id or not self.previous_id:
            raise ValueError("Alias events require both userId and previousId.")
        return self


Event = Annotated[
    Union[TrackEvent, IdentifyEvent, PageEvent, GroupEvent, AliasEvent],
    Field(discriminator="type"),
]

EVENT_CLASSES: dict[str, type[BaseEvent]] = {
    EventKind.TRACK.value: TrackEvent,
    EventKind.IDENTIFY.value: IdentifyEvent,
    EventKind.PAGE.value: PageEvent,
    EventKind.GROUP.value: GroupEvent,
    EventKind.ALIAS.value: AliasEvent,
}

_event_adapter: TypeAdapter[Any] = TypeAdapter(Event)


def parse_event(data: dict[str, Any]) -> BaseEvent:
    """
    Build a typed event from Segment wire-format data.

    Args:
        data: Event payload in Segment's camelCase shape

    Returns:
        The matching event model

    Raises:
        UnknownPayloadTypeError: If ``type`` names no known call
        pydantic.ValidationError: If the payload breaks an event invariant
    """
    payload_type = data.get("type")
    if payload_type not in EVENT_CLASSES:
        raise UnknownPayloadTypeError(
            f"Unknown payload type: {payload_type}",
            payload_type=payload_type,
        )
    return _event_adapter.validate_python(data)


def parse_events(items: list[dict[str, Any]]) -> list[BaseEvent]:
    """Parse a batch of wire-format events, failing on the first bad one."""
    return [parse_event(item) for item in items]
