"""
Module: transformer

Purpose: Map Segment events onto Customer.io Track API requests.

Customer.io identifies people by id and stores timestamps as unix seconds.
Attribute and event-data values must be JSON-safe, so every outgoing mapping
goes through ``sanitize_properties``.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from opentrack.events.schemas import AliasEvent, GroupEvent, IdentifyEvent, PageEvent, TrackEvent
from opentrack.exceptions import PayloadValidationError

DESTINATION = "Customer.io"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PAGE_VIEWED_EVENT = "page_viewed"
DEFAULT_PAGE_TITLE = "Page Viewed"
GROUP_JOINED_EVENT = "Group Joined"


@dataclass(frozen=True)
class CustomerUpdate:
    """Attributes to upsert on a person."""

    id: str
    traits: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CustomerEvent:
    """A named event for a person, or an anonymous event when ``id`` is None."""

    name: str
    data: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass(frozen=True)
class GroupMembership:
    id: str
    group_id: str
    traits: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CustomerMerge:
    """Merge ``secondary_id`` into ``primary_id``; both are id identifiers."""

    primary_id: str
    secondary_id: str
    primary_type: str = "id"
    secondary_type: str = "id"


def _invalid(message: str) -> PayloadValidationError:
    return PayloadValidationError(message, destination=DESTINATION)


# =============================================================================
# VALUE HELPERS
# =============================================================================


def to_unix_seconds(value: datetime | int | float | str) -> int:
    """
    Convert a timestamp to unix seconds.

    Numbers above 1e10 are treated as milliseconds. Naive datetimes are UTC.
    """
    if isinstance(value, bool):
        raise _invalid("Invalid timestamp format")
    if isinstance(value, (int, float)):
        return int(value // 1000) if value > 10_000_000_000 else int(value)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise _invalid(f"Invalid timestamp format: {value}") from e
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    raise _invalid("Invalid timestamp format")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def _sanitize_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return sanitize_properties(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(item) for item in value]
    return str(value)


def sanitize_properties(properties: dict[str, Any]) -> dict[str, Any]:
    """Return a JSON-safe copy: dates become ISO strings, unknown objects become str."""
    return {str(key): _sanitize_value(value) for key, value in properties.items()}


# =============================================================================
# EVENT MAPPING
# =============================================================================


def transform_identify(event: IdentifyEvent) -> CustomerUpdate:
    """
    Build the person update for an identify call.

    Raises:
        PayloadValidationError: If the user id is missing or the email is malformed
    """
    if not event.user_id:
        raise _invalid("User ID is required for identify calls")

    traits = dict(event.traits or {})
    if event.timestamp is not None:
        traits["created_at"] = to_unix_seconds(event.timestamp)

    email = traits.get("email")
    if isinstance(email, str) and email and not is_valid_email(email):
        raise _invalid(f"Invalid email format: {email}")

    return CustomerUpdate(id=event.user_id, traits=sanitize_properties(traits))


def transform_track(event: TrackEvent) -> CustomerEvent:
    if not event.event:
        raise _invalid("Event name is required for track calls")

    data = dict(event.properties or {})
    if event.timestamp is not None:
        data["timestamp"] = to_unix_seconds(event.timestamp)

    return CustomerEvent(name=event.event, data=sanitize_properties(data), id=event.user_id or None)


def transform_page(event: PageEvent) -> CustomerEvent:
    """Page views become a ``page_viewed`` event titled after the page name."""
    data = dict(event.properties or {})
    data["page_title"] = event.name or DEFAULT_PAGE_TITLE
    if event.name:
        data["page_name"] = event.name
    if event.timestamp is not None:
        data["timestamp"] = to_unix_seconds(event.timestamp)

    return CustomerEvent(name=PAGE_VIEWED_EVENT, data=sanitize_properties(data), id=event.user_id or None)


def transform_group(event: GroupEvent) -> GroupMembership:
    if not event.user_id:
        raise _invalid("User ID is required for group calls")
    if not event.group_id:
        raise _invalid("Group ID is required for group calls")

    traits = dict(event.traits or {})
    if event.timestamp is not None:
        traits["created_at"] = to_unix_seconds(event.timestamp)

    return GroupMembership(id=event.user_id, group_id=event.group_id, traits=sanitize_properties(traits))


def group_attributes(membership: GroupMembership, joined_at: int) -> dict[str, Any]:
    """
    Person attributes recording a group membership.

    Customer.io has no group object, so membership is stored on the person as
    ``group_<id>``, ``group_<id>_joined_at`` and ``group_<trait>`` attributes.
    """
    attributes: dict[str, Any] = {
        f"group_{membership.group_id}": True,
        f"group_{membership.group_id}_joined_at": joined_at,
    }
    for key, value in membership.traits.items():
        attributes[f"group_{key}"] = value
    return attributes


def group_joined_event(membership: GroupMembership) -> CustomerEvent:
    return CustomerEvent(
        name=GROUP_JOINED_EVENT,
        data={"group_id": membership.group_id, **membership.traits},
        id=membership.id,
    )


def transform_alias(event: AliasEvent) -> CustomerMerge:
    if not event.user_id:
        raise _invalid("User ID is required for alias calls")
    if not event.previous_id:
        raise _invalid("Previous ID is required for alias calls")

    return CustomerMerge(primary_id=event.user_id, secondary_id=event.previous_id)
