"""
Module: transformer

Purpose: Build the JSON body posted to webhook endpoints.

Every call is normalized to one envelope: event identity, a ``data`` section
with the kind-specific fields, and ``integrations.webhook`` delivery metadata.
"""

import json
from datetime import datetime, timezone
from typing import Any

from opentrack.events.schemas import (
    AliasEvent,
    BaseEvent,
    GroupEvent,
    IdentifyEvent,
    PageEvent,
    TrackEvent,
)
from opentrack.exceptions import UnknownPayloadTypeError

WEBHOOK_VERSION = "1.0.0"


def _iso_now(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def event_data(event: BaseEvent) -> dict[str, Any]:
    """Kind-specific ``data`` section, with camelCase keys as on the wire."""
    if isinstance(event, TrackEvent):
        return {"event": event.event, "properties": event.properties or {}}
    if isinstance(event, IdentifyEvent):
        return {"traits": event.traits or {}}
    if isinstance(event, PageEvent):
        return {"name": event.name, "properties": event.properties or {}}
    if isinstance(event, GroupEvent):
        return {"groupId": event.group_id, "traits": event.traits or {}}
    if isinstance(event, AliasEvent):
        return {"previousId": event.previous_id, "userId": event.user_id}
    raise UnknownPayloadTypeError(
        f"Unknown payload type: {getattr(event, 'type', None)}",
        payload_type=getattr(event, "type", None),
    )


def build_webhook_payload(
    event: BaseEvent,
    *,
    include_payload: bool = True,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Build the webhook envelope for an event.

    Args:
        event: The event to send
        include_payload: Add the original event under ``originalPayload``
        now: Send time override

    Returns:
        JSON-safe dict
    """
    sent_at = _iso_now(now)
    wire = event.to_wire()

    payload: dict[str, Any] = {
        "type": wire["type"],
        "messageId": event.message_id or "",
        "timestamp": wire.get("timestamp") or sent_at,
        "data": event_data(event),
    }
    if event.user_id:
        payload["userId"] = event.user_id
    if event.anonymous_id:
        payload["anonymousId"] = event.anonymous_id
    if event.context:
        payload["context"] = event.context
    if include_payload:
        payload["originalPayload"] = wire

    payload["integrations"] = {"webhook": {"sentAt": sent_at, "version": WEBHOOK_VERSION}}

    # Values json cannot encode natively are sent as strings
    return json.loads(json.dumps(payload, default=str))


def build_test_payload(now: datetime | None = None) -> dict[str, Any]:
    sent_at = _iso_now(now)
    return {
        "type": "test",
        "messageId": "test-message-id",
        "timestamp": sent_at,
        "data": {"message": "OpenTrack webhook connection test"},
        "integrations": {"webhook": {"sentAt": sent_at, "version": WEBHOOK_VERSION}},
    }


def to_query_params(payload: dict[str, Any]) -> dict[str, str]:
    """Flatten a payload for GET requests; nested values are JSON-encoded."""
    params: dict[str, str] = {}
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            params[key] = json.dumps(value, separators=(",", ":"))
        elif isinstance(value, bool):
            params[key] = "true" if value else "false"
        else:
            params[key] = str(value)
    return params
