"""
Tests for opentrack/events/schemas.py

Typed Segment calls: parsing, identity invariants and the wire format.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from opentrack.events.schemas import (
    AliasEvent,
    EventKind,
    GroupEvent,
    IdentifyEvent,
    PageEvent,
    TrackEvent,
    parse_event,
    parse_events,
)
from opentrack.exceptions import ErrorKind, UnknownPayloadTypeError


# =============================================================================
# TESTS: Parsing
# =============================================================================


class TestParseEvent:
    """Tests for parse_event with Segment wire-format payloads."""

    def test_parses_track_with_camel_case_fields(self) -> None:
        """camelCase keys should populate snake_case fields."""
        event = parse_event({
            "type": "track",
            "messageId": "m1",
            "userId": "u1",
            "event": "Signup",
            "properties": {"plan": "pro"},
            "timestamp": "2024-01-15T12:00:00Z",
        })

        assert isinstance(event, TrackEvent)
        assert event.message_id == "m1"
        assert event.user_id == "u1"
        assert event.event == "Signup"
        assert event.timestamp == datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

    def test_dispatches_each_kind(self) -> None:
        """Each type tag should produce its own model."""
        payloads = [
            ({"type": "identify", "userId": "u1"}, IdentifyEvent),
            ({"type": "page", "anonymousId": "a1", "name": "Home"}, PageEvent),
            ({"type": "group", "userId": "u1", "groupId": "g1"}, GroupEvent),
            ({"type": "alias", "userId": "u1", "previousId": "a1"}, AliasEvent),
        ]
        for payload, expected in payloads:
            assert isinstance(parse_event(payload), expected)

    def test_unknown_type_raises(self) -> None:
        """An unknown type tag should fail loudly, never fall through."""
        with pytest.raises(UnknownPayloadTypeError) as exc_info:
            parse_event({"type": "screen", "userId": "u1"})

        assert exc_info.value.payload_type == "screen"
        assert exc_info.value.kind == ErrorKind.UNKNOWN_PAYLOAD_TYPE
        assert exc_info.value.is_retryable is False

    def test_missing_type_raises(self) -> None:
        """A payload without a type tag is an unknown payload."""
        with pytest.raises(UnknownPayloadTypeError):
            parse_event({"userId": "u1"})

    def test_message_id_generated_when_absent(self) -> None:
        """messageId is optional and defaults to a fresh UUID."""
        first = parse_event({"type": "identify", "userId": "u1"})
        second = parse_event({"type": "identify", "userId": "u1"})

        assert first.message_id
        assert first.message_id != second.message_id

    def test_parse_events_keeps_order(self) -> None:
        """Batches should parse in input order."""
        events = parse_events([
            {"type": "track", "userId": "u1", "event": "A"},
            {"type": "identify", "userId": "u1"},
        ])

        assert [e.type for e in events] == [EventKind.TRACK.value, EventKind.IDENTIFY.value]


# =============================================================================
# TESTS: Invariants
# =============================================================================


class TestEventInvariants:
    """Tests for identity and naming invariants."""

    def test_identity_required(self) -> None:
        """Non-alias events need userId or anonymousId."""
        with pytest.raises(ValidationError):
            TrackEvent(event="Signup")

    def test_anonymous_id_is_enough(self) -> None:
        """anonymousId alone satisfies the identity rule."""
        event = IdentifyEvent(anonymous_id="a1")
        assert event.user_id is None

    def test_alias_requires_user_id(self) -> None:
        """Alias needs userId even when anonymousId is present."""
        with pytest.raises(ValidationError):
            AliasEvent(anonymous_id="a1", previous_id="p1")

    def test_alias_requires_previous_id(self) -> None:
        """Alias needs previousId."""
        with pytest.raises(ValidationError):
            parse_event({"type": "alias", "userId": "u1"})

    def test_track_requires_event_name(self) -> None:
        """Track events need a non-empty event name."""
        with pytest.raises(ValidationError):
            TrackEvent(user_id="u1", event="")

    def test_event_name_kept_verbatim(self) -> None:
        """Surrounding whitespace in names and ids is preserved."""
        event = parse_event({"type": "track", "userId": " u1", "event": "  Signup "})

        assert event.event == "  Signup "
        assert event.user_id == " u1"

    def test_events_are_immutable(self) -> None:
        """Events are frozen once created."""
        event = TrackEvent(user_id="u1", event="Signup")
        with pytest.raises(ValidationError):
            event.user_id = "u2"


# =============================================================================
# TESTS: Wire format
# =============================================================================


class TestToWire:
    """Tests for dumping events back to camelCase JSON."""

    def test_camel_case_keys_without_nulls(self) -> None:
        """to_wire should use Segment key names and drop unset values."""
        event = GroupEvent(message_id="m1", user_id="u1", group_id="g1")

        wire = event.to_wire()

        assert wire == {"messageId": "m1", "userId": "u1", "groupId": "g1", "type": "group"}
