"""
Tests for opentrack/destinations/bigquery/row_transformer.py
"""

import pytest

from conftest import EVENT_TIME, FIXED_NOW
from opentrack.destinations.bigquery.constants import ColumnType
from opentrack.destinations.bigquery.row_transformer import transform_to_row
from opentrack.destinations.bigquery.schema_manager import detect_type
from opentrack.events.schemas import IdentifyEvent, TrackEvent
from opentrack.exceptions import UnknownPayloadTypeError


# =============================================================================
# TESTS: Common columns
# =============================================================================


class TestCommonColumns:
    """Columns every row carries."""

    def test_load_columns(self, track_event) -> None:
        """id and the load timestamps come from the event and the load time."""
        row = transform_to_row(track_event, now=FIXED_NOW)

        assert row["id"] == "msg-track-1"
        assert row["received_at"] == FIXED_NOW
        assert row["uuid_ts"] == FIXED_NOW
        assert row["loaded_at"] == FIXED_NOW
        assert row["sent_at"] == EVENT_TIME
        assert row["timestamp"] == EVENT_TIME

    def test_missing_timestamp_uses_now(self) -> None:
        """Without an event timestamp, sent_at and timestamp use the load time."""
        event = IdentifyEvent(message_id="m1", user_id="u1")

        row = transform_to_row(event, now=FIXED_NOW)

        assert row["sent_at"] == FIXED_NOW
        assert row["timestamp"] == FIXED_NOW

    def test_identity_columns(self, track_event) -> None:
        """user_id and anonymous_id are copied when present."""
        row = transform_to_row(track_event, now=FIXED_NOW)

        assert row["user_id"] == "u1"
        assert row["anonymous_id"] == "anon-1"

    def test_absent_identity_omitted(self) -> None:
        """Missing identities produce no column."""
        event = IdentifyEvent(anonymous_id="a1")

        row = transform_to_row(event, now=FIXED_NOW)

        assert "user_id" not in row
        assert row["anonymous_id"] == "a1"

    def test_context_flattened(self, track_event) -> None:
        """Context is flattened under the context_ prefix."""
        row = transform_to_row(track_event, now=FIXED_NOW)

        assert row["context_ip"] == "127.0.0.1"
        assert row["context_library_name"] == "analytics.js"
        assert row["context_library_version"] == "2.0"


# =============================================================================
# TESTS: Kind-specific columns
# =============================================================================


class TestKindSpecificColumns:
    """Per-call column rules."""

    def test_track_product_purchased(self) -> None:
        """A purchase event maps to snake_case name, original text and typed properties."""
        event = TrackEvent(
            user_id="u1",
            event="Product Purchased",
            properties={"price": 99.99, "currency": "USD"},
        )

        row = transform_to_row(event, now=FIXED_NOW)

        assert row["event"] == "product_purchased"
        assert row["event_text"] == "Product Purchased"
        assert row["price"] == 99.99
        assert detect_type(row["price"]) == ColumnType.FLOAT
        assert row["currency"] == "USD"
        assert detect_type(row["currency"]) == ColumnType.STRING

    def test_event_text_is_original_name(self) -> None:
        """event_text carries the name exactly as sent."""
        row = transform_to_row(TrackEvent(user_id="u1", event="  Signup "), now=FIXED_NOW)

        assert row["event_text"] == "  Signup "

    def test_identify_traits_flattened(self, identify_event) -> None:
        """Identify traits land at the top level in snake_case."""
        row = transform_to_row(identify_event, now=FIXED_NOW)

        assert row["email"] == "jane@example.com"
        assert row["first_name"] == "Jane"
        assert row["plan"] == "pro"

    def test_page_name_and_properties(self, page_event) -> None:
        """Page rows carry the page name and flattened properties."""
        row = transform_to_row(page_event, now=FIXED_NOW)

        assert row["name"] == "Pricing"
        assert row["url"] == "https://example.com/pricing"
        assert row["path"] == "/pricing"

    def test_group_id_and_traits(self, group_event) -> None:
        """Group rows carry group_id and flattened traits."""
        row = transform_to_row(group_event, now=FIXED_NOW)

        assert row["group_id"] == "acme"
        assert row["employees"] == 120

    def test_alias_previous_id_without_anonymous_id(self, alias_event) -> None:
        """Alias rows carry previous_id but never anonymous_id."""
        row = transform_to_row(alias_event, now=FIXED_NOW)

        assert row["previous_id"] == "anon-1"
        assert row["user_id"] == "u1"
        assert "anonymous_id" not in row

    def test_unknown_kind_raises(self, unknown_event) -> None:
        """Unknown call types are fatal."""
        with pytest.raises(UnknownPayloadTypeError):
            transform_to_row(unknown_event, now=FIXED_NOW)
