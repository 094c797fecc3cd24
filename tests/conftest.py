"""
Shared fixtures for the delivery core tests.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

import pytest

from opentrack.destinations.bigquery.schema_manager import TableSchema
from opentrack.events.schemas import (
    AliasEvent,
    BaseEvent,
    GroupEvent,
    IdentifyEvent,
    PageEvent,
    TrackEvent,
)
from opentrack.exceptions import SchemaConflictError

FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
EVENT_TIME = datetime(2024, 1, 15, 11, 59, 30, tzinfo=timezone.utc)


class ScreenEvent(BaseEvent):
    """A call type none of the destinations understand."""

    type: str = "screen"


class FakeWarehouseStore:
    """
    In-memory WarehouseStore that records every remote call.

    Creating a dataset or table that already exists raises SchemaConflictError,
    and existence checks yield so concurrent writers can interleave.
    ``concurrent_schema`` simulates another writer creating the table between
    our existence check and our create call.
    """

    def __init__(self) -> None:
        self.datasets: set[str] = set()
        self.tables: dict[tuple[str, str], TableSchema] = {}
        self.rows: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, ...]] = []
        self.concurrent_schema: TableSchema | None = None
        self.create_table_error: Exception | None = None
        self.insert_errors: list[Exception] = []

    async def dataset_exists(self, dataset_id: str) -> bool:
        self.calls.append(("dataset_exists", dataset_id))
        exists = dataset_id in self.datasets
        await asyncio.sleep(0)
        return exists

    async def create_dataset(
        self,
        dataset_id: str,
        *,
        location: str,
        description: str,
        labels: dict[str, str],
    ) -> None:
        self.calls.append(("create_dataset", dataset_id))
        if dataset_id in self.datasets:
            raise SchemaConflictError(f"Dataset already exists: {dataset_id}", dataset_id=dataset_id)
        self.datasets.add(dataset_id)

    async def table_exists(self, dataset_id: str, table_id: str) -> bool:
        self.calls.append(("table_exists", dataset_id, table_id))
        exists = (dataset_id, table_id) in self.tables
        # Yield like a real round trip so concurrent writers can interleave
        await asyncio.sleep(0)
        return exists

    async def get_table_schema(self, dataset_id: str, table_id: str) -> TableSchema:
        self.calls.append(("get_table_schema", dataset_id, table_id))
        return self.tables[(dataset_id, table_id)]

    async def create_table(
        self,
        dataset_id: str,
        table_id: str,
        schema: TableSchema,
        *,
        description: str,
        labels: dict[str, str],
    ) -> None:
        self.calls.append(("create_table", dataset_id, table_id))
        key = (dataset_id, table_id)
        if self.create_table_error is not None:
            raise self.create_table_error
        if self.concurrent_schema is not None:
            self.tables[key] = self.concurrent_schema
        if key in self.tables:
            raise SchemaConflictError(
                f"Table already exists: {dataset_id}.{table_id}",
                dataset_id=dataset_id,
                table_id=table_id,
            )
        self.tables[key] = schema

    async def set_table_schema(self, dataset_id: str, table_id: str, schema: TableSchema) -> None:
        self.calls.append(("set_table_schema", dataset_id, table_id))
        self.tables[(dataset_id, table_id)] = schema

    async def insert_rows(self, dataset_id: str, table_id: str, rows: list[dict[str, Any]]) -> None:
        self.calls.append(("insert_rows", dataset_id, table_id))
        if self.insert_errors:
            raise self.insert_errors.pop(0)
        self.rows.setdefault((dataset_id, table_id), []).extend(rows)

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def store() -> FakeWarehouseStore:
    return FakeWarehouseStore()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def track_event() -> TrackEvent:
    return TrackEvent(
        message_id="msg-track-1",
        timestamp=EVENT_TIME,
        user_id="u1",
        anonymous_id="anon-1",
        event="Product Purchased",
        properties={"price": 99.99, "currency": "USD"},
        context={"ip": "127.0.0.1", "library": {"name": "analytics.js", "version": "2.0"}},
    )


@pytest.fixture
def identify_event() -> IdentifyEvent:
    return IdentifyEvent(
        message_id="msg-identify-1",
        timestamp=EVENT_TIME,
        user_id="u1",
        traits={"email": "jane@example.com", "firstName": "Jane", "plan": "pro"},
    )


@pytest.fixture
def page_event() -> PageEvent:
    return PageEvent(
        message_id="msg-page-1",
        timestamp=EVENT_TIME,
        user_id="u1",
        name="Pricing",
        properties={"url": "https://example.com/pricing", "path": "/pricing"},
    )


@pytest.fixture
def group_event() -> GroupEvent:
    return GroupEvent(
        message_id="msg-group-1",
        timestamp=EVENT_TIME,
        user_id="u1",
        group_id="acme",
        traits={"name": "Acme Inc", "employees": 120},
    )


@pytest.fixture
def alias_event() -> AliasEvent:
    return AliasEvent(
        message_id="msg-alias-1",
        timestamp=EVENT_TIME,
        user_id="u1",
        anonymous_id="anon-1",
        previous_id="anon-1",
    )


@pytest.fixture
def unknown_event() -> ScreenEvent:
    return ScreenEvent(message_id="msg-screen-1", user_id="u1")
