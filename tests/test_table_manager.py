"""
Tests for opentrack/destinations/bigquery/table_manager.py

SchemaSynchronizer against the in-memory FakeWarehouseStore.
"""

import asyncio

import pytest

from conftest import FakeWarehouseStore
from opentrack.destinations.bigquery.constants import ColumnType
from opentrack.destinations.bigquery.schema_manager import (
    ColumnSchema,
    TableSchema,
    get_base_schema_for_table,
)
from opentrack.destinations.bigquery.table_manager import SchemaSynchronizer, is_conflict_error
from opentrack.exceptions import SchemaConflictError, ServerError

DATASET = "analytics"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def make_sync(store: FakeWarehouseStore, clock: FakeClock | None = None) -> SchemaSynchronizer:
    return SchemaSynchronizer(store, cache_ttl_seconds=300, clock=clock or FakeClock())


# =============================================================================
# TESTS: Datasets
# =============================================================================


class TestEnsureDatasetExists:
    """Tests for ensure_dataset_exists."""

    def test_creates_missing_dataset(self, store) -> None:
        """A missing dataset is created."""
        asyncio.run(make_sync(store).ensure_dataset_exists(DATASET))

        assert store.call_names() == ["dataset_exists", "create_dataset"]
        assert DATASET in store.datasets

    def test_existing_dataset_untouched(self, store) -> None:
        """An existing dataset is not recreated."""
        store.datasets.add(DATASET)

        asyncio.run(make_sync(store).ensure_dataset_exists(DATASET))

        assert store.call_names() == ["dataset_exists"]

    def test_concurrent_create_treated_as_success(self, store) -> None:
        """Losing a dataset create race to another writer is not an error."""
        sync = make_sync(store)

        async def race() -> None:
            await asyncio.gather(
                sync.ensure_dataset_exists(DATASET),
                sync.ensure_dataset_exists(DATASET),
            )

        asyncio.run(race())

        assert store.call_names().count("create_dataset") == 2
        assert DATASET in store.datasets

    def test_other_create_errors_propagate(self, store) -> None:
        sync = make_sync(store)

        async def failing_create(dataset_id: str, **kwargs) -> None:
            raise PermissionError("Access Denied: Dataset")

        store.create_dataset = failing_create

        with pytest.raises(PermissionError):
            asyncio.run(sync.ensure_dataset_exists(DATASET))


# =============================================================================
# TESTS: Table info and cache
# =============================================================================


class TestGetTableInfo:
    """Tests for get_table_info and the schema cache."""

    def test_missing_table(self, store) -> None:
        """A missing table reports exists=False and is not cached."""
        sync = make_sync(store)

        info = asyncio.run(sync.get_table_info(DATASET, "tracks"))

        assert info.exists is False
        assert info.schema is None
        assert sync.cached_tables() == []

    def test_present_table_cached(self, store) -> None:
        """A present table's schema is fetched once, then served from cache."""
        schema = get_base_schema_for_table("tracks")
        store.tables[(DATASET, "tracks")] = schema
        sync = make_sync(store)

        first = asyncio.run(sync.get_table_info(DATASET, "tracks"))
        calls_after_first = len(store.calls)
        second = asyncio.run(sync.get_table_info(DATASET, "tracks"))

        assert first.schema == schema
        assert second.schema == schema
        assert len(store.calls) == calls_after_first
        assert sync.cached_tables() == [(DATASET, "tracks")]

    def test_cache_expires_after_ttl(self, store) -> None:
        """Entries older than the TTL trigger a fresh remote fetch."""
        store.tables[(DATASET, "tracks")] = get_base_schema_for_table("tracks")
        clock = FakeClock()
        sync = make_sync(store, clock)

        asyncio.run(sync.get_table_info(DATASET, "tracks"))
        clock.now += 301
        store.calls.clear()
        asyncio.run(sync.get_table_info(DATASET, "tracks"))

        assert store.call_names() == ["table_exists", "get_table_schema"]

    def test_clear_cache_scopes(self, store) -> None:
        """clear_cache evicts one table, one dataset, or everything."""
        for dataset, table in [("a", "t1"), ("a", "t2"), ("b", "t1")]:
            store.tables[(dataset, table)] = get_base_schema_for_table("tracks")
        sync = make_sync(store)
        for dataset, table in [("a", "t1"), ("a", "t2"), ("b", "t1")]:
            asyncio.run(sync.get_table_info(dataset, table))

        sync.clear_cache("a", "t1")
        assert sorted(sync.cached_tables()) == [("a", "t2"), ("b", "t1")]

        sync.clear_cache("a")
        assert sync.cached_tables() == [("b", "t1")]

        sync.clear_cache()
        assert sync.cached_tables() == []


# =============================================================================
# TESTS: Table creation
# =============================================================================


class TestCreateTable:
    """Tests for create_table and the create-race rule."""

    def test_creates_base_plus_row_schema(self, store) -> None:
        """The created schema is the base template merged with the sample row."""
        sync = make_sync(store)

        schema = asyncio.run(sync.create_table(DATASET, "signup", "signup", {"id": "m1", "plan": "pro"}))

        assert store.tables[(DATASET, "signup")] == schema
        assert "event" in schema.field_names
        assert schema.get("plan").type == ColumnType.STRING
        assert sync.cached_tables() == [(DATASET, "signup")]

    def test_conflict_loads_remote_schema(self, store) -> None:
        """A concurrent create is swallowed and the remote schema cached."""
        remote = TableSchema(fields=(ColumnSchema("id", ColumnType.STRING), ColumnSchema("other", ColumnType.INTEGER)))
        store.concurrent_schema = remote
        sync = make_sync(store)

        schema = asyncio.run(sync.create_table(DATASET, "tracks", "tracks", {"id": "m1"}))

        assert schema == remote
        assert asyncio.run(sync.get_table_info(DATASET, "tracks")).schema == remote
        assert store.call_names()[-1] == "get_table_schema"

    def test_duplicate_message_treated_as_conflict(self, store) -> None:
        """Errors mentioning a duplicate are conflicts too."""
        store.create_table_error = RuntimeError("Duplicate table definition")
        store.tables[(DATASET, "pages")] = get_base_schema_for_table("pages")
        sync = make_sync(store)

        schema = asyncio.run(sync.create_table(DATASET, "pages", "pages", {"id": "m1"}))

        assert schema == get_base_schema_for_table("pages")

    def test_other_errors_propagate(self, store) -> None:
        """Non-conflict failures propagate unchanged."""
        error = ServerError("backend unavailable", status_code=503)
        store.create_table_error = error
        sync = make_sync(store)

        with pytest.raises(ServerError) as exc_info:
            asyncio.run(sync.create_table(DATASET, "pages", "pages", {"id": "m1"}))

        assert exc_info.value is error
        assert sync.cached_tables() == []


class TestIsConflictError:
    """Tests for is_conflict_error."""

    def test_shapes(self) -> None:
        """Typed conflicts, 409 codes and duplicate messages all count."""

        class Conflict(Exception):
            code = 409

        assert is_conflict_error(SchemaConflictError("x", dataset_id="d", table_id="t"))
        assert is_conflict_error(Conflict("boom"))
        assert is_conflict_error(RuntimeError("Table already exists"))
        assert not is_conflict_error(RuntimeError("permission denied"))


# =============================================================================
# TESTS: Schema updates
# =============================================================================


class TestUpdateTableSchema:
    """Tests for update_table_schema."""

    def test_no_change_makes_no_remote_call(self, store) -> None:
        """A row that fits the schema causes no remote update."""
        current = TableSchema(fields=(ColumnSchema("count", ColumnType.STRING),))

        changed = asyncio.run(make_sync(store).update_table_schema(DATASET, "t", {"count": "x"}, current))

        assert changed is False
        assert store.calls == []

    def test_new_column_pushed_and_cached(self, store) -> None:
        """New columns are pushed remotely and the cache refreshed."""
        current = TableSchema(fields=(ColumnSchema("id", ColumnType.STRING),))
        store.tables[(DATASET, "t")] = current
        sync = make_sync(store)

        changed = asyncio.run(sync.update_table_schema(DATASET, "t", {"id": "m1", "plan": "pro"}, current))

        assert changed is True
        assert store.tables[(DATASET, "t")].field_names == ["id", "plan"]
        assert asyncio.run(sync.get_table_info(DATASET, "t")).schema.field_names == ["id", "plan"]


# =============================================================================
# TESTS: Insert with auto schema
# =============================================================================


class TestInsertWithAutoSchema:
    """Tests for insert_with_auto_schema."""

    def test_empty_batch_makes_no_calls(self, store) -> None:
        """An empty batch is a no-op."""
        asyncio.run(make_sync(store).insert_with_auto_schema(DATASET, "tracks", "tracks", []))

        assert store.calls == []

    def test_first_insert_creates_dataset_and_table(self, store) -> None:
        """The first write prepares everything, then inserts."""
        asyncio.run(make_sync(store).insert_with_auto_schema(DATASET, "signup", "signup", [{"id": "m1"}]))

        assert store.call_names() == [
            "dataset_exists", "create_dataset", "table_exists", "create_table", "insert_rows",
        ]
        assert store.rows[(DATASET, "signup")] == [{"id": "m1"}]

    def test_count_relaxes_then_settles(self, store) -> None:
        """INTEGER widens to STRING on the second write; the third changes nothing."""
        sync = make_sync(store)

        asyncio.run(sync.insert_with_auto_schema(DATASET, "t", "t", [{"id": "m1", "count": 1}]))
        assert store.tables[(DATASET, "t")].get("count").type == ColumnType.INTEGER

        asyncio.run(sync.insert_with_auto_schema(DATASET, "t", "t", [{"id": "m2", "count": "x"}]))
        assert store.tables[(DATASET, "t")].get("count").type == ColumnType.STRING

        store.calls.clear()
        asyncio.run(sync.insert_with_auto_schema(DATASET, "t", "t", [{"id": "m3", "count": "y"}]))
        assert "set_table_schema" not in store.call_names()

    def test_only_first_row_drives_schema(self, store) -> None:
        """Columns that only later rows carry are not added before inserting."""
        sync = make_sync(store)

        asyncio.run(sync.insert_with_auto_schema(
            DATASET, "t", "t", [{"id": "m1"}, {"id": "m2", "late_column": 5}]
        ))

        assert "late_column" not in store.tables[(DATASET, "t")].field_names
        assert len(store.rows[(DATASET, "t")]) == 2

    def test_concurrent_first_writes_both_succeed(self, store) -> None:
        """Two writers racing to create the same table both insert."""
        sync = make_sync(store)

        async def race() -> None:
            await asyncio.gather(
                sync.insert_with_auto_schema(DATASET, "t", "t", [{"id": "m1"}]),
                sync.insert_with_auto_schema(DATASET, "t", "t", [{"id": "m2"}]),
            )

        asyncio.run(race())

        assert store.call_names().count("create_dataset") == 2
        assert sorted(row["id"] for row in store.rows[(DATASET, "t")]) == ["m1", "m2"]
