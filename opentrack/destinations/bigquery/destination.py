"""
BigQuery destination.

Writes each event as a Segment-style warehouse row. Track events land in both
their per-event table and the shared ``tracks`` table; every other call lands
in its pluralized table. Each table insert is retried independently.
"""

import asyncio
import logging
from typing import Any

from opentrack.delivery.retry import RetryExecutor, RetryPolicy
from opentrack.destinations.base import Destination
from opentrack.destinations.bigquery.config import BigQueryConfig
from opentrack.destinations.bigquery.errors import BigQueryErrorClassifier
from opentrack.destinations.bigquery.row_transformer import transform_to_row
from opentrack.destinations.bigquery.store import BigQueryStore, WarehouseStore
from opentrack.destinations.bigquery.table_manager import SchemaSynchronizer
from opentrack.destinations.bigquery.table_mapper import get_table_names
from opentrack.events.schemas import (
    AliasEvent,
    BaseEvent,
    GroupEvent,
    IdentifyEvent,
    PageEvent,
    TrackEvent,
)

logger = logging.getLogger(__name__)


def build_credentials(credentials_info: dict[str, Any] | None) -> Any:
    """Build google-auth service account credentials, or None for ADC."""
    if not credentials_info:
        return None
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(credentials_info)


class BigQueryDestination(Destination):
    """Streams events into BigQuery tables with automatic schema management."""

    name = "BigQuery"

    def __init__(
        self,
        config: BigQueryConfig,
        *,
        store: WarehouseStore | None = None,
        retry: RetryExecutor | None = None,
    ):
        """
        Initialize the destination.

        Args:
            config: BigQuery configuration
            store: Warehouse store override (defaults to a BigQueryStore)
            retry: Retry executor override
        """
        self.config = config
        self.store: WarehouseStore = store or BigQueryStore(
            config.project_id,
            credentials=build_credentials(config.credentials_info),
        )
        self.tables = SchemaSynchronizer(
            self.store,
            cache_ttl_seconds=config.cache_ttl_seconds,
            dataset_location=config.location,
        )
        self.retry = retry or RetryExecutor(
            BigQueryErrorClassifier(),
            RetryPolicy(
                max_retries=config.retry_attempts,
                max_delay_seconds=config.max_retry_delay_seconds,
            ),
        )

    async def _insert(self, table_name: str, row: dict[str, Any]) -> None:
        dataset_id = self.config.dataset_id

        if self.config.auto_table_management:
            # Per-event tables pass their own name and get the track template
            await self.retry.execute(
                lambda: self.tables.insert_with_auto_schema(dataset_id, table_name, table_name, [row])
            )
        else:
            await self.retry.execute(lambda: self.store.insert_rows(dataset_id, table_name, [row]))

        logger.debug(f"Inserted {row.get('id')} into {dataset_id}.{table_name}")

    async def _insert_to_all_tables(self, event: BaseEvent) -> None:
        row = transform_to_row(event)
        await asyncio.gather(*(
            self._insert(table_name, dict(row)) for table_name in get_table_names(event)
        ))

    async def track(self, event: TrackEvent) -> None:
        await self._insert_to_all_tables(event)

    async def identify(self, event: IdentifyEvent) -> None:
        await self._insert_to_all_tables(event)

    async def page(self, event: PageEvent) -> None:
        await self._insert_to_all_tables(event)

    async def group(self, event: GroupEvent) -> None:
        await self._insert_to_all_tables(event)

    async def alias(self, event: AliasEvent) -> None:
        await self._insert_to_all_tables(event)
