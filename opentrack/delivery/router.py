"""
Module: router

Purpose: Fan one event out to every registered destination concurrently.

Each destination call is isolated: its failure becomes a failed
``DeliveryOutcome`` and never cancels or delays another destination. Outcomes
come back in registration order regardless of completion order. Partial
delivery is the normal steady state, not an error.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Sequence

from opentrack.destinations.base import Destination, dispatch_event
from opentrack.events.schemas import BaseEvent

logger = logging.getLogger(__name__)


@dataclass
class DeliveryOutcome:
    """Result of delivering one event to one destination."""

    destination_name: str
    success: bool
    duration_ms: float
    error: Exception | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "destination": self.destination_name,
            "success": self.success,
            "duration_ms": round(self.duration_ms, 3),
        }
        if self.error is not None:
            data["error"] = str(self.error)
        return data


class RouterLogger:
    """
    Structured log records for router activity.

    Fields are appended to the message as one JSON object so records stay
    greppable in plain-text log sinks.
    """

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO):
        self._logger = logger or logging.getLogger("opentrack.router")
        self._level = level

    def emit(self, message: str, **fields: Any) -> None:
        payload = {"timestamp": datetime.now(timezone.utc).isoformat(), **fields}
        self._logger.log(self._level, f"{message} {json.dumps(payload, default=str, ensure_ascii=True)}")


class EventRouter:
    """
    Delivery coordinator for a fixed list of destinations.

    Usage:
        router = EventRouter([BigQueryDestination(config), WebhookDestination(hook)])
        outcomes = await router.process(event)
    """

    def __init__(
        self,
        destinations: Sequence[Destination],
        *,
        log_enabled: bool = False,
        logger: RouterLogger | None = None,
    ):
        """
        Initialize the router.

        Args:
            destinations: Destinations in registration order
            log_enabled: Emit structured processing records
            logger: Structured logger override
        """
        self.destinations = list(destinations)
        self.log_enabled = log_enabled
        self._log = logger or RouterLogger()

    def _emit(self, message: str, **fields: Any) -> None:
        if not self.log_enabled:
            return
        try:
            self._log.emit(message, **fields)
        except Exception as e:
            # A broken log sink must not change delivery results
            logger.debug(f"Router log record dropped: {e}")

    async def _deliver(self, destination: Destination, event: BaseEvent) -> DeliveryOutcome:
        self._emit("Integration processing started", integration=destination.name)
        start = time.perf_counter()

        try:
            await dispatch_event(destination, event)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            self._emit(
                "Integration processing failed",
                integration=destination.name,
                duration=duration_ms,
                error=str(e),
            )
            return DeliveryOutcome(destination.name, success=False, duration_ms=duration_ms, error=e)

        duration_ms = (time.perf_counter() - start) * 1000
        self._emit("Integration processing succeeded", integration=destination.name, duration=duration_ms)
        return DeliveryOutcome(destination.name, success=True, duration_ms=duration_ms)

    async def process(self, event: BaseEvent) -> list[DeliveryOutcome]:
        """
        Deliver an event to every destination at once.

        Returns:
            One DeliveryOutcome per destination, in registration order
        """
        self._emit(
            "Processing event started",
            type=getattr(event, "type", None),
            user_id=event.user_id,
            anonymous_id=event.anonymous_id,
            timestamp=event.timestamp,
        )
        start = time.perf_counter()

        outcomes = list(await asyncio.gather(*(self._deliver(d, event) for d in self.destinations)))

        successful = sum(1 for outcome in outcomes if outcome.success)
        self._emit(
            "Event processing completed",
            total_duration=(time.perf_counter() - start) * 1000,
            total=len(outcomes),
            successful=successful,
            failed=len(outcomes) - successful,
        )
        return outcomes

    async def process_batch(self, events: Sequence[BaseEvent]) -> list[list[DeliveryOutcome]]:
        """Process every event of a batch concurrently; results follow input order."""
        return list(await asyncio.gather(*(self.process(event) for event in events)))

    async def aclose(self) -> None:
        """Close every destination's transport."""
        for destination in self.destinations:
            try:
                await destination.aclose()
            except Exception as e:
                logger.warning(f"Failed to close {destination.name}: {e}")
