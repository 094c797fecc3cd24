"""
Destination contract consumed by the event router.
"""

from abc import ABC, abstractmethod

from opentrack.events.schemas import (
    AliasEvent,
    BaseEvent,
    GroupEvent,
    IdentifyEvent,
    PageEvent,
    TrackEvent,
)
from opentrack.exceptions import UnknownPayloadTypeError


class Destination(ABC):
    """
    An external system events are forwarded to.

    Every method raises on failure; the router turns the exception into a
    failed DeliveryOutcome for this destination only.
    """

    name: str = "destination"

    @abstractmethod
    async def track(self, event: TrackEvent) -> None: ...

    @abstractmethod
    async def identify(self, event: IdentifyEvent) -> None: ...

    @abstractmethod
    async def page(self, event: PageEvent) -> None: ...

    @abstractmethod
    async def group(self, event: GroupEvent) -> None: ...

    @abstractmethod
    async def alias(self, event: AliasEvent) -> None: ...

    async def aclose(self) -> None:
        """Release transport resources. Default: nothing to release."""
        return None


async def dispatch_event(destination: Destination, event: BaseEvent) -> None:
    """
    Call the destination method matching the event's kind.

    Raises:
        UnknownPayloadTypeError: For anything that is not one of the five calls
    """
    if isinstance(event, TrackEvent):
        await destination.track(event)
    elif isinstance(event, IdentifyEvent):
        await destination.identify(event)
    elif isinstance(event, PageEvent):
        await destination.page(event)
    elif isinstance(event, GroupEvent):
        await destination.group(event)
    elif isinstance(event, AliasEvent):
        await destination.alias(event)
    else:
        raise UnknownPayloadTypeError(
            f"Unknown payload type: {getattr(event, 'type', None)}",
            payload_type=getattr(event, "type", None),
        )
