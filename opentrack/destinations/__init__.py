"""
Destinations module.

Adapters that forward events to external systems. Each one implements the
``Destination`` contract consumed by the router.
"""

from opentrack.destinations.base import Destination, dispatch_event

__all__ = [
    "Destination",
    "dispatch_event",
]
