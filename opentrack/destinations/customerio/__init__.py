"""
Customer.io destination.
"""

from opentrack.destinations.customerio.destination import (
    CustomerioConfig,
    CustomerioDestination,
    generate_anonymous_id,
)
from opentrack.destinations.customerio.errors import CustomerioErrorClassifier
from opentrack.destinations.customerio.region import CustomerioRegion, RegionManager

__all__ = [
    "CustomerioConfig",
    "CustomerioDestination",
    "CustomerioErrorClassifier",
    "CustomerioRegion",
    "RegionManager",
    "generate_anonymous_id",
]
