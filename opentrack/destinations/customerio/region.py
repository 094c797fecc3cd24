"""
Customer.io data-center regions.
"""

import os
from enum import Enum


class CustomerioRegion(str, Enum):
    """Customer.io account regions."""

    US = "US"
    EU = "EU"


REGION_URLS: dict[CustomerioRegion, str] = {
    CustomerioRegion.US: "https://track.customer.io",
    CustomerioRegion.EU: "https://track-eu.customer.io",
}


def parse_region(value: CustomerioRegion | str | None) -> CustomerioRegion:
    """Parse a region name; anything other than EU means US."""
    if isinstance(value, CustomerioRegion):
        return value
    if value and value.strip().upper() == CustomerioRegion.EU.value:
        return CustomerioRegion.EU
    return CustomerioRegion.US


class RegionManager:
    """Tracks the active region and resolves its Track API base URL."""

    def __init__(self, region: CustomerioRegion | str = CustomerioRegion.US):
        self.region = parse_region(region)

    def set_region(self, region: CustomerioRegion | str) -> None:
        self.region = parse_region(region)

    def get_api_url(self) -> str:
        return REGION_URLS[self.region]

    @staticmethod
    def from_environment() -> CustomerioRegion:
        """Read CUSTOMERIO_REGION from the environment."""
        return parse_region(os.environ.get("CUSTOMERIO_REGION"))
