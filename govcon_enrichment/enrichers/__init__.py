"""Integration clients and the coordinator that applies their results."""

from .census_geocoder import CensusGeocoderClient
from .coordinator import EnrichmentCoordinator
from .transport import RateLimitedTransport
from .usaspending import AwardSearch, USAspendingAwardClient


__all__ = [
    "AwardSearch",
    "CensusGeocoderClient",
    "EnrichmentCoordinator",
    "RateLimitedTransport",
    "USAspendingAwardClient",
]
