"""Data models for upstream responses, enrichment outcomes and opportunities."""

from .enrichment import GeocodingStats, IngestionResult, SearchOutcome
from .geocoding import (
    AddressComponents,
    AddressMatch,
    Coordinates,
    GeocoderResponse,
    GeocoderResult,
    Geography,
    SimpleGeocodingResult,
    TigerLine,
)
from .opportunity import (
    ContractLevel,
    DataSource,
    Opportunity,
    OpportunityRepository,
    OpportunityStatus,
)
from .usaspending import (
    AwardSearchFilter,
    PageMetadata,
    SearchResponsePage,
    USAspendingAwardRecord,
)


__all__ = [
    "AddressComponents",
    "AddressMatch",
    "AwardSearchFilter",
    "ContractLevel",
    "Coordinates",
    "DataSource",
    "GeocoderResponse",
    "GeocoderResult",
    "GeocodingStats",
    "Geography",
    "IngestionResult",
    "Opportunity",
    "OpportunityRepository",
    "OpportunityStatus",
    "PageMetadata",
    "SearchOutcome",
    "SearchResponsePage",
    "SimpleGeocodingResult",
    "TigerLine",
    "USAspendingAwardRecord",
]
