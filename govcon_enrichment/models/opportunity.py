"""Opportunity fields the enrichment layer reads and writes.

The persisted entity lives in the surrounding ORM layer; this model carries only
the columns the coordinator touches and is handed to an `OpportunityRepository`
for persistence.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


US_COUNTRY_NAMES = frozenset({"USA", "US", "UNITED STATES"})


class DataSource(str, Enum):
    SAM_GOV = "SAM_GOV"
    USA_SPENDING = "USA_SPENDING"


class ContractLevel(str, Enum):
    FEDERAL = "FEDERAL"
    DOD = "DOD"


class OpportunityStatus(str, Enum):
    ACTIVE = "ACTIVE"
    AWARDED = "AWARDED"
    CLOSED = "CLOSED"


class Opportunity(BaseModel):
    """Locally stored opportunity, as seen by the enrichment coordinator."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    solicitation_number: str | None = None
    title: str | None = None
    description: str | None = None
    data_source: DataSource = DataSource.SAM_GOV
    status: OpportunityStatus = OpportunityStatus.ACTIVE
    contract_level: ContractLevel = ContractLevel.FEDERAL
    is_dod: bool = False

    posted_date: date | None = None
    response_deadline: date | None = None

    award_amount: Decimal | None = None
    estimated_value_low: Decimal | None = None
    estimated_value_high: Decimal | None = None

    agency: str | None = None
    sub_agency: str | None = None
    incumbent_contractor: str | None = None
    contract_type: str | None = None
    contract_number: str | None = None
    naics_code: str | None = None
    naics_description: str | None = None
    psc_code: str | None = None
    source: str | None = None
    url: str | None = None

    # Place of performance
    place_of_performance_city: str | None = None
    place_of_performance_state: str | None = None
    place_of_performance_zip: str | None = None
    place_of_performance_country: str | None = None

    # Geocoding enrichment
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    fips_state_code: str | None = None
    fips_county_code: str | None = None
    census_tract: str | None = None
    geocoded_at: datetime | None = None

    def is_geocoded(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def is_domestic(self) -> bool:
        """Missing country is treated as domestic."""
        country = self.place_of_performance_country
        return country is None or country.strip().upper() in US_COUNTRY_NAMES


class OpportunityRepository(Protocol):
    """Persistence boundary implemented by the surrounding ORM layer."""

    def save(self, opportunity: Opportunity) -> Opportunity: ...

    def find_by_solicitation_number(self, solicitation_number: str) -> Opportunity | None: ...

    def find_needing_geocoding(self, limit: int) -> list[Opportunity]: ...

    def count(self) -> int: ...

    def count_geocoded(self) -> int: ...


__all__ = [
    "ContractLevel",
    "DataSource",
    "Opportunity",
    "OpportunityRepository",
    "OpportunityStatus",
    "US_COUNTRY_NAMES",
]
