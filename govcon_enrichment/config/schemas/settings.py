"""Root EnrichmentSettings composed from modular schema components."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .enrichment import CensusGeocoderConfig, CoordinatorConfig, USAspendingConfig
from .runtime import LoggingConfig


class EnrichmentSettings(BaseModel):
    """Root configuration model for the enrichment layer."""

    environment: str = Field(default="development", description="Active environment name")
    census: CensusGeocoderConfig = Field(default_factory=CensusGeocoderConfig)
    usaspending: USAspendingConfig = Field(default_factory=USAspendingConfig)
    coordinator: CoordinatorConfig = Field(default_factory=CoordinatorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        validate_assignment=True,
        extra="allow",
    )


__all__ = ["EnrichmentSettings"]
