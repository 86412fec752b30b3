"""Modular configuration schemas for the enrichment layer."""

from .enrichment import CensusGeocoderConfig, CoordinatorConfig, USAspendingConfig
from .runtime import LoggingConfig
from .settings import EnrichmentSettings


__all__ = [
    "CensusGeocoderConfig",
    "CoordinatorConfig",
    "EnrichmentSettings",
    "LoggingConfig",
    "USAspendingConfig",
]
