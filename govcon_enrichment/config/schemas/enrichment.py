"""Schemas for the upstream integration clients and the enrichment coordinator."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class CensusGeocoderConfig(BaseModel):
    """Configuration for the US Census Bureau geocoder client."""

    enabled: bool = Field(default=True, description="Enable geocoding calls")
    geocoder_url: str = Field(
        default="https://geocoding.geo.census.gov/geocoder",
        description="Geocoder base URL",
    )
    benchmark: str = Field(default="Public_AR_Current", description="Address benchmark identifier")
    vintage: str = Field(default="Current_Current", description="Geography vintage identifier")
    rate_limit_ms: int = Field(
        default=200, ge=0, description="Minimum interval between requests in milliseconds"
    )
    batch_size: int = Field(
        default=100, ge=1, description="Maximum addresses processed per batch invocation"
    )
    timeout_seconds: float = Field(default=30, gt=0, description="Request timeout in seconds")

    @field_validator("geocoder_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class USAspendingConfig(BaseModel):
    """Configuration for the USAspending award search client."""

    enabled: bool = Field(default=True, description="Enable USAspending calls")
    base_url: str = Field(
        default="https://api.usaspending.gov/api/v2", description="API v2 base URL"
    )
    rate_limit_ms: int = Field(
        default=500, ge=0, description="Minimum interval between requests in milliseconds"
    )
    page_size: int = Field(default=100, ge=1, le=100, description="Records per page request")
    max_results: int = Field(
        default=1000, ge=1, description="Maximum records fetched across all pages of one search"
    )
    award_types: list[str] = Field(
        default_factory=lambda: ["A", "B", "C", "D"],
        description="Default award type codes (A-D are contracts)",
    )
    award_lookback_days: int = Field(
        default=365, ge=1, description="Default trailing search window in days"
    )
    naics_codes: list[str] = Field(default_factory=list, description="Optional NAICS allowlist")
    agencies: list[str] = Field(default_factory=list, description="Optional agency allowlist")
    timeout_seconds: float = Field(default=30, gt=0, description="Request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class CoordinatorConfig(BaseModel):
    """Configuration for the enrichment coordinator retry policy."""

    retry_attempts: int = Field(
        default=3, ge=1, description="Attempts per award search walk (1 disables retries)"
    )
    retry_backoff_seconds: float = Field(
        default=2.0, ge=0.0, description="Initial retry backoff delay in seconds"
    )
    retry_backoff_max_seconds: float = Field(
        default=30.0, ge=0.0, description="Upper bound on a single retry delay"
    )


__all__ = ["CensusGeocoderConfig", "CoordinatorConfig", "USAspendingConfig"]
