"""Outcome and statistics records for enrichment runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SearchOutcome(str, Enum):
    """How an award search walk ended."""

    PENDING = "pending"
    EXHAUSTED = "exhausted"
    LIMIT_REACHED = "limit_reached"
    ABORTED = "aborted"
    DISABLED = "disabled"


@dataclass
class GeocodingStats:
    """Geocoded vs. total opportunities."""

    total_opportunities: int
    geocoded_count: int
    needs_geocoding_count: int

    @property
    def geocoded_percentage(self) -> float:
        if self.total_opportunities == 0:
            return 0.0
        return (self.geocoded_count * 100.0) / self.total_opportunities


@dataclass
class IngestionResult:
    """Counts from one award ingestion run."""

    new_records: int = 0
    updated_records: int = 0
    skipped_records: int = 0
    duration_ms: int = 0
    aborted_walks: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return self.new_records + self.updated_records + self.skipped_records

    def to_message(self) -> str:
        message = (
            f"USAspending ingestion completed in {self.duration_ms}ms. "
            f"New: {self.new_records}, Updated: {self.updated_records}, "
            f"Skipped: {self.skipped_records}"
        )
        if self.aborted_walks:
            message += f", Aborted walks: {self.aborted_walks}"
        return message


__all__ = ["GeocodingStats", "IngestionResult", "SearchOutcome"]
