"""Pydantic models for USAspending.gov award search.

`POST /search/spending_by_award/` returns one page at a time:

    {"limit": 100,
     "results": [{"Award ID": "W911NF-20-C-0001", "Recipient Name": "...", ...}],
     "page_metadata": {"page": 1, "total": 250, "limit": 100, "next": 2,
                       "previous": null, "hasNext": true, "hasPrevious": false},
     "messages": ["..."]}

Record columns are human-readable labels requested through the ``fields``
list. Newer API versions return NAICS/PSC as nested ``{"code", "description"}``
objects instead of flat columns; both shapes are accepted.
"""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Mapping
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .geocoding import to_optional_str


CONTRACT_AWARD_TYPES = frozenset({"Definitive Contract", "IDV"})

FALLBACK_ID_PREFIX = "GEN-"

# Columns requested from spending_by_award, in request order.
AWARD_SEARCH_FIELDS: tuple[str, ...] = (
    "Award ID",
    "Recipient Name",
    "recipient_id",
    "recipient_uei",
    "Start Date",
    "End Date",
    "Award Amount",
    "Total Outlays",
    "Description",
    "Awarding Agency",
    "Awarding Sub Agency",
    "Contract Award Type",
    "Award Type",
    "Place of Performance City",
    "Place of Performance State",
    "Place of Performance Zip",
    "Place of Performance Country",
    "NAICS Code",
    "NAICS Description",
    "PSC Code",
    "PSC Description",
    "Parent Award ID",
    "Last Modified Date",
    "generated_internal_id",
)


def parse_amount(value: Any) -> Decimal | None:
    """Parse an award amount; tolerates currency formatting like "$1,234.50"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        number = Decimal(str(value))
        return number if number.is_finite() else None
    if isinstance(value, str):
        cleaned = re.sub(r"[^0-9.\-]", "", value)
        if not cleaned:
            return None
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            logger.debug(f"Unable to parse amount: {value!r}")
            return None
    return None


def first_present(record: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-blank value among `keys`; None when all are missing."""
    for key in keys:
        value = record.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def nested_value(record: Mapping[str, Any], key: str, attribute: str) -> Any:
    """Read `record[key][attribute]` when `record[key]` is an object."""
    container = record.get(key)
    if isinstance(container, Mapping):
        return container.get(attribute)
    return None


def fallback_record_id(record: Mapping[str, Any]) -> str:
    """Deterministic id for records carrying neither an award id nor an internal id."""
    json_str = json.dumps(record, sort_keys=True, separators=(",", ":"), default=str)
    return FALLBACK_ID_PREFIX + hashlib.sha256(json_str.encode("utf-8")).hexdigest()[:24]


class USAspendingAwardRecord(BaseModel):
    """Normalized USAspending award."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    award_id: str | None = Field(None, description="External award id (PIID / FAIN)")
    recipient_name: str | None = None
    recipient_id: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    award_amount: Decimal | None = None
    total_outlays: Decimal | None = None
    description: str | None = None
    awarding_agency: str | None = None
    awarding_sub_agency: str | None = None
    contract_award_type: str | None = None
    award_type: str | None = Field(None, description="Award type label, e.g. 'IDV'")
    recipient_uei: str | None = None
    pop_city: str | None = None
    pop_state: str | None = None
    pop_zip: str | None = None
    pop_country: str | None = None
    naics_code: str | None = None
    naics_description: str | None = None
    psc_code: str | None = None
    psc_description: str | None = None
    parent_award_id: str | None = None
    internal_id: str | None = Field(None, description="Upstream generated internal id")
    last_modified_date: str | None = None

    @field_validator("award_amount", "total_outlays", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Decimal | None:
        return parse_amount(value)

    @field_validator(
        "award_id",
        "recipient_name",
        "recipient_id",
        "start_date",
        "end_date",
        "description",
        "awarding_agency",
        "awarding_sub_agency",
        "contract_award_type",
        "award_type",
        "recipient_uei",
        "pop_city",
        "pop_state",
        "pop_zip",
        "pop_country",
        "naics_code",
        "naics_description",
        "psc_code",
        "psc_description",
        "parent_award_id",
        "internal_id",
        "last_modified_date",
        mode="before",
    )
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return to_optional_str(value)

    @classmethod
    def from_api(cls, record: Mapping[str, Any]) -> USAspendingAwardRecord:
        """Decode one ``results`` entry of a spending_by_award page."""
        internal_id = first_present(record, "generated_internal_id", "internal_id")
        if to_optional_str(internal_id) is None:
            internal_id = fallback_record_id(record)

        return cls(
            award_id=first_present(record, "Award ID", "award_id"),
            recipient_name=first_present(record, "Recipient Name", "recipient_name"),
            recipient_id=first_present(record, "recipient_id"),
            start_date=first_present(record, "Start Date", "Period of Performance Start Date"),
            end_date=first_present(
                record, "End Date", "Period of Performance Current End Date"
            ),
            award_amount=first_present(record, "Award Amount", "award_amount"),
            total_outlays=first_present(record, "Total Outlays"),
            description=first_present(record, "Description"),
            awarding_agency=first_present(record, "Awarding Agency"),
            awarding_sub_agency=first_present(record, "Awarding Sub Agency"),
            contract_award_type=first_present(record, "Contract Award Type"),
            award_type=first_present(record, "Award Type"),
            recipient_uei=first_present(record, "recipient_uei", "Recipient UEI"),
            pop_city=first_present(
                record, "Place of Performance City", "Place of Performance City Code"
            ),
            pop_state=first_present(
                record, "Place of Performance State", "Place of Performance State Code"
            ),
            pop_zip=first_present(record, "Place of Performance Zip", "Place of Performance Zip5"),
            pop_country=first_present(
                record, "Place of Performance Country", "Place of Performance Country Code"
            ),
            naics_code=first_present(record, "NAICS Code")
            or nested_value(record, "NAICS", "code"),
            naics_description=first_present(record, "NAICS Description")
            or nested_value(record, "NAICS", "description"),
            psc_code=first_present(record, "PSC Code") or nested_value(record, "PSC", "code"),
            psc_description=first_present(record, "PSC Description")
            or nested_value(record, "PSC", "description"),
            parent_award_id=first_present(record, "Parent Award ID"),
            internal_id=internal_id,
            last_modified_date=first_present(record, "Last Modified Date", "last_modified_date"),
        )

    def unique_key(self) -> str:
        """External award id when present, else the fallback id; never empty."""
        if self.award_id:
            return self.award_id
        if self.internal_id:
            return self.internal_id
        return fallback_record_id(self.model_dump(mode="json"))

    def is_contract(self) -> bool:
        return self.award_type in CONTRACT_AWARD_TYPES

    def safe_award_amount(self) -> Decimal:
        return self.award_amount if self.award_amount is not None else Decimal("0")


class PageMetadata(BaseModel):
    """Cursor state reported with each page. ``hasNext`` is advisory only."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    page: int | None = None
    total: int | None = None
    limit: int | None = None
    next: int | None = None
    previous: int | None = None
    has_next: bool = Field(False, alias="hasNext")
    has_previous: bool = Field(False, alias="hasPrevious")

    @field_validator("page", "total", "limit", "next", "previous", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            return None

    @field_validator("has_next", "has_previous", mode="before")
    @classmethod
    def _coerce_bool(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)


class SearchResponsePage(BaseModel):
    """One page of award search results."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    results: list[USAspendingAwardRecord] | None = None
    page_metadata: PageMetadata | None = None
    messages: list[str] | None = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> SearchResponsePage:
        """Decode a page body; malformed result entries are dropped, not fatal."""
        raw_results = payload.get("results")
        results: list[USAspendingAwardRecord] | None = None
        if isinstance(raw_results, list):
            results = []
            for index, item in enumerate(raw_results):
                if not isinstance(item, Mapping):
                    logger.warning(
                        f"Dropping malformed award record at index {index}: "
                        f"{type(item).__name__}"
                    )
                    continue
                results.append(USAspendingAwardRecord.from_api(item))

        raw_metadata = payload.get("page_metadata")
        metadata = (
            PageMetadata.model_validate(raw_metadata)
            if isinstance(raw_metadata, Mapping)
            else None
        )

        raw_messages = payload.get("messages")
        messages = (
            [str(message) for message in raw_messages] if isinstance(raw_messages, list) else None
        )

        return cls(results=results, page_metadata=metadata, messages=messages)

    @property
    def awards(self) -> list[USAspendingAwardRecord]:
        return list(self.results) if self.results else []

    def has_more(self) -> bool:
        """True only when metadata is present and reports another page."""
        return self.page_metadata is not None and self.page_metadata.has_next

    def total_count(self) -> int:
        """Upstream total when reported, else this page's size (an estimate)."""
        if self.page_metadata is not None and self.page_metadata.total is not None:
            return self.page_metadata.total
        return len(self.awards)


class AwardSearchFilter(BaseModel):
    """Filters for one award search walk; None fields fall back to configured defaults."""

    model_config = ConfigDict(frozen=True)

    naics_codes: list[str] = Field(default_factory=list)
    agencies: list[str] = Field(default_factory=list)
    award_types: list[str] | None = None
    lookback_days: int | None = Field(None, ge=1)
    start_date: date | None = None
    end_date: date | None = None

    @field_validator("naics_codes", "agencies", mode="before")
    @classmethod
    def _drop_blanks(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(item).strip() for item in value if item is not None and str(item).strip()]


__all__ = [
    "AWARD_SEARCH_FIELDS",
    "AwardSearchFilter",
    "CONTRACT_AWARD_TYPES",
    "PageMetadata",
    "SearchResponsePage",
    "USAspendingAwardRecord",
    "fallback_record_id",
    "first_present",
    "parse_amount",
]
