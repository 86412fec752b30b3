"""Apply Census geocoding and USAspending awards to stored opportunities.

The coordinator is the only place that decides what to do with a missing
enrichment result. Geocoding failures are logged and counted; aborted award
search walks are retried with exponential backoff, which is safe because
award upserts are keyed by solicitation number.
"""

from __future__ import annotations

import re
import time
from datetime import UTC, date, datetime
from typing import Any

import pandas as pd
from loguru import logger
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..config.loader import get_config
from ..config.schemas.enrichment import CoordinatorConfig
from ..exceptions import APIError, get_error_code, is_retryable
from ..models.enrichment import GeocodingStats, IngestionResult
from ..models.opportunity import (
    ContractLevel,
    DataSource,
    Opportunity,
    OpportunityRepository,
    OpportunityStatus,
)
from ..models.usaspending import AwardSearchFilter, USAspendingAwardRecord
from ..utils.logging_config import log_with_context, new_run_id
from .census_geocoder.client import CensusGeocoderClient
from .usaspending.client import USAspendingAwardClient


SOLICITATION_PREFIX = "USASPEND-"
USASPENDING_SOURCE = "USAspending.gov"
USASPENDING_AWARD_URL = "https://www.usaspending.gov/award/"
DEFAULT_COUNTRY = "USA"
MAX_TITLE_LENGTH = 500

DOD_AGENCY_KEYWORDS = ("defense", "dod", "army", "navy", "air force", "marine")

GEOCODE_COLUMNS = ("latitude", "longitude", "state_fips", "county_fips", "census_tract")


def parse_award_date(value: str | None) -> date | None:
    """Parse ``YYYY-MM-DD`` or an ISO 8601 timestamp (with or without offset)."""
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        logger.debug(f"Unable to parse date: {value}")
        return None


def is_dod_agency(agency: str | None) -> bool:
    if not agency:
        return False
    lowered = agency.lower()
    return any(keyword in lowered for keyword in DOD_AGENCY_KEYWORDS)


def determine_status(end_date: str | None, today: date | None = None) -> OpportunityStatus:
    """CLOSED once the performance end date has passed, AWARDED otherwise."""
    parsed = parse_award_date(end_date)
    if parsed is not None and parsed < (today or date.today()):
        return OpportunityStatus.CLOSED
    return OpportunityStatus.AWARDED


def build_award_title(record: USAspendingAwardRecord) -> str:
    """Title as "Recipient - Agency (Type)", falling back to the award key."""
    title = record.recipient_name or ""
    if record.awarding_agency:
        title = f"{title} - {record.awarding_agency}" if title else record.awarding_agency
    if record.contract_award_type and title:
        title = f"{title} ({record.contract_award_type})"
    if not title:
        title = f"USAspending Award: {record.unique_key()}"

    if len(title) > MAX_TITLE_LENGTH:
        return title[: MAX_TITLE_LENGTH - 3] + "..."
    return title


def solicitation_number_for(record: USAspendingAwardRecord) -> str | None:
    """``USASPEND-`` + the record key stripped to letters, digits and hyphens."""
    sanitized = re.sub(r"[^a-zA-Z0-9-]", "", record.unique_key())
    if not sanitized:
        return None
    return SOLICITATION_PREFIX + sanitized


def build_address_line(city: str | None, state: str | None, zip_code: str | None) -> str:
    """Single-line "City, ST 12345" form of whichever parts are present."""
    line = city.strip() if city and city.strip() else ""
    if state and state.strip():
        line = f"{line}, {state.strip()}" if line else state.strip()
    if zip_code and zip_code.strip():
        line = f"{line} {zip_code.strip()}" if line else zip_code.strip()
    return line.strip()


class EnrichmentCoordinator:
    """Drive opportunities and addresses through the two integration clients."""

    def __init__(
        self,
        repository: OpportunityRepository,
        geocoder: CensusGeocoderClient | None = None,
        award_client: USAspendingAwardClient | None = None,
        config: CoordinatorConfig | dict[str, Any] | None = None,
    ):
        """Initialize the coordinator.

        Args:
            repository: Persistence boundary for opportunities
            geocoder: Census client; built from get_config() when omitted
            award_client: USAspending client; built from get_config() when omitted
            config: Retry policy override. If None, loads from get_config()
        """
        if config is None:
            self.config = get_config().coordinator
        elif isinstance(config, CoordinatorConfig):
            self.config = config
        else:
            self.config = CoordinatorConfig(**config)

        self.repository = repository
        self.geocoder = geocoder or CensusGeocoderClient()
        self.award_client = award_client or USAspendingAwardClient()

    # ------------------------------------------------------------------
    # Geocoding
    # ------------------------------------------------------------------

    def geocode_opportunity(self, opportunity: Opportunity | None) -> bool:
        """Geocode one opportunity's place of performance and save it.

        Returns:
            True when the opportunity is (now or already) geocoded
        """
        if opportunity is None:
            return False

        if opportunity.is_geocoded():
            logger.debug(f"Opportunity {opportunity.id} already geocoded")
            return True

        if not opportunity.is_domestic():
            logger.debug(
                f"Skipping non-US opportunity {opportunity.id}: "
                f"{opportunity.place_of_performance_country}"
            )
            return False

        city = opportunity.place_of_performance_city
        state = opportunity.place_of_performance_state
        zip_code = opportunity.place_of_performance_zip
        if not build_address_line(city, state, zip_code):
            logger.debug(f"No address data for opportunity {opportunity.id}")
            return False

        result = self.geocoder.geocode_address_components(None, city, state, zip_code)
        if result is None or not result.is_valid():
            result = self.geocoder.geocode_address(build_address_line(city, state, zip_code))

        if result is None or not result.is_valid():
            logger.debug(f"Could not geocode opportunity {opportunity.id}")
            return False

        opportunity.latitude = result.latitude
        opportunity.longitude = result.longitude
        opportunity.fips_state_code = result.state_fips
        opportunity.fips_county_code = result.county_fips
        opportunity.census_tract = result.census_tract
        opportunity.geocoded_at = datetime.now(UTC)
        self.repository.save(opportunity)

        logger.info(
            f"Geocoded opportunity {opportunity.id}: ({result.latitude}, {result.longitude}) "
            f"FIPS: {result.state_fips}-{result.county_fips}"
        )
        return True

    def batch_geocode_opportunities(self, max_records: int) -> int:
        """Geocode up to ``min(batch_size, max_records)`` pending opportunities.

        Returns:
            Number of opportunities geocoded
        """
        if not self.geocoder.is_enabled():
            logger.info("Geocoding is disabled")
            return 0

        limit = min(self.geocoder.config.batch_size, max_records)
        if limit <= 0:
            return 0

        pending = self.repository.find_needing_geocoding(limit=limit)
        if not pending:
            logger.info("No opportunities needing geocoding found")
            return 0

        success = 0
        with log_with_context(component="coordinator", run_id=new_run_id()):
            logger.info(f"Starting batch geocoding of {len(pending)} opportunities")
            for opportunity in pending:
                if self.geocode_opportunity(opportunity):
                    success += 1

            logger.info(
                f"Batch geocoding complete: {success} success, {len(pending) - success} failed"
            )
        return success

    def geocode_frame(self, df: pd.DataFrame, address_column: str = "address") -> pd.DataFrame:
        """Add geocoding columns to a DataFrame of single-line addresses.

        Args:
            df: Input rows; left unmodified
            address_column: Column holding the single-line address

        Returns:
            Copy of ``df`` with latitude, longitude, state_fips, county_fips
            and census_tract columns (None where not geocoded)
        """
        enriched = df.copy()
        for column in GEOCODE_COLUMNS:
            enriched[column] = None

        if address_column not in df.columns:
            logger.warning(f"Column {address_column!r} not found; nothing to geocode")
            return enriched

        addresses = [
            str(value)
            for value in df[address_column].dropna().unique()
            if str(value).strip()
        ]
        logger.info(f"Geocoding {len(addresses)} distinct addresses for {len(df)} rows...")

        results: dict[str, Any] = {}
        batch_size = self.geocoder.config.batch_size
        for start in range(0, len(addresses), batch_size):
            results.update(self.geocoder.geocode_batch(addresses[start : start + batch_size]))

        matched = 0
        for idx, value in df[address_column].items():
            if pd.isna(value):
                continue
            result = results.get(str(value))
            if result is None or not result.is_valid():
                continue
            enriched.at[idx, "latitude"] = float(result.latitude)
            enriched.at[idx, "longitude"] = float(result.longitude)
            enriched.at[idx, "state_fips"] = result.state_fips
            enriched.at[idx, "county_fips"] = result.county_fips
            enriched.at[idx, "census_tract"] = result.census_tract
            matched += 1

        match_rate = matched / len(df) if len(df) > 0 else 0
        logger.info(f"Geocoded {matched}/{len(df)} rows ({match_rate:.1%})")
        return enriched

    def get_geocoding_stats(self) -> GeocodingStats:
        total = self.repository.count()
        geocoded = self.repository.count_geocoded()
        return GeocodingStats(
            total_opportunities=total,
            geocoded_count=geocoded,
            needs_geocoding_count=max(total - geocoded, 0),
        )

    # ------------------------------------------------------------------
    # Award ingestion
    # ------------------------------------------------------------------

    def _walk_filters(self, search_filter: AwardSearchFilter | None) -> list[AwardSearchFilter]:
        """One filter per configured NAICS code, else per agency, else unfiltered."""
        if search_filter is not None:
            return [search_filter]

        naics_codes = self.award_client.config.naics_codes
        agencies = self.award_client.config.agencies
        if naics_codes:
            return [AwardSearchFilter(naics_codes=[code]) for code in naics_codes]
        if agencies:
            return [AwardSearchFilter(agencies=[agency]) for agency in agencies]
        return [AwardSearchFilter()]

    def ingest_awards(self, search_filter: AwardSearchFilter | None = None) -> IngestionResult:
        """Upsert USAspending awards as opportunities.

        Args:
            search_filter: Single walk to run. None runs one walk per configured
                NAICS code (or agency, or one unfiltered walk)

        Returns:
            Counts of new, updated and skipped records plus aborted walks
        """
        result = IngestionResult()
        if not self.award_client.is_enabled():
            logger.info("USAspending integration is disabled")
            return result

        start_time = time.monotonic()
        seen: set[str] = set()

        with log_with_context(component="coordinator", run_id=new_run_id()):
            logger.info("Starting USAspending.gov ingestion")
            for walk_filter in self._walk_filters(search_filter):
                try:
                    self._ingest_with_retry(walk_filter, result, seen)
                except APIError as e:
                    result.aborted_walks += 1
                    result.errors.append(e.message)
                    logger.error(
                        f"Award walk failed after retries (NAICS: {walk_filter.naics_codes}, "
                        f"Agency: {walk_filter.agencies}, code={get_error_code(e)}): {e.message}"
                    )

            result.duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.info(result.to_message())
        return result

    def _ingest_with_retry(
        self, walk_filter: AwardSearchFilter, result: IngestionResult, seen: set[str]
    ) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self.config.retry_attempts),
            wait=wait_exponential(
                multiplier=self.config.retry_backoff_seconds,
                max=self.config.retry_backoff_max_seconds,
            ),
            retry=retry_if_exception(is_retryable),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        f"Retrying award walk (attempt {attempt.retry_state.attempt_number})"
                    )
                self._ingest_walk(walk_filter, result, seen)

    def _ingest_walk(
        self, walk_filter: AwardSearchFilter, result: IngestionResult, seen: set[str]
    ) -> None:
        """Run one walk; raise its error when aborted so the retry policy sees it."""
        cursor = iter(self.award_client.search_awards(walk_filter))
        fetched = 0
        for record in cursor:
            fetched += 1
            self._upsert_award(record, result, seen)

        logger.info(
            f"Fetched {fetched} awards from USAspending (NAICS: {walk_filter.naics_codes}, "
            f"Agency: {walk_filter.agencies}, outcome: {cursor.outcome.value})"
        )
        if cursor.aborted and cursor.error is not None:
            raise cursor.error

    def _upsert_award(
        self, record: USAspendingAwardRecord, result: IngestionResult, seen: set[str]
    ) -> None:
        solicitation_number = solicitation_number_for(record)
        if solicitation_number is None:
            logger.debug("Skipping award with no usable id")
            result.skipped_records += 1
            return

        existing = self.repository.find_by_solicitation_number(solicitation_number)
        if existing is not None:
            self.repository.save(self.award_to_opportunity(record, existing))
            if solicitation_number not in seen:
                result.updated_records += 1
            logger.debug(f"Updated USAspending opportunity: {solicitation_number}")
        else:
            self.repository.save(self.award_to_opportunity(record))
            result.new_records += 1
            logger.debug(f"Created new USAspending opportunity: {solicitation_number}")
        seen.add(solicitation_number)

    def award_to_opportunity(
        self,
        record: USAspendingAwardRecord,
        existing: Opportunity | None = None,
    ) -> Opportunity:
        """Map an award onto a new opportunity, or onto ``existing`` in place."""
        opportunity = existing or Opportunity(
            solicitation_number=solicitation_number_for(record),
            data_source=DataSource.USA_SPENDING,
        )

        opportunity.title = build_award_title(record)
        opportunity.description = record.description
        opportunity.posted_date = parse_award_date(record.start_date)
        opportunity.response_deadline = parse_award_date(record.end_date)

        opportunity.award_amount = record.award_amount
        if record.award_amount is not None:
            opportunity.estimated_value_low = record.award_amount
            opportunity.estimated_value_high = record.award_amount

        opportunity.agency = record.awarding_agency
        opportunity.sub_agency = record.awarding_sub_agency
        opportunity.incumbent_contractor = record.recipient_name
        opportunity.contract_type = record.contract_award_type
        opportunity.contract_number = record.award_id
        opportunity.naics_code = record.naics_code
        opportunity.naics_description = record.naics_description
        opportunity.psc_code = record.psc_code

        opportunity.place_of_performance_city = record.pop_city
        opportunity.place_of_performance_state = record.pop_state
        opportunity.place_of_performance_zip = record.pop_zip
        opportunity.place_of_performance_country = record.pop_country or DEFAULT_COUNTRY

        opportunity.source = USASPENDING_SOURCE
        if record.internal_id:
            opportunity.url = USASPENDING_AWARD_URL + record.internal_id

        if is_dod_agency(record.awarding_agency):
            opportunity.is_dod = True
            opportunity.contract_level = ContractLevel.DOD
        else:
            opportunity.is_dod = False
            opportunity.contract_level = ContractLevel.FEDERAL

        opportunity.status = determine_status(record.end_date)
        return opportunity

