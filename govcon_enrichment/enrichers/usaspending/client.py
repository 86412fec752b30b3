"""USAspending.gov award search client.

This module provides a synchronous client for the USAspending.gov API v2 used
to pull historical federal awards into the opportunity store. Award search is
exposed as a lazy, paginated `AwardSearch`; recipient, agency budget and
toptier agency lookups return plain dicts/lists.

Failures never escape the public methods: lookups return ``{}``/``[]`` and an
award search ends early with ``outcome == SearchOutcome.ABORTED``.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from ...config.loader import get_config
from ...config.schemas.enrichment import USAspendingConfig
from ...exceptions import APIError, ResponseDecodeError, wrap_exception
from ...models.usaspending import AWARD_SEARCH_FIELDS, AwardSearchFilter, SearchResponsePage
from ...utils.rate_limiter import RateLimiter
from ..transport import RateLimitedTransport
from .pagination import AwardSearch


SEARCH_ENDPOINT = "/search/spending_by_award/"
TOPTIER_AGENCIES_ENDPOINT = "/references/toptier_agencies/"

DEFAULT_SORT_FIELD = "Award Amount"
DEFAULT_SORT_ORDER = "desc"


class USAspendingAwardClient:
    """Synchronous, rate-limited client for USAspending.gov API v2."""

    api_name = "usaspending"

    def __init__(
        self,
        config: USAspendingConfig | dict[str, Any] | None = None,
        *,
        http_client: httpx.Client | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        """Initialize USAspending award client.

        Args:
            config: Config model or dict override. If None, loads from get_config()
            http_client: Optional pre-configured HTTPX client (useful for tests)
            rate_limiter: Optional limiter; defaults to one built from rate_limit_ms
        """
        if config is None:
            self.config = get_config().usaspending
        elif isinstance(config, USAspendingConfig):
            self.config = config
        else:
            self.config = USAspendingConfig(**config)

        self.rate_limiter = rate_limiter or RateLimiter.from_milliseconds(
            self.config.rate_limit_ms, name=self.api_name
        )
        self.transport = RateLimitedTransport(
            self.config.base_url,
            self.rate_limiter,
            timeout=self.config.timeout_seconds,
            api_name=self.api_name,
            http_client=http_client,
        )

        logger.info(
            f"Initialized USAspendingAwardClient: base_url={self.config.base_url}, "
            f"enabled={self.config.enabled}, page_size={self.config.page_size}, "
            f"max_results={self.config.max_results}"
        )

    def __enter__(self) -> USAspendingAwardClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.transport.close()

    def is_enabled(self) -> bool:
        return self.config.enabled

    # ------------------------------------------------------------------
    # Award search
    # ------------------------------------------------------------------

    def search_awards(self, search_filter: AwardSearchFilter | None = None) -> AwardSearch:
        """Search awards matching a filter.

        Args:
            search_filter: Filter for this walk. None searches the configured
                award types over the configured lookback window.

        Returns:
            Lazy iterable of records; inspect ``outcome``/``error`` after iterating
        """
        return AwardSearch(
            self,
            search_filter or AwardSearchFilter(),
            max_results=self.config.max_results,
        )

    def build_search_request(self, search_filter: AwardSearchFilter, page: int) -> dict[str, Any]:
        """Build the spending_by_award request body for one page."""
        end_date = search_filter.end_date or date.today()
        start_date = search_filter.start_date or end_date - timedelta(
            days=search_filter.lookback_days or self.config.award_lookback_days
        )

        filters: dict[str, Any] = {
            "award_type_codes": list(search_filter.award_types or self.config.award_types),
            "time_period": [
                {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}
            ],
        }
        if search_filter.naics_codes:
            filters["naics_codes"] = list(search_filter.naics_codes)
        if search_filter.agencies:
            filters["agencies"] = [
                {"type": "awarding", "tier": "toptier", "name": agency}
                for agency in search_filter.agencies
            ]

        return {
            "filters": filters,
            "fields": list(AWARD_SEARCH_FIELDS),
            "page": page,
            "limit": self.config.page_size,
            "sort": DEFAULT_SORT_FIELD,
            "order": DEFAULT_SORT_ORDER,
        }

    def search_page(self, search_filter: AwardSearchFilter, page: int) -> SearchResponsePage:
        """Fetch and decode one page of search results.

        Raises:
            APIError: Transport, status or decode failure for this page
        """
        body = self.build_search_request(search_filter, page)
        logger.debug(f"Fetching USAspending award page {page} (limit={self.config.page_size})")
        payload = self.transport.post_json(SEARCH_ENDPOINT, body)

        try:
            return SearchResponsePage.from_api(payload)
        except ValidationError as e:
            raise ResponseDecodeError(
                f"Unexpected award search response shape: {e.error_count()} errors",
                api_name=self.api_name,
                endpoint=SEARCH_ENDPOINT,
                operation="search_page",
                cause=e,
            ) from e
        except Exception as e:
            raise wrap_exception(
                e,
                ResponseDecodeError,
                f"Award search response could not be decoded: {e!r}",
                api_name=self.api_name,
                endpoint=SEARCH_ENDPOINT,
                operation="search_page",
            ) from e

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_object(self, endpoint: str, description: str) -> dict[str, Any]:
        try:
            return self.transport.get_json(endpoint)
        except APIError as e:
            logger.warning(
                f"USAspending {description} lookup failed ({e.failure_kind.value}): {e.message}"
            )
            return {}

    def get_recipient_spending(self, recipient_uei: str | None) -> dict[str, Any]:
        """Recipient profile by UEI; ``{}`` when disabled, blank or failed."""
        if not self.is_enabled() or not recipient_uei or not recipient_uei.strip():
            return {}
        return self._get_object(f"/recipient/{recipient_uei.strip()}/", "recipient")

    def get_agency_budget(self, toptier_code: str | None) -> dict[str, Any]:
        """Budgetary resources for a toptier agency code such as "097"."""
        if not self.is_enabled() or not toptier_code or not toptier_code.strip():
            return {}
        return self._get_object(
            f"/agency/{toptier_code.strip()}/budgetary_resources/", "agency budget"
        )

    def get_toptier_agencies(self) -> list[dict[str, Any]]:
        """List toptier agencies; ``[]`` when disabled or failed."""
        if not self.is_enabled():
            return []
        payload = self._get_object(TOPTIER_AGENCIES_ENDPOINT, "toptier agencies")
        results = payload.get("results")
        if not isinstance(results, list):
            return []
        return [agency for agency in results if isinstance(agency, dict)]
