"""US Census Bureau geocoder client.

Resolves addresses to coordinates plus state/county/tract FIPS codes using the
free Census geocoder (https://geocoding.geo.census.gov/geocoder/). Enrichment
is best-effort: blank input, a disabled client, transport errors, non-2xx
responses and malformed bodies all produce None for that address.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from ...config.loader import get_config
from ...config.schemas.enrichment import CensusGeocoderConfig
from ...exceptions import APIError, ResponseDecodeError, wrap_exception
from ...models.geocoding import GeocoderResponse, SimpleGeocodingResult
from ...utils.rate_limiter import RateLimiter
from ..transport import RateLimitedTransport


ONELINE_ENDPOINT = "/geographies/onelineaddress"
ADDRESS_ENDPOINT = "/geographies/address"
COORDINATES_ENDPOINT = "/geographies/coordinates"


def _is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


class CensusGeocoderClient:
    """Synchronous, rate-limited client for the Census geocoder."""

    api_name = "census_geocoder"

    def __init__(
        self,
        config: CensusGeocoderConfig | dict[str, Any] | None = None,
        *,
        http_client: httpx.Client | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        """Initialize the geocoder client.

        Args:
            config: Config model or dict override. If None, loads from get_config()
            http_client: Optional pre-configured HTTPX client (useful for tests)
            rate_limiter: Optional limiter; defaults to one built from rate_limit_ms
        """
        if config is None:
            self.config = get_config().census
        elif isinstance(config, CensusGeocoderConfig):
            self.config = config
        else:
            self.config = CensusGeocoderConfig(**config)

        self.rate_limiter = rate_limiter or RateLimiter.from_milliseconds(
            self.config.rate_limit_ms, name=self.api_name
        )
        self.transport = RateLimitedTransport(
            self.config.geocoder_url,
            self.rate_limiter,
            timeout=self.config.timeout_seconds,
            api_name=self.api_name,
            http_client=http_client,
        )

        logger.info(
            f"Initialized CensusGeocoderClient: base_url={self.config.geocoder_url}, "
            f"enabled={self.config.enabled}, rate_limit={self.config.rate_limit_ms}ms"
        )

    def __enter__(self) -> CensusGeocoderClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.transport.close()

    def is_enabled(self) -> bool:
        return self.config.enabled

    def _base_params(self) -> dict[str, str]:
        return {
            "benchmark": self.config.benchmark,
            "vintage": self.config.vintage,
            "layers": "all",
            "format": "json",
        }

    def _lookup(
        self, endpoint: str, params: dict[str, Any], label: str
    ) -> SimpleGeocodingResult | None:
        """Run one geocoder request and reduce its best match.

        Every APIError raised below this point ends here as None.
        """
        try:
            payload = self.transport.get_json(endpoint, params={**params, **self._base_params()})
            response = self._decode(payload, endpoint)
        except APIError as e:
            logger.warning(
                f"Geocoding failed for {label!r} ({e.failure_kind.value}): {e.message}"
            )
            return None

        result = response.result
        if result is None or not result.has_matches():
            logger.debug(f"No geocoding match for {label!r}")
            return None

        geocoded = SimpleGeocodingResult.from_match(result.get_best_match())
        if geocoded is not None:
            logger.debug(
                f"Geocoded {label!r} -> {geocoded.matched_address} "
                f"({geocoded.latitude}, {geocoded.longitude})"
            )
        return geocoded

    def _decode(self, payload: dict[str, Any], endpoint: str) -> GeocoderResponse:
        try:
            return GeocoderResponse.model_validate(payload)
        except ValidationError as e:
            raise ResponseDecodeError(
                f"Unexpected geocoder response shape: {e.error_count()} errors",
                api_name=self.api_name,
                endpoint=endpoint,
                operation="decode",
                cause=e,
            ) from e
        except Exception as e:
            raise wrap_exception(
                e,
                ResponseDecodeError,
                f"Geocoder response could not be decoded: {e!r}",
                api_name=self.api_name,
                endpoint=endpoint,
                operation="decode",
            ) from e

    def geocode_address(self, address: str | None) -> SimpleGeocodingResult | None:
        """Geocode a single-line address such as "1600 Pennsylvania Ave NW, Washington, DC 20500".

        Returns:
            Flattened best match, or None when blank, disabled, unmatched or failed.
            The result may lack coordinates; check ``is_valid()``.
        """
        if _is_blank(address):
            return None
        if not self.is_enabled():
            logger.debug("Census geocoding disabled, skipping address lookup")
            return None

        address = str(address).strip()
        return self._lookup(ONELINE_ENDPOINT, {"address": address}, address)

    def geocode_address_components(
        self,
        street: str | None,
        city: str | None,
        state: str | None,
        zip_code: str | None,
    ) -> SimpleGeocodingResult | None:
        """Geocode a structured address. Only non-blank components are sent."""
        if _is_blank(street) and _is_blank(city) and _is_blank(state):
            return None
        if not self.is_enabled():
            logger.debug("Census geocoding disabled, skipping component lookup")
            return None

        params: dict[str, str] = {}
        for key, value in (("street", street), ("city", city), ("state", state), ("zip", zip_code)):
            if not _is_blank(value):
                params[key] = str(value).strip()

        label = ", ".join(params.values())
        return self._lookup(ADDRESS_ENDPOINT, params, label)

    def reverse_geocode(
        self,
        latitude: Decimal | float | None,
        longitude: Decimal | float | None,
    ) -> SimpleGeocodingResult | None:
        """Resolve FIPS geographies for a point (x = longitude, y = latitude)."""
        if latitude is None or longitude is None:
            return None
        if not self.is_enabled():
            logger.debug("Census geocoding disabled, skipping reverse lookup")
            return None

        params = {"x": str(longitude), "y": str(latitude)}
        return self._lookup(COORDINATES_ENDPOINT, params, f"{latitude},{longitude}")

    def geocode_batch(
        self, addresses: Iterable[str | None]
    ) -> dict[str, SimpleGeocodingResult | None]:
        """Geocode addresses in order, one request per distinct address.

        At most ``batch_size`` distinct addresses are processed per call;
        addresses past the cap are left out of the returned mapping. Blank
        entries are skipped and duplicates are geocoded once.

        Returns:
            Mapping of input address to result (None when not geocoded)
        """
        results: dict[str, SimpleGeocodingResult | None] = {}
        skipped = 0

        for address in addresses:
            if _is_blank(address):
                continue
            key = str(address)
            if key in results:
                continue
            if len(results) >= self.config.batch_size:
                skipped += 1
                continue
            results[key] = self.geocode_address(key)

        if skipped:
            logger.warning(
                f"Geocode batch capped at {self.config.batch_size} addresses; "
                f"{skipped} left for a later batch"
            )

        matched = sum(1 for result in results.values() if result is not None and result.is_valid())
        logger.info(f"Geocoded {matched}/{len(results)} addresses in batch")
        return results
