"""Pydantic models for US Census Bureau geocoder responses.

The geocoder returns deeply nested, partially populated JSON. Each level gets
its own immutable model with every field optional; the FIPS derivations live
in small pure functions so decoding and business rules can be tested apart.

Response shape (abridged):

    {"result": {
        "input": {"address": {"address": "..."}, "benchmark": {...}, "vintage": {...}},
        "addressMatches": [{
            "matchedAddress": "1600 PENNSYLVANIA AVE NW, WASHINGTON, DC, 20500",
            "coordinates": {"x": -77.0365, "y": 38.8976},
            "tigerLine": {"tigerLineId": "76225813", "side": "L"},
            "addressComponents": {"city": "WASHINGTON", "state": "DC", "zip": "20500", ...},
            "geographies": {"States": [{"STATE": "11", ...}], "Counties": [...], ...}
        }]
    }}
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator


STATES_LAYER = "States"
COUNTIES_LAYER = "Counties"
CENSUS_TRACTS_LAYER = "Census Tracts"


def to_decimal(value: Any) -> Decimal | None:
    """Coerce a JSON number or numeric string to Decimal, None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        number = Decimal(str(value))
        return number if number.is_finite() else None
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return None
    return None


def to_optional_str(value: Any) -> str | None:
    """Coerce scalar JSON values to str; containers and blanks become None."""
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


class _GeocoderModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Coordinates(_GeocoderModel):
    """Point location; the geocoder reports x as longitude and y as latitude."""

    longitude: Decimal | None = Field(None, alias="x")
    latitude: Decimal | None = Field(None, alias="y")

    @field_validator("longitude", "latitude", mode="before")
    @classmethod
    def _coerce_decimal(cls, value: Any) -> Decimal | None:
        return to_decimal(value)

    def is_complete(self) -> bool:
        return self.longitude is not None and self.latitude is not None


class AddressComponents(_GeocoderModel):
    """Parsed structured address; display and cross-check only."""

    from_address: str | None = Field(None, alias="fromAddress")
    to_address: str | None = Field(None, alias="toAddress")
    pre_qualifier: str | None = Field(None, alias="preQualifier")
    pre_direction: str | None = Field(None, alias="preDirection")
    pre_type: str | None = Field(None, alias="preType")
    street_name: str | None = Field(None, alias="streetName")
    suffix_type: str | None = Field(None, alias="suffixType")
    suffix_direction: str | None = Field(None, alias="suffixDirection")
    suffix_qualifier: str | None = Field(None, alias="suffixQualifier")
    city: str | None = None
    state: str | None = None
    zip: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return to_optional_str(value)


class TigerLine(_GeocoderModel):
    tiger_line_id: str | None = Field(None, alias="tigerLineId")
    side: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return to_optional_str(value)


class Geography(_GeocoderModel):
    """One row of a named geography layer (state, county, tract, ...)."""

    geo_id: str | None = Field(None, alias="GEOID")
    cent_lat: str | None = Field(None, alias="CENTLAT")
    cent_lon: str | None = Field(None, alias="CENTLON")
    area_land: int | None = Field(None, alias="AREALAND")
    area_water: int | None = Field(None, alias="AREAWATER")
    name: str | None = Field(None, alias="NAME")
    lsad: str | None = Field(None, alias="LSAD")
    func_stat: str | None = Field(None, alias="FUNCSTAT")
    state: str | None = Field(None, alias="STATE")
    county: str | None = Field(None, alias="COUNTY")
    tract: str | None = Field(None, alias="TRACT")
    block_group: str | None = Field(None, alias="BLKGRP")

    @field_validator(
        "geo_id",
        "cent_lat",
        "cent_lon",
        "name",
        "lsad",
        "func_stat",
        "state",
        "county",
        "tract",
        "block_group",
        mode="before",
    )
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return to_optional_str(value)

    @field_validator("area_land", "area_water", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            return None


def _decode_geographies(value: Any) -> dict[str, list[Any]] | None:
    """Keep only layer entries shaped like a list of row objects."""
    if value is None:
        return None
    if not isinstance(value, Mapping):
        logger.debug(f"Ignoring geographies block of type {type(value).__name__}")
        return None
    layers: dict[str, list[Any]] = {}
    for layer, rows in value.items():
        if isinstance(rows, list):
            layers[str(layer)] = [row for row in rows if isinstance(row, (Mapping, Geography))]
    return layers


def first_geography(
    geographies: Mapping[str, Sequence[Geography]] | None, layer: str
) -> Geography | None:
    """Return the authoritative (first) row of a layer, None if absent or empty."""
    if not geographies:
        return None
    rows = geographies.get(layer)
    if not rows:
        return None
    return rows[0]


def derive_state_fips(geographies: Mapping[str, Sequence[Geography]] | None) -> str | None:
    row = first_geography(geographies, STATES_LAYER)
    return row.state if row else None


def derive_county_fips(geographies: Mapping[str, Sequence[Geography]] | None) -> str | None:
    """State FIPS + county FIPS of the first county row (e.g. "11" + "001")."""
    row = first_geography(geographies, COUNTIES_LAYER)
    if row is None or row.state is None or row.county is None:
        return None
    return f"{row.state}{row.county}"


def derive_census_tract(geographies: Mapping[str, Sequence[Geography]] | None) -> str | None:
    row = first_geography(geographies, CENSUS_TRACTS_LAYER)
    return row.tract if row else None


class AddressMatch(_GeocoderModel):
    """One candidate match returned by the geocoder."""

    matched_address: str | None = Field(None, alias="matchedAddress")
    coordinates: Coordinates | None = None
    tiger_line: TigerLine | None = Field(None, alias="tigerLine")
    address_components: AddressComponents | None = Field(None, alias="addressComponents")
    geographies: dict[str, list[Geography]] | None = None

    @field_validator("matched_address", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return to_optional_str(value)

    @field_validator("coordinates", "tiger_line", "address_components", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any) -> Any:
        if value is None or isinstance(value, (Mapping, BaseModel)):
            return value
        return None

    @field_validator("geographies", mode="before")
    @classmethod
    def _coerce_geographies(cls, value: Any) -> dict[str, list[Any]] | None:
        return _decode_geographies(value)

    @property
    def state_fips(self) -> str | None:
        return derive_state_fips(self.geographies)

    @property
    def county_fips(self) -> str | None:
        return derive_county_fips(self.geographies)

    @property
    def census_tract(self) -> str | None:
        return derive_census_tract(self.geographies)


class GeocoderResult(_GeocoderModel):
    """Top-level result: optional input echo plus ranked address matches."""

    input: dict[str, Any] | None = None
    address_matches: list[AddressMatch] | None = Field(None, alias="addressMatches")

    @field_validator("input", mode="before")
    @classmethod
    def _drop_non_object_input(cls, value: Any) -> Any:
        return value if isinstance(value, Mapping) else None

    @field_validator("address_matches", mode="before")
    @classmethod
    def _drop_non_object_matches(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, list):
            return None
        return [item for item in value if isinstance(item, (Mapping, AddressMatch))]

    def has_matches(self) -> bool:
        return bool(self.address_matches)

    def get_best_match(self) -> AddressMatch | None:
        """First match as ranked by the geocoder; no re-ranking is applied."""
        if not self.address_matches:
            return None
        return self.address_matches[0]


class GeocoderResponse(_GeocoderModel):
    """Envelope of every geocoder endpoint: ``{"result": {...}}``."""

    result: GeocoderResult | None = None


class SimpleGeocodingResult(_GeocoderModel):
    """Flattened geocoding output consumed by the rest of the system."""

    matched_address: str | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    state_fips: str | None = None
    county_fips: str | None = None
    census_tract: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None

    @classmethod
    def from_match(cls, match: AddressMatch | None) -> SimpleGeocodingResult | None:
        """Reduce one AddressMatch to the flat result; None in, None out."""
        if match is None:
            return None

        coordinates = match.coordinates
        components = match.address_components

        return cls(
            matched_address=match.matched_address,
            latitude=coordinates.latitude if coordinates else None,
            longitude=coordinates.longitude if coordinates else None,
            state_fips=match.state_fips,
            county_fips=match.county_fips,
            census_tract=match.census_tract,
            city=components.city if components else None,
            state=components.state if components else None,
            zip=components.zip if components else None,
        )

    def is_valid(self) -> bool:
        """A usable point needs both latitude and longitude."""
        return self.latitude is not None and self.longitude is not None


__all__ = [
    "AddressComponents",
    "AddressMatch",
    "CENSUS_TRACTS_LAYER",
    "COUNTIES_LAYER",
    "Coordinates",
    "GeocoderResponse",
    "GeocoderResult",
    "Geography",
    "STATES_LAYER",
    "SimpleGeocodingResult",
    "TigerLine",
    "derive_census_tract",
    "derive_county_fips",
    "derive_state_fips",
    "first_geography",
    "to_decimal",
    "to_optional_str",
]
