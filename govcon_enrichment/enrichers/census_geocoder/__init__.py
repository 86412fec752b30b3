"""US Census Bureau geocoder integration."""

from .client import CensusGeocoderClient


__all__ = ["CensusGeocoderClient"]
