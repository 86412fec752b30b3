"""Census geocoding and USAspending award enrichment for contract opportunities."""

__version__ = "0.1.0"
