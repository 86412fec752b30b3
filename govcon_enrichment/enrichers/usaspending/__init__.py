"""
USAspending.gov integration.

Module Structure:
- client: Synchronous API client for USAspending.gov API v2
- pagination: Lazy page walk over award search results

Exported Classes:
- USAspendingAwardClient: Award search and lookup client with rate limiting
- AwardSearch: Iterable search result exposing outcome and error
- AwardCursor: One pass over a search with its own outcome and counters
"""

from .client import USAspendingAwardClient
from .pagination import AwardCursor, AwardSearch


__all__ = ["AwardCursor", "AwardSearch", "USAspendingAwardClient"]
