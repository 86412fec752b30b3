"""Shared mock factories for test suite."""

from tests.mocks.clock import FakeClock
from tests.mocks.http import MockUpstream
from tests.mocks.payloads import CensusPayloads, USAspendingPayloads
from tests.mocks.repository import InMemoryOpportunityRepository

__all__ = [
    "CensusPayloads",
    "FakeClock",
    "InMemoryOpportunityRepository",
    "MockUpstream",
    "USAspendingPayloads",
]
