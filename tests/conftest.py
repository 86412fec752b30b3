# govcon-enrichment/tests/conftest.py
#
# Test bootstrap for pytest: ensure repository root is on sys.path so tests can import
# the `govcon_enrichment` package and `tests.mocks` without PYTHONPATH being set.
#
# Fixture Organization:
# - This file: Core fixtures (repo_root, client configs, fake clock, in-memory repository)
# - tests/mocks/: HTTP fakes, upstream payload builders, repository fakes
#
from __future__ import annotations

import sys
from pathlib import Path

import pytest
from loguru import logger


def _find_repo_root(start: Path | None = None) -> Path:
    """
    Walk upwards from `start` (defaults to this file's parent) until a likely
    repository root is found (pyproject.toml or .git). Falls back to one level
    up from this file.
    """
    if start is None:
        start = Path(__file__).resolve().parent

    current = start
    while True:
        for marker in ("pyproject.toml", ".git"):
            if (current / marker).exists():
                return current
        if current.parent == current:
            break
        current = current.parent

    return Path(__file__).resolve().parents[1]


_repo_root = _find_repo_root()
_repo_root_str = str(_repo_root)

if _repo_root_str not in sys.path:
    sys.path.insert(0, _repo_root_str)

# Configure test logging using loguru for consistency with application code
logger.remove()
logger.add(
    sys.stderr,
    level="INFO",
    format="{time:YYYY-MM-DD HH:mm:ss} {level} {name}: {message}",
)

from govcon_enrichment.config.loader import reload_config  # noqa: E402
from govcon_enrichment.config.schemas import (  # noqa: E402
    CensusGeocoderConfig,
    CoordinatorConfig,
    USAspendingConfig,
)
from tests.mocks.clock import FakeClock  # noqa: E402
from tests.mocks.repository import InMemoryOpportunityRepository  # noqa: E402


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "fast: Fast unit tests that should complete in < 1 second",
    )
    config.addinivalue_line(
        "markers",
        "slow: Slow tests that may take > 1 second to complete",
    )
    config.addinivalue_line(
        "markers",
        "integration: Integration tests that require external services",
    )


@pytest.fixture(scope="session")
def repo_root() -> Path:
    """Return the repository root Path for tests that read files relative to the project."""
    return _repo_root


@pytest.fixture(autouse=True)
def _clear_config_cache():
    """Every test sees a fresh get_config() cache."""
    reload_config()
    yield
    reload_config()


@pytest.fixture
def census_config() -> CensusGeocoderConfig:
    return CensusGeocoderConfig(rate_limit_ms=0, batch_size=10)


@pytest.fixture
def usaspending_config() -> USAspendingConfig:
    return USAspendingConfig(rate_limit_ms=0, page_size=100, max_results=1000)


@pytest.fixture
def coordinator_config() -> CoordinatorConfig:
    return CoordinatorConfig(retry_attempts=2, retry_backoff_seconds=0.0)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemoryOpportunityRepository:
    return InMemoryOpportunityRepository()
