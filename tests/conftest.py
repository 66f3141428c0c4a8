"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from questline.config import Settings  # noqa: E402
from questline.core.models import SubScores  # noqa: E402
from questline.engine.service import ProgressionService  # noqa: E402
from questline.store.memory import InMemoryProfileStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (stores, full quest flows)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings():
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        store_backend="memory",
        window_size=10,
        history_limit=50,
        hint_cost_xp=5,
        abandon_penalty_xp=10,
        default_expected_duration_seconds=600,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryProfileStore()


@pytest.fixture
def service(store, settings, clock):
    return ProgressionService(store, settings, clock=clock)


@pytest.fixture
def max_scores():
    """Full marks in every rubric dimension (base XP 100)."""
    return SubScores(
        code_quality=25,
        problem_solving=30,
        concept_understanding=20,
        best_practices=15,
        creativity=10,
    )


@pytest.fixture
def half_scores():
    """Rubric summing to 50."""
    return SubScores(
        code_quality=12,
        problem_solving=15,
        concept_understanding=10,
        best_practices=8,
        creativity=5,
    )
