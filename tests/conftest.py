"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pathwise.clock import deterministic_id_generator, fixed_clock  # noqa: E402
from pathwise.engine import create_deterministic_engine  # noqa: E402
from pathwise.events import EventFactory  # noqa: E402
from pathwise.graph import Skill, build_skill_graph  # noqa: E402

MS_PER_DAY = 24 * 60 * 60 * 1000
BASE_TIME = 1_700_000_000_000


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Engine-level tests across components")
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


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def chain_graph():
    """A -> B -> C, plus D depending on A."""
    return build_skill_graph(
        [
            Skill("A", "Counting"),
            Skill("B", "Addition", ("A",)),
            Skill("C", "Multiplication", ("B",)),
            Skill("D", "Subtraction", ("A",)),
        ]
    )


@pytest.fixture
def two_skill_graph():
    """A with no prerequisites, B requiring A."""
    return build_skill_graph([Skill("A", "Skill A"), Skill("B", "Skill B", ("A",))])


@pytest.fixture
def event_factory():
    """Factory stamping events one second apart with sequential ids."""
    return EventFactory(
        clock=fixed_clock(BASE_TIME, 1000),
        id_generator=deterministic_id_generator("evt", 4),
    )


@pytest.fixture
def engine(chain_graph):
    """Deterministic engine over the chain graph."""
    return create_deterministic_engine(chain_graph, start_time=BASE_TIME)
