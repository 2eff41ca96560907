"""
Shared pytest configuration and fixtures for the PR-STV count engine.

This module provides common test fixtures and utilities used across
all test modules.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ballots.models import Ballot  # noqa: E402


def make_ballots(groups, start=1):
    """
    Build ballots from ``[(copies, [candidate ids in preference order]), ...]``.

    Ballot ids run ``ballot_<start>`` upwards in group order.
    """
    ballots = []
    number = start
    for copies, ranking in groups:
        for _ in range(copies):
            preferences = {rank: cid for rank, cid in enumerate(ranking, 1)}
            ballots.append(Ballot(id=f"ballot_{number}", preferences=preferences))
            number += 1
    return ballots


@pytest.fixture
def ballot_factory():
    """Provide make_ballots to tests."""
    return make_ballots


@pytest.fixture
def sample_candidates():
    """Provide sample candidate data for testing."""
    return [
        {"id": 1, "name": "Alice", "party": "Green"},
        {"id": 2, "name": "Bob", "party": "Labour"},
        {"id": 3, "name": "Charlie", "party": None},
        {"id": 4, "name": "Diana", "party": "Independent"},
    ]


@pytest.fixture
def sample_ballots():
    """Provide sample ballot data for testing."""
    return [
        # Ballot 1: Alice=1, Bob=2, Charlie=3
        Ballot(id="B001", preferences={1: 1, 2: 2, 3: 3}),
        # Ballot 2: Bob=1, Alice=2
        Ballot(id="B002", preferences={1: 2, 2: 1}),
        # Ballot 3: Charlie=1, Diana=2, Alice=3
        Ballot(id="B003", preferences={1: 3, 2: 4, 3: 1}),
    ]


@pytest.fixture
def surplus_candidates():
    return [
        {"id": "A", "name": "Alice", "party": "Green"},
        {"id": "B", "name": "Bob", "party": "Labour"},
        {"id": "C", "name": "Charlie", "party": "Independent"},
    ]


@pytest.fixture
def surplus_ballots():
    """15 ballots, quota 6 for 2 seats; Alice's surplus elects Bob."""
    return make_ballots([(8, ["A", "B"]), (4, ["B"]), (3, ["C"])])


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (full counts, seeded simulations)",
    )
    config.addinivalue_line(
        "markers",
        "golden: marks tests as golden dataset validation (hand-computed counts)",
    )
    config.addinivalue_line(
        "markers", "invariant: marks tests as mathematical invariant validation"
    )
    config.addinivalue_line(
        "markers", "smoke: marks tests as smoke tests (basic functionality check)"
    )
