r"""
Shared pytest fixtures for isolation-bench tests.
"""

import pytest

from fakes import InMemoryStore
from isolation_bench.config import PROFILES
from isolation_bench.types import RunProfile


@pytest.fixture
def quick_profile() -> RunProfile:
    """Quick profile configuration for testing."""
    return PROFILES["quick"]


@pytest.fixture
def tiny_profile() -> RunProfile:
    """Tiny profile for fast unit tests."""
    return RunProfile(
        name="tiny",
        iterations=40,
        workers=8,
        retry_budget=3,
        stress_retry_budget=1000,
        handshake_timeout=2.0,
        scenario_timeout=10.0,
        stress_timeout=30.0,
    )


@pytest.fixture
def memory_store():
    """Connected in-memory store."""
    store = InMemoryStore()
    store.connect()
    yield store
    store.disconnect()
