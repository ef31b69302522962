r"""
isolation-bench: Deterministic transaction isolation anomaly harness.

Provokes dirty reads, non-repeatable reads, write skew and lost updates
against MySQL, PostgreSQL and DuckDB at every isolation level, and checks
each verdict against what the store's isolation contract predicts.

    from isolation_bench import IsolationLevel
    from isolation_bench.adapters import AdapterRegistry
    from isolation_bench.scenarios import DirtyReadScenario

    store = AdapterRegistry.create("mysql")
    store.connect()
    DirtyReadScenario().try_perform(store, IsolationLevel.READ_UNCOMMITTED)
"""

from isolation_bench.config import DEFAULT_PROFILE, PROFILES, get_profile
from isolation_bench.types import (
    Anomaly,
    IsolationLevel,
    Predicate,
    Row,
    RunProfile,
    ScenarioOutcome,
    ScenarioResult,
    Status,
    StressResult,
    TransactionOutcome,
    TransactionStatus,
)

__all__ = [
    "Anomaly",
    "DEFAULT_PROFILE",
    "IsolationLevel",
    "PROFILES",
    "Predicate",
    "Row",
    "RunProfile",
    "ScenarioOutcome",
    "ScenarioResult",
    "Status",
    "StressResult",
    "TransactionOutcome",
    "TransactionStatus",
    "get_profile",
]

__version__ = "0.1.0"
