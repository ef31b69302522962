r"""
Scenario runner and orchestration.

Runs every selected (store, scenario, isolation level) cell under a
wall-clock guard and compares each verdict with the store's contract.

    from isolation_bench.runner import ScenarioOrchestrator

    orchestrator = ScenarioOrchestrator()
    results = orchestrator.run(stores, profile="quick")
"""

from isolation_bench.runner.orchestrator import OrchestratorConfig, OrchestratorResult, ScenarioOrchestrator
from isolation_bench.runner.timing import Timer

__all__ = [
    "OrchestratorConfig",
    "OrchestratorResult",
    "ScenarioOrchestrator",
    "Timer",
]
