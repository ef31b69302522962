r"""
Result collection and aggregation.

    from isolation_bench.reporting.collector import ResultCollector

    collector = ResultCollector()
    collector.start_session(profile="quick", stores=["DuckDB"])
    collector.add_results(orchestrator_result.results)
"""

import os
import platform
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from isolation_bench.types import IsolationLevel, ScenarioResult, Status

__all__ = ["EnvironmentInfo", "ResultCollector", "SessionInfo"]


@dataclass
class SessionInfo:
    """Information about a run session.

    Attributes:
        session_id: Unique session identifier.
        started_at: Session start timestamp.
        completed_at: Session end timestamp (empty if ongoing).
        profile: Run profile name used.
        stores: Names of the stores tested.
        store_versions: Store name -> server or library version.
    """

    session_id: str = ""
    started_at: str = ""
    completed_at: str = ""
    profile: str = ""
    stores: list[str] = field(default_factory=list)
    store_versions: dict[str, str] = field(default_factory=dict)


@dataclass
class EnvironmentInfo:
    """Information about the run environment.

    Attributes:
        platform: Operating system platform.
        python_version: Python version string.
        cpu: CPU description.
        cpu_count: Logical CPUs, which sizes the stress pool.
    """

    platform: str = ""
    python_version: str = ""
    cpu: str = ""
    cpu_count: int = 0


class ResultCollector:
    """Collects and aggregates scenario results."""

    def __init__(self) -> None:
        self._results: list[ScenarioResult] = []
        self._session = SessionInfo()
        self._environment = EnvironmentInfo()
        self._started_at: datetime | None = None

    def start_session(self, *, profile: str, stores: list[str], store_versions: dict[str, str] | None = None) -> None:
        """Start a new run session."""
        self._started_at = datetime.now(UTC)
        self._session = SessionInfo(
            session_id=f"iso_{self._started_at.strftime('%Y%m%d_%H%M%S')}",
            started_at=self._started_at.isoformat(),
            profile=profile,
            stores=stores,
            store_versions=dict(store_versions or {}),
        )
        self._collect_environment()

    def _collect_environment(self) -> None:
        self._environment = EnvironmentInfo(
            platform=platform.system().lower(),
            python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
            cpu=platform.processor() or "unknown",
            cpu_count=os.cpu_count() or 0,
        )

    def end_session(self) -> None:
        """End the current run session."""
        self._session.completed_at = datetime.now(UTC).isoformat()

    def add_result(self, result: ScenarioResult) -> None:
        """Add a scenario result."""
        self._results.append(result)

    def add_results(self, results: list[ScenarioResult]) -> None:
        """Add multiple scenario results."""
        self._results.extend(results)

    @property
    def results(self) -> list[ScenarioResult]:
        """Get all collected results."""
        return self._results

    @property
    def session(self) -> SessionInfo:
        """Get session information."""
        return self._session

    @property
    def environment(self) -> EnvironmentInfo:
        """Get environment information."""
        return self._environment

    def get_results_by_store(self, store: str) -> list[ScenarioResult]:
        """Get results for a specific store."""
        return [r for r in self._results if r.store == store]

    def get_results_by_scenario(self, scenario: str) -> list[ScenarioResult]:
        """Get results for a specific scenario."""
        return [r for r in self._results if r.scenario == scenario]

    def get_result(self, store: str, scenario: str, level: IsolationLevel) -> ScenarioResult | None:
        """Get the result of one matrix cell."""
        return next(
            (r for r in self._results if r.store == store and r.scenario == scenario and r.level == level),
            None,
        )

    def summarize(self) -> dict[str, dict[str, int]]:
        """Count results per status for every store.

        Returns:
            Dict mapping store name to dict of status name -> count.
        """
        summary: dict[str, dict[str, int]] = {}
        for store in self._session.stores or sorted({r.store for r in self._results}):
            counts = {status.name: 0 for status in Status}
            for r in self.get_results_by_store(store):
                counts[r.status.name] += 1
            summary[store] = counts
        return summary

    def to_dict(self) -> dict[str, Any]:
        """Convert collected data to dictionary."""
        return {
            "session": {
                "id": self._session.session_id,
                "started_at": self._session.started_at,
                "completed_at": self._session.completed_at,
                "profile": self._session.profile,
                "stores": self._session.stores,
                "store_versions": self._session.store_versions,
            },
            "environment": {
                "platform": self._environment.platform,
                "python_version": self._environment.python_version,
                "cpu": self._environment.cpu,
                "cpu_count": self._environment.cpu_count,
            },
            "results": [self._result_to_dict(r) for r in self._results],
            "summary": self.summarize(),
        }

    def _result_to_dict(self, result: ScenarioResult) -> dict[str, Any]:
        """Convert a single result to dictionary."""
        data: dict[str, Any] = {
            "scenario": result.scenario,
            "anomaly": result.anomaly.key,
            "store": result.store,
            "level": result.level.key,
            "effective_level": result.effective_level.key if result.effective_level else None,
            "expected": result.expected,
            "observed": result.observed,
            "status": result.status.name,
            "elapsed_ms": round(result.elapsed_ms, 3),
        }

        if result.metadata:
            data["metadata"] = result.metadata

        if result.error:
            data["error"] = result.error

        return data
