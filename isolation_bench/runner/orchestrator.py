r"""
Scenario orchestrator for running the anomaly x isolation level matrix.

Every cell runs under a wall-clock guard and is compared with the verdict
the store's isolation contract predicts.

    from isolation_bench.runner import ScenarioOrchestrator

    orchestrator = ScenarioOrchestrator()
    results = orchestrator.run(stores, profile="quick")
"""

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass, field

from isolation_bench.config import DEFAULT_PROFILE, get_profile
from isolation_bench.protocols import TransactionalStore
from isolation_bench.runner.timing import Timer
from isolation_bench.scenarios.base import BaseScenario, ScenarioRegistry, TwoPartyScenario
from isolation_bench.types import IsolationLevel, RunProfile, ScenarioOutcome, ScenarioResult, Status

__all__ = ["OrchestratorConfig", "OrchestratorResult", "ProgressCallback", "ScenarioOrchestrator"]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str, str], None]

BLOCKED_BY_STORE = "blocked by the store"


@dataclass
class OrchestratorConfig:
    """Configuration for matrix orchestration.

    Attributes:
        profile: Run profile or its name.
        scenarios: Scenario names to run (None = all).
        levels: Isolation levels to run (None = all four).
        timeout_override: Override the per-cell wall-clock guard, in seconds.
        continue_on_error: Continue running after failures.
        verbose: Enable verbose output.
    """

    profile: str | RunProfile = DEFAULT_PROFILE
    scenarios: list[str] | None = None
    levels: list[IsolationLevel] | None = None
    timeout_override: float | None = None
    continue_on_error: bool = True
    verbose: bool = False


@dataclass
class OrchestratorResult:
    """Results from orchestrator run.

    Attributes:
        results: One ScenarioResult per (store, scenario, level) cell.
        started_at: Timestamp when run started.
        completed_at: Timestamp when run completed.
        profile: Run profile used.
        stores: Names of the stores tested.
    """

    results: list[ScenarioResult] = field(default_factory=list)
    started_at: float = 0.0
    completed_at: float = 0.0
    profile: RunProfile | None = None
    stores: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        """Total duration in seconds."""
        return self.completed_at - self.started_at

    @property
    def success_count(self) -> int:
        """Cells that matched the contract or were skipped."""
        return sum(1 for r in self.results if r.ok)

    @property
    def failure_count(self) -> int:
        """Cells that mismatched, failed or timed out."""
        return sum(1 for r in self.results if not r.ok)

    @property
    def mismatches(self) -> list[ScenarioResult]:
        return [r for r in self.results if r.status == Status.MISMATCH]


class ScenarioOrchestrator:
    """Orchestrates scenario execution across stores and isolation levels."""

    def __init__(self, *, config: OrchestratorConfig | None = None) -> None:
        self._config = config or OrchestratorConfig()
        self._progress_callback: ProgressCallback | None = None
        self._overrun: ThreadPoolExecutor | None = None

    def set_progress_callback(self, callback: ProgressCallback) -> None:
        """Set callback for progress updates."""
        self._progress_callback = callback

    def _run_with_timeout(
        self,
        scenario: BaseScenario,
        store: TransactionalStore,
        level: IsolationLevel,
        timeout_seconds: float,
    ) -> ScenarioOutcome:
        """Run scenario with a wall-clock guard.

        On expiry the worker is left running and kept in ``_overrun`` so
        the cell can be recorded first; ``_join_overrun`` waits for it
        before the store is used again.

        Raises:
            TimeoutError: If the scenario exceeds the guard.
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="guard")
        future = executor.submit(scenario.run, store, level)
        try:
            return future.result(timeout=timeout_seconds)
        except FuturesTimeout:
            self._overrun = executor
            msg = f"Scenario timed out after {timeout_seconds}s"
            raise TimeoutError(msg) from None
        finally:
            if self._overrun is not executor:
                executor.shutdown(wait=True)

    def _join_overrun(self, label: str) -> None:
        """Wait for a worker that outlived its guard.

        Handshake timeouts and the stress bound end it; until then it may
        still write to the store, so the next cell must not start.
        """
        if self._overrun is None:
            return
        logger.info("Waiting for %s to finish after its guard expired", label)
        with Timer() as timer:
            self._overrun.shutdown(wait=True)
        self._overrun = None
        logger.info("%s finished %.0f ms after its guard expired", label, timer.elapsed_ms)

    def run(
        self,
        stores: list[TransactionalStore],
        *,
        scenarios: list[BaseScenario] | None = None,
        levels: list[IsolationLevel] | None = None,
        profile: str | RunProfile | None = None,
    ) -> OrchestratorResult:
        """Run scenarios across all stores and levels.

        Args:
            stores: Connected stores to test.
            scenarios: Scenarios to run (None = use config/all).
            levels: Isolation levels (None = use config/all).
            profile: Run profile (None = use config).

        Returns:
            OrchestratorResult with one result per cell.
        """
        result = OrchestratorResult()
        result.started_at = time.time()

        run_profile = self._resolve_profile(profile)
        result.profile = run_profile
        result.stores = [s.name for s in stores]

        scenario_list = self._resolve_scenarios(scenarios, run_profile)
        level_list = levels or self._config.levels or list(IsolationLevel)

        for store in stores:
            for scenario in scenario_list:
                for level in level_list:
                    self._run_cell(store, scenario, level, run_profile, result)

        result.completed_at = time.time()
        return result

    def _resolve_profile(self, profile: str | RunProfile | None) -> RunProfile:
        """Resolve run profile."""
        if profile is None:
            profile = self._config.profile

        if isinstance(profile, str):
            return get_profile(profile)
        return profile

    def _resolve_scenarios(self, scenarios: list[BaseScenario] | None, profile: RunProfile) -> list[BaseScenario]:
        """Resolve list of scenarios to run."""
        if scenarios is not None:
            return scenarios

        names = self._config.scenarios
        if names is None:
            names = ScenarioRegistry.list()

        result = []
        for name in names:
            scenario_cls = ScenarioRegistry.get(name)
            if scenario_cls is None:
                valid = ", ".join(ScenarioRegistry.list())
                msg = f"Unknown scenario '{name}'. Valid scenarios: {valid}"
                raise ValueError(msg)
            result.append(scenario_cls(profile))
        return result

    def _timeout_for(self, scenario: BaseScenario, profile: RunProfile) -> float:
        if self._config.timeout_override:
            return self._config.timeout_override
        if isinstance(scenario, TwoPartyScenario):
            return profile.scenario_timeout
        # Outlast the stress driver's own bound so its error is reported
        return profile.stress_timeout + profile.scenario_timeout

    def _run_cell(
        self,
        store: TransactionalStore,
        scenario: BaseScenario,
        level: IsolationLevel,
        profile: RunProfile,
        result: OrchestratorResult,
    ) -> None:
        """Run one (store, scenario, level) cell and record it."""
        label = f"{scenario.name}@{level.key}"
        expected = store.contract.expects(scenario.anomaly, level)
        timeout = self._timeout_for(scenario, profile)
        guarded = level in getattr(scenario, "guarded_levels", frozenset())
        base = {
            "scenario": scenario.name,
            "anomaly": scenario.anomaly,
            "store": store.name,
            "level": level,
            "effective_level": store.effective_level(level),
            "expected": expected,
        }

        if self._progress_callback:
            self._progress_callback(store.name, label, "running")

        timer = Timer()
        try:
            with timer:
                outcome = self._run_with_timeout(scenario, store, level, timeout)
            status = Status.SUCCESS if outcome.anomaly == expected else Status.MISMATCH
            cell = ScenarioResult(
                **base,
                observed=outcome.anomaly,
                status=status,
                elapsed_ms=timer.elapsed_ms,
                metadata={"blocked": outcome.blocked, "details": outcome.details, "observed": outcome.observed},
            )
            if status == Status.MISMATCH:
                logger.warning(
                    "%s on %s: expected anomaly %s, observed %s",
                    label,
                    store.name,
                    "present" if expected else "absent",
                    "present" if outcome.anomaly else "absent",
                )
        except TimeoutError as e:
            error = BLOCKED_BY_STORE if guarded else str(e)
            logger.warning("%s on %s: %s", label, store.name, error)
            cell = ScenarioResult(
                **base,
                observed=None,
                status=Status.SKIPPED if guarded else Status.TIMEOUT,
                elapsed_ms=timer.elapsed_ms,
                error=error,
                metadata={"timeout_seconds": timeout},
            )
        except Exception as e:
            cell = ScenarioResult(
                **base,
                observed=None,
                status=Status.FAILED,
                elapsed_ms=timer.elapsed_ms,
                error=str(e),
            )

            if not self._config.continue_on_error:
                result.results.append(cell)
                raise

        result.results.append(cell)

        if self._progress_callback:
            self._progress_callback(store.name, label, cell.status.name.lower())

        self._join_overrun(label)
