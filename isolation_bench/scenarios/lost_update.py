r"""
Lost update under load.

Many workers each read a shared counter and write back value + 1 in a
transaction of their own, retrying on conflict. Every increment commits, so
a final value below the number of increments means some committed writes
overwrote others.

    from isolation_bench.scenarios.lost_update import LostUpdateScenario

    scenario = LostUpdateScenario(get_profile("standard"))
    result = scenario.run_stress(store, IsolationLevel.READ_COMMITTED)
    print(f"{result.lost_updates} of {result.iterations} increments lost")
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeout

from isolation_bench.config import default_workers
from isolation_bench.errors import HarnessInvariantError
from isolation_bench.executor import RetryingExecutor
from isolation_bench.protocols import StoreSession, TransactionalStore
from isolation_bench.scenarios.base import BaseScenario, ScenarioRegistry
from isolation_bench.types import Anomaly, IsolationLevel, Predicate, ScenarioOutcome, StressResult

__all__ = ["LostUpdateScenario"]

logger = logging.getLogger(__name__)

COUNTER = Predicate(key="counter")


def _increment(session: StoreSession) -> int:
    rows = session.select(COUNTER)
    if not rows:
        msg = "Counter row is missing"
        raise HarnessInvariantError(msg)
    value = rows[0].value + 1
    session.update(COUNTER, value)
    return value


def _read_counter(session: StoreSession) -> int:
    rows = session.select(COUNTER)
    if not rows:
        msg = "Counter row is missing"
        raise HarnessInvariantError(msg)
    return rows[0].value


@ScenarioRegistry.register("lost_update")
class LostUpdateScenario(BaseScenario):
    """Concurrent read-increment-write units lose increments."""

    anomaly = Anomaly.LOST_UPDATE

    @property
    def name(self) -> str:
        return "lost_update"

    @property
    def workers(self) -> int:
        return self.profile.workers or default_workers()

    def setup(self, store: TransactionalStore) -> None:
        super().setup(store)
        store.run_in_transaction(
            IsolationLevel.READ_COMMITTED,
            lambda session: session.insert("counter", 0),
            retry_budget=self.profile.retry_budget,
        )

    def run_stress(self, store: TransactionalStore, level: IsolationLevel) -> StressResult:
        """Reset the store and run the increments, returning the full result."""
        self.setup(store)
        return self._stress(store, level)

    def perform(self, store: TransactionalStore, level: IsolationLevel) -> ScenarioOutcome:
        result = self._stress(store, level)
        return ScenarioOutcome(
            anomaly=result.final_value < result.iterations,
            level=level,
            effective_level=store.effective_level(level),
            observed={
                "iterations": result.iterations,
                "completed": result.completed,
                "final_value": result.final_value,
                "lost_updates": result.lost_updates,
                "total_attempts": result.total_attempts,
                "total_conflicts": result.total_conflicts,
                "workers": result.workers,
            },
            details=f"final value {result.final_value} of {result.iterations}",
        )

    def _stress(self, store: TransactionalStore, level: IsolationLevel) -> StressResult:
        iterations = self.profile.iterations
        workers = self.workers
        budget = self.profile.stress_retry_budget
        executor = RetryingExecutor(store)

        completed = 0
        total_attempts = 0
        total_conflicts = 0

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lost_update") as pool:
            futures = [pool.submit(executor.run, level, budget, _increment) for _ in range(iterations)]
            try:
                for future in as_completed(futures, timeout=self.profile.stress_timeout):
                    outcome = future.result()
                    total_attempts += outcome.attempts
                    total_conflicts += outcome.conflicts
                    if outcome.ok:
                        completed += 1
            except FuturesTimeout:
                pool.shutdown(wait=False, cancel_futures=True)
                msg = (
                    f"Only {completed} of {iterations} increments finished "
                    f"within {self.profile.stress_timeout}s at {level.sql}"
                )
                raise HarnessInvariantError(msg) from None

        if completed != iterations:
            msg = (
                f"{iterations - completed} of {iterations} increments exhausted "
                f"their retry budget of {budget} at {level.sql}"
            )
            raise HarnessInvariantError(msg)

        final_value = store.run_in_transaction(
            IsolationLevel.READ_COMMITTED, _read_counter, retry_budget=self.profile.retry_budget
        )
        result = StressResult(
            iterations=iterations,
            completed=completed,
            final_value=final_value,
            total_attempts=total_attempts,
            total_conflicts=total_conflicts,
            workers=workers,
        )
        logger.info(
            "lost_update on %s at %s: %d/%d increments kept, %d conflicts over %d attempts",
            store.name,
            level.sql,
            final_value,
            iterations,
            total_conflicts,
            total_attempts,
        )
        return result
