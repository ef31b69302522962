r"""
Retrying transactional executor.

Runs a unit of work in a transaction at a given isolation level and restarts
it from the beginning whenever the store reports a transient conflict, up to
a bounded number of attempts.

    from isolation_bench.executor import RetryingExecutor

    executor = RetryingExecutor(store)
    outcome = executor.run(IsolationLevel.SERIALIZABLE, 100, increment)
    print(outcome.status.name, outcome.attempts)
"""

import logging
from typing import TypeVar

from isolation_bench.protocols import TransactionalStore, UnitOfWork
from isolation_bench.types import IsolationLevel, TransactionOutcome, TransactionStatus

__all__ = ["RetryingExecutor"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryingExecutor:
    """Wraps store transactions with bounded conflict retries.

    Holds no state across calls; a single instance may be shared by any
    number of threads.
    """

    def __init__(self, store: TransactionalStore) -> None:
        self._store = store

    @property
    def store(self) -> TransactionalStore:
        return self._store

    def run(self, level: IsolationLevel, retry_budget: int, work: UnitOfWork[T]) -> TransactionOutcome[T]:
        """Run ``work`` until it commits or the budget is spent.

        Args:
            level: Isolation level for every attempt.
            retry_budget: Maximum number of attempts, first one included.
            work: Unit of work; re-executed from scratch on every attempt.

        Returns:
            COMMITTED outcome with the work's value, or EXHAUSTED outcome.

        Raises:
            ValueError: If ``retry_budget`` is less than 1.
            Exception: Any non-transient error raised by ``work`` or the store.
        """
        if retry_budget < 1:
            msg = f"retry_budget must be at least 1, got {retry_budget}"
            raise ValueError(msg)

        conflicts = 0
        last_error: str | None = None

        for attempt in range(1, retry_budget + 1):
            outcome = self._store.attempt(level, work)
            if outcome.status == TransactionStatus.COMMITTED:
                return TransactionOutcome(
                    status=TransactionStatus.COMMITTED,
                    value=outcome.value,
                    attempts=attempt,
                    conflicts=conflicts,
                    error=last_error,
                )

            conflicts += 1
            last_error = outcome.error
            logger.debug(
                "Conflict at %s on attempt %d/%d: %s",
                level.sql,
                attempt,
                retry_budget,
                last_error,
            )

        logger.info("Retry budget of %d exhausted at %s", retry_budget, level.sql)
        return TransactionOutcome(
            status=TransactionStatus.EXHAUSTED,
            attempts=retry_budget,
            conflicts=conflicts,
            error=last_error,
        )
