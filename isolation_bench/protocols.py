r"""
Protocol definitions for transactional stores and scenarios.

All store adapters must implement TransactionalStore.
Row access happens through the StoreSession handed to a unit of work.

    from isolation_bench.protocols import TransactionalStore, StoreSession

    def body(session: StoreSession) -> int:
        return session.count(Predicate(key="pink"))

    pinks = store.run_in_transaction(IsolationLevel.READ_COMMITTED, body)
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from isolation_bench.types import (
    Anomaly,
    IsolationLevel,
    Predicate,
    Row,
    ScenarioOutcome,
    TransactionOutcome,
)

if TYPE_CHECKING:
    from isolation_bench.expectations import IsolationContract

__all__ = [
    "Scenario",
    "StoreSession",
    "TransactionalStore",
    "UnitOfWork",
]

T = TypeVar("T")


@runtime_checkable
class StoreSession(Protocol):
    """Row operations scoped to one active transaction."""

    def insert(self, key: str, value: int = 0) -> None:
        """Insert a row."""
        ...

    def update(self, predicate: Predicate, value: int) -> int:
        """Set ``value`` on matching rows and return how many were updated."""
        ...

    def select(self, predicate: Predicate) -> list[Row]:
        """Return matching rows in insertion order."""
        ...

    def count(self, predicate: Predicate) -> int:
        """Count matching rows."""
        ...

    def delete_all(self) -> int:
        """Delete every row and return how many were removed."""
        ...


UnitOfWork = Callable[[StoreSession], T]


@runtime_checkable
class TransactionalStore(Protocol):
    """Protocol for transactional store adapters.

    Each store (DuckDB, MySQL, PostgreSQL) implements this protocol so the
    scenario drivers can run against it unchanged.
    """

    @property
    def name(self) -> str:
        """Human-readable adapter name."""
        ...

    @property
    def version(self) -> str:
        """Store version string."""
        ...

    @property
    def connected(self) -> bool:
        """Whether connect() has succeeded."""
        ...

    @property
    def contract(self) -> "IsolationContract":
        """Anomalies this store is expected to exhibit per isolation level."""
        ...

    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        """Establish the process-wide connection handle. Idempotent."""
        ...

    def disconnect(self) -> None:
        """Release the connection handle."""
        ...

    def ensure_schema(self) -> None:
        """Create the row table if absent."""
        ...

    def reset(self) -> None:
        """Delete all rows in a transaction of their own."""
        ...

    def effective_level(self, level: IsolationLevel) -> IsolationLevel:
        """Isolation level the store actually applies when ``level`` is requested."""
        ...

    def is_transient(self, exc: BaseException) -> bool:
        """Whether ``exc`` is a conflict that a retry may resolve."""
        ...

    def attempt(self, level: IsolationLevel, body: UnitOfWork[T]) -> TransactionOutcome[T]:
        """Run ``body`` once in a transaction; conflicts come back as CONFLICT."""
        ...

    def run_in_transaction(
        self,
        level: IsolationLevel,
        body: UnitOfWork[T],
        *,
        retry_budget: int = 3,
    ) -> T:
        """Run ``body`` with retries and return its value or raise ConflictExhausted."""
        ...


@runtime_checkable
class Scenario(Protocol):
    """Protocol for anomaly scenario drivers."""

    @property
    def name(self) -> str:
        """Scenario name."""
        ...

    @property
    def anomaly(self) -> Anomaly:
        """Anomaly the scenario provokes."""
        ...

    def run(self, store: TransactionalStore, level: IsolationLevel) -> ScenarioOutcome:
        """Reset the store, run the scenario and return its verdict."""
        ...

    def try_perform(self, store: TransactionalStore, level: IsolationLevel) -> bool:
        """Run the scenario and return whether the anomaly was observed."""
        ...
