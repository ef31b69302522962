r"""
Core types for transaction isolation scenarios.

    from isolation_bench.types import IsolationLevel, Predicate, TransactionOutcome

    outcome = executor.run(IsolationLevel.SERIALIZABLE, 10, increment)
    if outcome.ok:
        print(f"Committed after {outcome.attempts} attempts")
"""

from dataclasses import dataclass, field
from enum import IntEnum, auto
from typing import Any, Generic, TypeVar

from isolation_bench.errors import ConflictExhausted

__all__ = [
    "Anomaly",
    "IsolationLevel",
    "Predicate",
    "Row",
    "RunProfile",
    "ScenarioOutcome",
    "ScenarioResult",
    "Status",
    "StressResult",
    "TransactionOutcome",
    "TransactionStatus",
]


class IsolationLevel(IntEnum):
    """Transaction isolation levels, ordered weakest to strongest."""

    READ_UNCOMMITTED = auto()
    READ_COMMITTED = auto()
    REPEATABLE_READ = auto()
    SERIALIZABLE = auto()

    @property
    def sql(self) -> str:
        """SQL spelling, e.g. ``READ COMMITTED``."""
        return self.name.replace("_", " ")

    @property
    def key(self) -> str:
        """Lowercase identifier, e.g. ``read_committed``."""
        return self.name.lower()

    @classmethod
    def parse(cls, value: "str | IsolationLevel") -> "IsolationLevel":
        """Parse a level from ``read-committed``, ``READ_COMMITTED`` or ``read committed``.

        Raises:
            ValueError: If the name does not match a level.
        """
        if isinstance(value, IsolationLevel):
            return value
        normalized = value.strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls[normalized]
        except KeyError:
            valid = ", ".join(level.key for level in cls)
            msg = f"Unknown isolation level '{value}'. Valid levels: {valid}"
            raise ValueError(msg) from None


class Anomaly(IntEnum):
    """Transactional anomalies the harness can provoke."""

    DIRTY_READ = auto()
    NON_REPEATABLE_READ = auto()
    WRITE_SKEW = auto()
    LOST_UPDATE = auto()

    @property
    def key(self) -> str:
        """Registry name, e.g. ``dirty_read``."""
        return self.name.lower()

    @classmethod
    def parse(cls, value: "str | Anomaly") -> "Anomaly":
        """Parse an anomaly from ``dirty-read`` or ``DIRTY_READ``."""
        if isinstance(value, Anomaly):
            return value
        normalized = value.strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls[normalized]
        except KeyError:
            valid = ", ".join(anomaly.key for anomaly in cls)
            msg = f"Unknown anomaly '{value}'. Valid anomalies: {valid}"
            raise ValueError(msg) from None


@dataclass(frozen=True, slots=True)
class Row:
    """A single ``(key, value)`` row of the shared table."""

    key: str
    value: int


@dataclass(frozen=True, slots=True)
class Predicate:
    """Row filter for select/update.

    ``Predicate(key="pink")`` matches rows whose key equals ``pink``;
    ``Predicate()`` matches every row.
    """

    key: str | None = None

    def matches(self, row: Row) -> bool:
        return self.key is None or row.key == self.key


class TransactionStatus(IntEnum):
    """Outcome of a transaction attempt or of a retried unit of work."""

    COMMITTED = auto()
    CONFLICT = auto()
    EXHAUSTED = auto()


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class TransactionOutcome(Generic[T]):
    """Result of running a unit of work in a transaction.

    Attributes:
        status: COMMITTED, CONFLICT (transient, retryable) or EXHAUSTED.
        value: Return value of the unit of work when committed.
        attempts: Number of attempts made.
        conflicts: Number of attempts that ended in a transient conflict.
        error: Message of the last conflict, if any.
    """

    status: TransactionStatus
    value: T | None = None
    attempts: int = 1
    conflicts: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True if the unit of work committed."""
        return self.status == TransactionStatus.COMMITTED

    def unwrap(self) -> T:
        """Return the committed value.

        Raises:
            ConflictExhausted: If the transaction never committed.
        """
        if not self.ok:
            msg = f"Transaction did not commit after {self.attempts} attempt(s): {self.error}"
            raise ConflictExhausted(msg, attempts=self.attempts, last_error=self.error)
        return self.value  # type: ignore[return-value]


@dataclass(frozen=True, slots=True)
class ScenarioOutcome:
    """Verdict of a single scenario run.

    Attributes:
        anomaly: Whether the anomaly under test was observed.
        level: Requested isolation level.
        effective_level: Level the store actually applied.
        blocked: A guarded party was blocked or aborted by the store.
        observed: Raw observations recorded by the parties.
        details: Human-readable summary.
    """

    anomaly: bool
    level: IsolationLevel
    effective_level: IsolationLevel
    blocked: bool = False
    observed: dict[str, Any] = field(default_factory=dict)
    details: str = ""


@dataclass(frozen=True, slots=True)
class StressResult:
    """Result of a concurrent increment run.

    Attributes:
        iterations: Units of work submitted.
        completed: Units that committed.
        final_value: Counter value after all units finished.
        total_attempts: Attempts across all units, retries included.
        total_conflicts: Attempts that ended in a transient conflict.
        workers: Size of the worker pool.
    """

    iterations: int
    completed: int
    final_value: int
    total_attempts: int = 0
    total_conflicts: int = 0
    workers: int = 0

    @property
    def lost_updates(self) -> int:
        """Increments that committed but are missing from the counter."""
        return self.iterations - self.final_value


@dataclass(frozen=True, slots=True)
class RunProfile:
    """Sizing and time limits for a run.

    Attributes:
        name: Profile name (quick, standard, soak).
        iterations: Increment transactions submitted by the stress driver.
        workers: Stress worker pool size (0 = one per CPU, minimum 8).
        retry_budget: Default maximum attempts for a transaction.
        stress_retry_budget: Maximum attempts per stress increment.
        handshake_timeout: Seconds a party waits for its peer's signal.
        scenario_timeout: Wall-clock guard for a two-party scenario.
        stress_timeout: Wall-clock bound for a whole stress run.
    """

    name: str
    iterations: int = 1000
    workers: int = 0
    retry_budget: int = 3
    stress_retry_budget: int = 1000
    handshake_timeout: float = 5.0
    scenario_timeout: float = 30.0
    stress_timeout: float = 300.0


class Status(IntEnum):
    """Orchestrated scenario status."""

    SUCCESS = auto()
    MISMATCH = auto()
    FAILED = auto()
    TIMEOUT = auto()
    SKIPPED = auto()


@dataclass(frozen=True, slots=True)
class ScenarioResult:
    """One cell of the anomaly x isolation level matrix.

    Attributes:
        scenario: Scenario name.
        anomaly: Anomaly under test.
        store: Store adapter name.
        level: Requested isolation level.
        effective_level: Level the store applied (None if never run).
        expected: Verdict predicted by the store's contract.
        observed: Verdict produced by the driver (None if it did not finish).
        status: Outcome status.
        elapsed_ms: Wall-clock duration.
        error: Error message if failed.
        metadata: Observations and driver details.
    """

    scenario: str
    anomaly: Anomaly
    store: str
    level: IsolationLevel
    effective_level: IsolationLevel | None
    expected: bool
    observed: bool | None
    status: Status = Status.SUCCESS
    elapsed_ms: float = 0.0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """True unless the cell mismatched, failed or timed out."""
        return self.status in (Status.SUCCESS, Status.SKIPPED)
