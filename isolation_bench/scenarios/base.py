r"""
Base scenario implementation.

BaseScenario resets the store, runs the driver and logs its verdict.
TwoPartyScenario is the template shared by the interleaving drivers: two
parties, alice and bob, each run on their own thread and pin their
operations to one another through a Handshake.

    from isolation_bench.scenarios.base import TwoPartyScenario

    class MyScenario(TwoPartyScenario):
        def alice(self, party: Party) -> None:
            ...
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, TypeVar

from isolation_bench.config import DEFAULT_PROFILE, get_profile
from isolation_bench.errors import ConflictExhausted, HandshakeTimeout
from isolation_bench.executor import RetryingExecutor
from isolation_bench.handshake import Handshake, HandshakeChannel
from isolation_bench.protocols import TransactionalStore, UnitOfWork
from isolation_bench.types import Anomaly, IsolationLevel, RunProfile, ScenarioOutcome

__all__ = ["BaseScenario", "Party", "ScenarioRegistry", "TwoPartyScenario"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScenarioRegistry:
    """Registry for scenario drivers."""

    _scenarios: dict[str, type["BaseScenario"]] = {}

    @classmethod
    def register(cls, name: str) -> Any:
        """Decorator to register a scenario class."""

        def decorator(scenario_cls: type["BaseScenario"]) -> type["BaseScenario"]:
            cls._scenarios[name] = scenario_cls
            return scenario_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> type["BaseScenario"] | None:
        """Get scenario class by name."""
        return cls._scenarios.get(name)

    @classmethod
    def list(cls) -> list[str]:
        """List registered scenario names."""
        return list(cls._scenarios.keys())

    @classmethod
    def for_anomaly(cls, anomaly: Anomaly) -> type["BaseScenario"] | None:
        """Get the scenario class that provokes ``anomaly``."""
        for scenario_cls in cls._scenarios.values():
            if scenario_cls.anomaly == anomaly:
                return scenario_cls
        return None


class BaseScenario(ABC):
    """Base class for anomaly scenario drivers."""

    anomaly: Anomaly

    def __init__(self, profile: RunProfile | None = None) -> None:
        self.profile = profile or get_profile(DEFAULT_PROFILE)

    @property
    @abstractmethod
    def name(self) -> str:
        """Scenario name."""
        ...

    @property
    def description(self) -> str:
        """Human-readable description."""
        return (self.__class__.__doc__ or self.name).strip().splitlines()[0]

    def setup(self, store: TransactionalStore) -> None:
        """Clear the shared table."""
        store.reset()

    @abstractmethod
    def perform(self, store: TransactionalStore, level: IsolationLevel) -> ScenarioOutcome:
        """Drive the scenario against a freshly set up store."""
        ...

    def run(self, store: TransactionalStore, level: IsolationLevel) -> ScenarioOutcome:
        """Reset the store, run the scenario and return its verdict."""
        self.setup(store)
        outcome = self.perform(store, level)
        logger.info(
            "%s on %s at %s: anomaly %s%s",
            self.name,
            store.name,
            level.sql,
            "present" if outcome.anomaly else "absent",
            " (blocked)" if outcome.blocked else "",
        )
        return outcome

    def try_perform(self, store: TransactionalStore, level: IsolationLevel) -> bool:
        """Run the scenario and return whether the anomaly was observed."""
        return self.run(store, level).anomaly


@dataclass
class Party:
    """What one side of a two-party scenario sees.

    Attributes:
        name: "alice" or "bob".
        store: Store under test.
        level: Isolation level of every transaction the party opens.
        handshake: Channels shared with the other party.
        observed: Observations shared by both parties.
        timeout: Seconds to wait for the peer's signal.
    """

    name: str
    store: TransactionalStore
    level: IsolationLevel
    handshake: Handshake
    observed: dict[str, Any] = field(default_factory=dict)
    timeout: float | None = None

    def transaction(self, body: UnitOfWork[T]) -> T:
        """Run ``body`` in a single attempt.

        A body that waits on the handshake cannot be replayed, since the
        peer will not signal again.

        Raises:
            ConflictExhausted: If the store aborted the attempt.
        """
        return RetryingExecutor(self.store).run(self.level, 1, body).unwrap()

    def wait(self, channel: HandshakeChannel) -> None:
        """Wait on ``channel`` for at most the party timeout."""
        channel.wait(self.timeout)

    def exchange(self, send: HandshakeChannel, receive: HandshakeChannel) -> None:
        """Signal ``send`` then wait on ``receive``."""
        Handshake.exchange(send, receive, timeout=self.timeout)


class TwoPartyScenario(BaseScenario):
    """Template for scenarios pinning two transactions to a fixed interleaving.

    Subclasses seed rows, write the alice and bob procedures and reduce
    the shared observations to a verdict.
    """

    seed_rows: tuple[tuple[str, int], ...] = ()
    guarded_levels: frozenset[IsolationLevel] = frozenset({IsolationLevel.SERIALIZABLE})

    def setup(self, store: TransactionalStore) -> None:
        super().setup(store)
        if self.seed_rows:

            def seed(session: Any) -> None:
                for key, value in self.seed_rows:
                    session.insert(key, value)

            store.run_in_transaction(IsolationLevel.READ_COMMITTED, seed, retry_budget=self.profile.retry_budget)

    @abstractmethod
    def alice(self, party: Party) -> None:
        ...

    @abstractmethod
    def bob(self, party: Party) -> None:
        ...

    @abstractmethod
    def verdict(self, store: TransactionalStore, level: IsolationLevel, observed: dict[str, Any]) -> bool:
        """Reduce the observations to whether the anomaly occurred."""
        ...

    def perform(self, store: TransactionalStore, level: IsolationLevel) -> ScenarioOutcome:
        handshake = Handshake()
        observed: dict[str, Any] = {}
        guarded = level in self.guarded_levels

        parties = {
            name: Party(
                name=name,
                store=store,
                level=level,
                handshake=handshake,
                observed=observed,
                timeout=self.profile.handshake_timeout,
            )
            for name in ("alice", "bob")
        }
        procedures = {"alice": self.alice, "bob": self.bob}

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix=self.name) as pool:
            futures = {name: pool.submit(procedures[name], party) for name, party in parties.items()}

        blocked: list[str] = []
        for name, future in futures.items():
            try:
                future.result()
            except (HandshakeTimeout, ConflictExhausted) as e:
                if not guarded:
                    raise
                logger.info("%s: %s was blocked by the store at %s: %s", self.name, name, level.sql, e)
                blocked.append(name)

        anomaly = self.verdict(store, level, observed)
        details = f"blocked: {', '.join(blocked)}" if blocked else ""
        return ScenarioOutcome(
            anomaly=anomaly,
            level=level,
            effective_level=store.effective_level(level),
            blocked=bool(blocked),
            observed=dict(observed),
            details=details,
        )
