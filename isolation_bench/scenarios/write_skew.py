r"""
Write skew: two transactions check the same invariant, then both act on it.

Each party counts the "pink" rows, both confirm they have read, and each
inserts a pink row only if it saw none. A serial execution leaves exactly
one pink row; two rows mean both acted on a stale read.

    from isolation_bench.scenarios.write_skew import WriteSkewScenario

    scenario = WriteSkewScenario()
    scenario.try_perform(store, IsolationLevel.REPEATABLE_READ)  # True
"""

import logging
from typing import Any

from isolation_bench.handshake import HandshakeChannel
from isolation_bench.protocols import StoreSession, TransactionalStore
from isolation_bench.scenarios.base import Party, ScenarioRegistry, TwoPartyScenario
from isolation_bench.types import Anomaly, IsolationLevel, Predicate

__all__ = ["WriteSkewScenario"]

logger = logging.getLogger(__name__)

PINK = Predicate(key="pink")


@ScenarioRegistry.register("write_skew")
class WriteSkewScenario(TwoPartyScenario):
    """Both parties insert after reading that nobody else has."""

    anomaly = Anomaly.WRITE_SKEW

    @property
    def name(self) -> str:
        return "write_skew"

    def _check_then_insert(self, party: Party, send: HandshakeChannel, receive: HandshakeChannel) -> None:
        def body(session: StoreSession) -> None:
            seen = session.count(PINK)
            party.observed[f"{party.name}_count"] = seen
            party.exchange(send, receive)
            if seen == 0:
                session.insert("pink", 0)

        party.transaction(body)

    def alice(self, party: Party) -> None:
        self._check_then_insert(party, party.handshake.to_bob, party.handshake.to_alice)

    def bob(self, party: Party) -> None:
        self._check_then_insert(party, party.handshake.to_alice, party.handshake.to_bob)

    def verdict(self, store: TransactionalStore, level: IsolationLevel, observed: dict[str, Any]) -> bool:
        final = store.run_in_transaction(
            IsolationLevel.READ_COMMITTED,
            lambda session: session.count(PINK),
            retry_budget=self.profile.retry_budget,
        )
        observed["final_count"] = final
        logger.debug("write_skew final pink count at %s: %d", level.sql, final)
        return final == 2
