r"""
Dirty read: a transaction observes another transaction's uncommitted write.

    alice                               bob
    update pink 1 -> 2
    signal bob  ----------------------> wait
                                        read pink
    wait  <---------------------------- signal alice
    commit                              commit

The anomaly is present iff bob read 2.

    from isolation_bench.scenarios.dirty_read import DirtyReadScenario

    scenario = DirtyReadScenario()
    scenario.try_perform(store, IsolationLevel.READ_UNCOMMITTED)  # True on InnoDB
"""

from typing import Any

from isolation_bench.protocols import StoreSession, TransactionalStore
from isolation_bench.scenarios.base import Party, ScenarioRegistry, TwoPartyScenario
from isolation_bench.types import Anomaly, IsolationLevel, Predicate

__all__ = ["DirtyReadScenario"]

PINK = Predicate(key="pink")


@ScenarioRegistry.register("dirty_read")
class DirtyReadScenario(TwoPartyScenario):
    """Reader sees a value that the writer has not committed yet."""

    anomaly = Anomaly.DIRTY_READ
    seed_rows = (("pink", 1),)

    @property
    def name(self) -> str:
        return "dirty_read"

    def alice(self, party: Party) -> None:
        def body(session: StoreSession) -> None:
            session.update(PINK, 2)
            party.handshake.to_bob.signal()
            party.wait(party.handshake.to_alice)

        party.transaction(body)

    def bob(self, party: Party) -> None:
        def body(session: StoreSession) -> None:
            party.wait(party.handshake.to_bob)
            rows = session.select(PINK)
            party.observed["bob_read"] = rows[0].value if rows else None
            party.handshake.to_alice.signal()

        party.transaction(body)

    def verdict(self, store: TransactionalStore, level: IsolationLevel, observed: dict[str, Any]) -> bool:
        return observed.get("bob_read") == 2
