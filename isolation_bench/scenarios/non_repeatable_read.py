r"""
Non-repeatable read: the same row read twice in one transaction changes.

    alice                               bob
                                        read teal
    wait  <---------------------------- signal alice
    update teal 1 -> 2
    commit
    signal bob  ----------------------> wait
                                        read teal again
                                        commit

The anomaly is present iff bob's two reads differ.

    from isolation_bench.scenarios.non_repeatable_read import NonRepeatableReadScenario

    scenario = NonRepeatableReadScenario()
    scenario.try_perform(store, IsolationLevel.READ_COMMITTED)  # True
"""

from typing import Any

from isolation_bench.protocols import StoreSession, TransactionalStore
from isolation_bench.scenarios.base import Party, ScenarioRegistry, TwoPartyScenario
from isolation_bench.types import Anomaly, IsolationLevel, Predicate

__all__ = ["NonRepeatableReadScenario"]

TEAL = Predicate(key="teal")


def _read_teal(session: StoreSession) -> int | None:
    rows = session.select(TEAL)
    return rows[0].value if rows else None


@ScenarioRegistry.register("non_repeatable_read")
class NonRepeatableReadScenario(TwoPartyScenario):
    """A committed update becomes visible between two reads of one transaction."""

    anomaly = Anomaly.NON_REPEATABLE_READ
    seed_rows = (("teal", 1),)

    @property
    def name(self) -> str:
        return "non_repeatable_read"

    def alice(self, party: Party) -> None:
        def body(session: StoreSession) -> None:
            party.wait(party.handshake.to_alice)
            session.update(TEAL, 2)

        party.transaction(body)
        # Only after the commit
        party.handshake.to_bob.signal()

    def bob(self, party: Party) -> None:
        def body(session: StoreSession) -> None:
            party.observed["first_read"] = _read_teal(session)
            party.handshake.to_alice.signal()
            party.wait(party.handshake.to_bob)
            party.observed["second_read"] = _read_teal(session)

        party.transaction(body)

    def verdict(self, store: TransactionalStore, level: IsolationLevel, observed: dict[str, Any]) -> bool:
        if "second_read" not in observed:
            return False
        return observed.get("first_read") != observed["second_read"]
