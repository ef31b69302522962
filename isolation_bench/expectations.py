r"""
Isolation contracts: which anomalies a store is expected to exhibit per level.

STANDARD is the textbook contract as implemented by lock-based engines such
as InnoDB, where no level below SERIALIZABLE detects read-then-write races:

    anomaly               RU   RC   RR   SER
    dirty_read            yes  no   no   no
    non_repeatable_read   yes  yes  no   no
    write_skew            yes  yes  yes  no
    lost_update           yes  yes  yes  no

POSTGRESQL serves READ UNCOMMITTED as READ COMMITTED and aborts concurrent
updates at REPEATABLE READ. SNAPSHOT covers engines that run every
transaction under snapshot isolation with first-updater-wins.

    from isolation_bench.expectations import STANDARD

    assert STANDARD.expects(Anomaly.DIRTY_READ, IsolationLevel.READ_UNCOMMITTED)
"""

from dataclasses import dataclass

from isolation_bench.types import Anomaly, IsolationLevel

__all__ = [
    "CONTRACTS",
    "IsolationContract",
    "POSTGRESQL",
    "SNAPSHOT",
    "STANDARD",
]

RU = IsolationLevel.READ_UNCOMMITTED
RC = IsolationLevel.READ_COMMITTED
RR = IsolationLevel.REPEATABLE_READ
SER = IsolationLevel.SERIALIZABLE


@dataclass(frozen=True, slots=True)
class IsolationContract:
    """Levels at which each anomaly is expected to be present.

    Attributes:
        name: Contract name.
        present: Anomaly -> levels where the anomaly must be observed.
    """

    name: str
    present: dict[Anomaly, frozenset[IsolationLevel]]

    def expects(self, anomaly: Anomaly, level: IsolationLevel) -> bool:
        """True if ``anomaly`` should be observed at ``level``."""
        return level in self.present.get(anomaly, frozenset())

    def matrix(self) -> dict[Anomaly, dict[IsolationLevel, bool]]:
        """Full anomaly x level table of expected verdicts."""
        return {anomaly: {level: self.expects(anomaly, level) for level in IsolationLevel} for anomaly in Anomaly}


STANDARD = IsolationContract(
    name="standard",
    present={
        Anomaly.DIRTY_READ: frozenset({RU}),
        Anomaly.NON_REPEATABLE_READ: frozenset({RU, RC}),
        Anomaly.WRITE_SKEW: frozenset({RU, RC, RR}),
        Anomaly.LOST_UPDATE: frozenset({RU, RC, RR}),
    },
)

POSTGRESQL = IsolationContract(
    name="postgresql",
    present={
        Anomaly.DIRTY_READ: frozenset(),
        Anomaly.NON_REPEATABLE_READ: frozenset({RU, RC}),
        Anomaly.WRITE_SKEW: frozenset({RU, RC, RR}),
        Anomaly.LOST_UPDATE: frozenset({RU, RC}),
    },
)

SNAPSHOT = IsolationContract(
    name="snapshot",
    present={
        Anomaly.DIRTY_READ: frozenset(),
        Anomaly.NON_REPEATABLE_READ: frozenset(),
        Anomaly.WRITE_SKEW: frozenset({RU, RC, RR, SER}),
        Anomaly.LOST_UPDATE: frozenset(),
    },
)

CONTRACTS: dict[str, IsolationContract] = {
    contract.name: contract for contract in (STANDARD, POSTGRESQL, SNAPSHOT)
}
