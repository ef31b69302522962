r"""
Anomaly scenario drivers for isolation-bench.

One driver per anomaly, registered under the anomaly's name:
- dirty_read: reader sees an uncommitted write
- non_repeatable_read: a row changes between two reads of one transaction
- write_skew: two check-then-insert transactions both act on a stale read
- lost_update: concurrent read-increment-write units lose increments

    from isolation_bench.scenarios import ScenarioRegistry

    scenario = ScenarioRegistry.get("dirty_read")()
    present = scenario.try_perform(store, IsolationLevel.READ_UNCOMMITTED)
"""

from isolation_bench.scenarios.base import BaseScenario, Party, ScenarioRegistry, TwoPartyScenario
from isolation_bench.scenarios.dirty_read import DirtyReadScenario
from isolation_bench.scenarios.lost_update import LostUpdateScenario
from isolation_bench.scenarios.non_repeatable_read import NonRepeatableReadScenario
from isolation_bench.scenarios.write_skew import WriteSkewScenario

__all__ = [
    "BaseScenario",
    "DirtyReadScenario",
    "LostUpdateScenario",
    "NonRepeatableReadScenario",
    "Party",
    "ScenarioRegistry",
    "TwoPartyScenario",
    "WriteSkewScenario",
]
