r"""
Tests for isolation_bench.scenarios module.

Runs every driver against the in-memory store, which follows the standard
isolation contract for the two-party scenarios.
"""

import itertools
import threading

import pytest

from isolation_bench.adapters.base import Transaction
from isolation_bench.errors import HandshakeTimeout, HarnessInvariantError, TransientConflict
from isolation_bench.scenarios import (
    BaseScenario,
    DirtyReadScenario,
    LostUpdateScenario,
    NonRepeatableReadScenario,
    Party,
    ScenarioRegistry,
    TwoPartyScenario,
    WriteSkewScenario,
)
from isolation_bench.types import Anomaly, IsolationLevel, Predicate, RunProfile

RU = IsolationLevel.READ_UNCOMMITTED
RC = IsolationLevel.READ_COMMITTED
RR = IsolationLevel.REPEATABLE_READ
SER = IsolationLevel.SERIALIZABLE


class TestScenarioRegistry:
    def test_registry_has_scenarios(self):
        scenarios = ScenarioRegistry.list()
        assert "dirty_read" in scenarios
        assert "non_repeatable_read" in scenarios
        assert "write_skew" in scenarios
        assert "lost_update" in scenarios

    def test_one_scenario_per_anomaly(self):
        for anomaly in Anomaly:
            scenario_cls = ScenarioRegistry.for_anomaly(anomaly)
            assert scenario_cls is not None
            assert scenario_cls().name == anomaly.key

    def test_get_unknown_scenario(self):
        assert ScenarioRegistry.get("phantom_read") is None

    def test_base_scenario_is_abstract(self):
        with pytest.raises(TypeError):
            BaseScenario()  # type: ignore

    def test_description(self):
        assert "not committed" in DirtyReadScenario().description


class TestDirtyRead:
    def test_present_at_read_uncommitted(self, memory_store, tiny_profile):
        outcome = DirtyReadScenario(tiny_profile).run(memory_store, RU)
        assert outcome.anomaly is True
        assert outcome.observed["bob_read"] == 2

    @pytest.mark.parametrize("level", [RC, RR, SER])
    def test_absent_at_stronger_levels(self, memory_store, tiny_profile, level):
        outcome = DirtyReadScenario(tiny_profile).run(memory_store, level)
        assert outcome.anomaly is False
        assert outcome.observed["bob_read"] == 1

    def test_writer_commits(self, memory_store, tiny_profile):
        DirtyReadScenario(tiny_profile).run(memory_store, RC)
        assert [(row.key, row.value) for row in memory_store.rows] == [("pink", 2)]

    def test_try_perform(self, memory_store, tiny_profile):
        assert DirtyReadScenario(tiny_profile).try_perform(memory_store, RU) is True
        assert DirtyReadScenario(tiny_profile).try_perform(memory_store, RC) is False


class TestNonRepeatableRead:
    @pytest.mark.parametrize("level", [RU, RC])
    def test_present_at_weak_levels(self, memory_store, tiny_profile, level):
        outcome = NonRepeatableReadScenario(tiny_profile).run(memory_store, level)
        assert outcome.anomaly is True
        assert (outcome.observed["first_read"], outcome.observed["second_read"]) == (1, 2)

    @pytest.mark.parametrize("level", [RR, SER])
    def test_absent_at_snapshot_levels(self, memory_store, tiny_profile, level):
        outcome = NonRepeatableReadScenario(tiny_profile).run(memory_store, level)
        assert outcome.anomaly is False
        assert (outcome.observed["first_read"], outcome.observed["second_read"]) == (1, 1)

    def test_missing_second_read_is_not_an_anomaly(self):
        scenario = NonRepeatableReadScenario()
        assert scenario.verdict(None, SER, {"first_read": 1}) is False  # type: ignore[arg-type]


class TestWriteSkew:
    @pytest.mark.parametrize("level", [RU, RC, RR])
    def test_present_below_serializable(self, memory_store, tiny_profile, level):
        outcome = WriteSkewScenario(tiny_profile).run(memory_store, level)
        assert outcome.anomaly is True
        assert outcome.observed["final_count"] == 2
        assert outcome.observed["alice_count"] == 0
        assert outcome.observed["bob_count"] == 0

    def test_serializable_aborts_one_party(self, memory_store, tiny_profile):
        outcome = WriteSkewScenario(tiny_profile).run(memory_store, SER)
        assert outcome.anomaly is False
        assert outcome.blocked is True
        assert outcome.observed["final_count"] == 1
        assert "blocked" in outcome.details

    def test_reset_between_runs(self, memory_store, tiny_profile):
        scenario = WriteSkewScenario(tiny_profile)
        scenario.run(memory_store, RR)
        outcome = scenario.run(memory_store, RR)
        assert outcome.observed["final_count"] == 2


class StuckScenario(TwoPartyScenario):
    """Bob never signals, so alice always times out."""

    anomaly = Anomaly.DIRTY_READ

    @property
    def name(self) -> str:
        return "stuck"

    def alice(self, party: Party) -> None:
        party.transaction(lambda session: party.wait(party.handshake.to_alice))

    def bob(self, party: Party) -> None:
        party.observed["bob_ran"] = True

    def verdict(self, store, level, observed):
        return False


class TestTwoPartyTemplate:
    @pytest.fixture
    def profile(self):
        return RunProfile(name="fast", handshake_timeout=0.1)

    def test_handshake_timeout_propagates_at_unguarded_level(self, memory_store, profile):
        with pytest.raises(HandshakeTimeout):
            StuckScenario(profile).run(memory_store, RC)

    def test_handshake_timeout_absorbed_at_guarded_level(self, memory_store, profile):
        outcome = StuckScenario(profile).run(memory_store, SER)
        assert outcome.blocked is True
        assert outcome.anomaly is False
        assert outcome.observed == {"bob_ran": True}
        assert "alice" in outcome.details

    def test_blocked_transaction_is_rolled_back(self, memory_store, profile):
        StuckScenario(profile).run(memory_store, SER)
        assert memory_store.rolled_back >= 1

    def test_effective_level_reported(self, memory_store, tiny_profile):
        outcome = DirtyReadScenario(tiny_profile).run(memory_store, RC)
        assert outcome.level == RC
        assert outcome.effective_level == RC


class PausingSession:
    """Holds a reader at the barrier until its peer has read too."""

    def __init__(self, session, barrier: threading.Barrier) -> None:
        self._session = session
        self._barrier = barrier

    def select(self, predicate):
        rows = self._session.select(predicate)
        self._barrier.wait(timeout=5.0)
        return rows

    def __getattr__(self, name):
        return getattr(self._session, name)


def pause_first_two_readers(store) -> None:
    """Make the next two transactions both read before either writes."""
    barrier = threading.Barrier(2)
    begun = itertools.count()
    lock = threading.Lock()
    begin = store._begin

    def paused_begin(level):
        txn = begin(level)
        with lock:
            n = next(begun)
        if n >= 2:
            return txn
        return Transaction(connection=txn.connection, session=PausingSession(txn.session, barrier), level=txn.level)

    store._begin = paused_begin


class TestLostUpdate:
    @pytest.fixture
    def pair_profile(self):
        return RunProfile(name="pair", iterations=2, workers=2, stress_retry_budget=10)

    @pytest.mark.parametrize("level", [RU, RC, RR])
    def test_interleaved_increments_lose_one(self, memory_store, pair_profile, level):
        scenario = LostUpdateScenario(pair_profile)
        scenario.setup(memory_store)
        pause_first_two_readers(memory_store)

        outcome = scenario.perform(memory_store, level)

        assert outcome.anomaly is True
        assert outcome.observed["completed"] == 2
        assert outcome.observed["final_value"] == 1
        assert outcome.observed["lost_updates"] == 1

    def test_interleaved_increments_retry_at_serializable(self, memory_store, pair_profile):
        scenario = LostUpdateScenario(pair_profile)
        scenario.setup(memory_store)
        pause_first_two_readers(memory_store)

        outcome = scenario.perform(memory_store, SER)

        assert outcome.anomaly is False
        assert outcome.observed["final_value"] == 2
        assert outcome.observed["total_conflicts"] == 1

    def test_serializable_keeps_every_increment(self, memory_store, tiny_profile):
        result = LostUpdateScenario(tiny_profile).run_stress(memory_store, SER)
        assert result.completed == tiny_profile.iterations
        assert result.final_value == tiny_profile.iterations
        assert result.lost_updates == 0
        assert result.total_attempts >= tiny_profile.iterations
        assert result.total_attempts == tiny_profile.iterations + result.total_conflicts

    @pytest.mark.parametrize("level", [RU, RC, RR])
    def test_every_unit_completes_at_weak_levels(self, memory_store, tiny_profile, level):
        result = LostUpdateScenario(tiny_profile).run_stress(memory_store, level)
        assert result.completed == tiny_profile.iterations
        assert result.total_conflicts == 0
        assert result.total_attempts == tiny_profile.iterations

    def test_outcome_verdict(self, memory_store, tiny_profile):
        outcome = LostUpdateScenario(tiny_profile).run(memory_store, SER)
        assert outcome.anomaly is False
        assert outcome.observed["final_value"] == tiny_profile.iterations
        assert outcome.observed["workers"] == tiny_profile.workers

    def test_counter_row_seeded(self, memory_store, tiny_profile):
        LostUpdateScenario(tiny_profile).setup(memory_store)
        rows = memory_store.run_in_transaction(RC, lambda session: session.select(Predicate(key="counter")))
        assert rows[0].value == 0

    def test_exhausted_units_break_the_harness(self, memory_store):
        profile = RunProfile(name="starved", iterations=30, workers=8, stress_retry_budget=1)
        scenario = LostUpdateScenario(profile)
        original = memory_store._commit
        calls = {"n": 0}

        def flaky_commit(txn):
            calls["n"] += 1
            if calls["n"] % 2 == 0 and txn.level == SER:
                msg = "forced conflict"
                raise TransientConflict(msg)
            original(txn)

        memory_store._commit = flaky_commit
        with pytest.raises(HarnessInvariantError, match="exhausted"):
            scenario.run_stress(memory_store, SER)
