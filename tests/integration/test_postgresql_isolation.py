r"""PostgreSQL contract tests, skipped unless ISOLATION_BENCH_POSTGRES_URI is set."""

import os

import pytest

from isolation_bench.config import get_profile
from isolation_bench.expectations import POSTGRESQL
from isolation_bench.scenarios import ScenarioRegistry
from isolation_bench.types import Anomaly, IsolationLevel

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.environ.get("ISOLATION_BENCH_POSTGRES_URI"),
        reason="ISOLATION_BENCH_POSTGRES_URI not set",
    ),
]


@pytest.fixture(scope="module")
def store():
    from isolation_bench.adapters.postgresql import PostgreSQLStore

    store = PostgreSQLStore()
    store.connect()
    yield store
    store.disconnect()


class TestPostgreSQLContract:
    @pytest.mark.parametrize("level", list(IsolationLevel), ids=lambda level: level.key)
    @pytest.mark.parametrize("anomaly", list(Anomaly), ids=lambda anomaly: anomaly.key)
    def test_matches_contract(self, store, anomaly, level):
        scenario = ScenarioRegistry.get(anomaly.key)(get_profile("quick"))
        assert scenario.try_perform(store, level) is POSTGRESQL.expects(anomaly, level)

    def test_read_uncommitted_runs_as_read_committed(self, store):
        scenario = ScenarioRegistry.get("dirty_read")(get_profile("quick"))
        outcome = scenario.run(store, IsolationLevel.READ_UNCOMMITTED)
        assert outcome.effective_level == IsolationLevel.READ_COMMITTED
