r"""
Tests for isolation_bench.reporting module.
"""

import json
import tempfile
from pathlib import Path

import pytest

from isolation_bench.reporting import CsvExporter, JsonExporter, MarkdownExporter, ResultCollector, format_cell
from isolation_bench.types import Anomaly, IsolationLevel, ScenarioResult, Status


def make_result(
    *,
    scenario: str = "dirty_read",
    anomaly: Anomaly = Anomaly.DIRTY_READ,
    store: str = "test_db",
    level: IsolationLevel = IsolationLevel.READ_UNCOMMITTED,
    expected: bool = True,
    observed: bool | None = True,
    status: Status = Status.SUCCESS,
    error: str | None = None,
) -> ScenarioResult:
    return ScenarioResult(
        scenario=scenario,
        anomaly=anomaly,
        store=store,
        level=level,
        effective_level=level,
        expected=expected,
        observed=observed,
        status=status,
        elapsed_ms=12.5,
        error=error,
        metadata={"observed": {"bob_read": 2}},
    )


@pytest.fixture
def sample_result():
    return make_result()


@pytest.fixture
def collector_with_results(sample_result):
    collector = ResultCollector()
    collector.start_session(profile="quick", stores=["test_db"], store_versions={"test_db": "8.0.36"})
    collector.add_result(sample_result)
    collector.add_result(
        make_result(
            level=IsolationLevel.READ_COMMITTED,
            expected=False,
            observed=True,
            status=Status.MISMATCH,
        )
    )
    collector.add_result(
        make_result(
            scenario="write_skew",
            anomaly=Anomaly.WRITE_SKEW,
            level=IsolationLevel.SERIALIZABLE,
            expected=False,
            observed=None,
            status=Status.SKIPPED,
            error="blocked by the store",
        )
    )
    collector.end_session()
    return collector


class TestResultCollector:
    def test_create_collector(self):
        collector = ResultCollector()
        assert collector.results == []

    def test_start_session(self):
        collector = ResultCollector()
        collector.start_session(profile="standard", stores=["MySQL", "DuckDB"])

        assert collector.session.profile == "standard"
        assert collector.session.stores == ["MySQL", "DuckDB"]
        assert collector.session.session_id.startswith("iso_")
        assert collector.environment.python_version

    def test_end_session(self, collector_with_results):
        assert collector_with_results.session.completed_at

    def test_add_results(self, sample_result):
        collector = ResultCollector()
        collector.add_results([sample_result, sample_result])

        assert len(collector.results) == 2

    def test_get_results_by_store(self, sample_result):
        collector = ResultCollector()
        collector.add_result(sample_result)

        assert len(collector.get_results_by_store("test_db")) == 1
        assert collector.get_results_by_store("other_db") == []

    def test_get_results_by_scenario(self, collector_with_results):
        assert len(collector_with_results.get_results_by_scenario("dirty_read")) == 2

    def test_get_result(self, collector_with_results):
        cell = collector_with_results.get_result("test_db", "write_skew", IsolationLevel.SERIALIZABLE)
        assert cell is not None
        assert cell.status == Status.SKIPPED
        assert collector_with_results.get_result("test_db", "lost_update", IsolationLevel.SERIALIZABLE) is None

    def test_summarize(self, collector_with_results):
        counts = collector_with_results.summarize()["test_db"]
        assert counts["SUCCESS"] == 1
        assert counts["MISMATCH"] == 1
        assert counts["SKIPPED"] == 1
        assert counts["FAILED"] == 0

    def test_to_dict(self, collector_with_results):
        data = collector_with_results.to_dict()

        assert data["session"]["profile"] == "quick"
        assert data["session"]["store_versions"] == {"test_db": "8.0.36"}
        assert "environment" in data
        assert "summary" in data

        first = data["results"][0]
        assert first["anomaly"] == "dirty_read"
        assert first["level"] == "read_uncommitted"
        assert first["status"] == "SUCCESS"
        assert first["metadata"]["observed"]["bob_read"] == 2
        assert "error" not in first

        assert data["results"][2]["error"] == "blocked by the store"


class TestFormatCell:
    def test_success(self):
        assert format_cell(make_result()) == "✓ present"

    def test_mismatch(self):
        result = make_result(expected=True, observed=False, status=Status.MISMATCH)
        assert format_cell(result) == "✗ absent (expected present)"

    def test_skipped(self):
        assert format_cell(make_result(observed=None, status=Status.SKIPPED)) == "– blocked"

    def test_timeout(self):
        assert format_cell(make_result(observed=None, status=Status.TIMEOUT)) == "✗ TIMEOUT"

    def test_missing(self):
        assert format_cell(None) == "N/A"


class TestJsonExporter:
    def test_to_string(self, collector_with_results):
        exporter = JsonExporter()
        output = exporter.to_string(collector_with_results)

        data = json.loads(output)
        assert "session" in data
        assert len(data["results"]) == 3

    def test_export_to_file(self, collector_with_results):
        exporter = JsonExporter()

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "results.json"
            exporter.export(collector_with_results, path)

            assert path.exists()
            data = json.loads(path.read_text())
            assert "session" in data


class TestCsvExporter:
    def test_to_string(self, collector_with_results):
        exporter = CsvExporter()
        output = exporter.to_string(collector_with_results)

        lines = output.strip().split("\n")
        assert len(lines) == 4
        assert lines[0].startswith("session_id,store,scenario,level")
        assert "dirty_read" in lines[1]
        assert "MISMATCH" in lines[2]

    def test_unobserved_cell_is_blank(self, collector_with_results):
        output = CsvExporter().to_string(collector_with_results)
        row = output.strip().split("\n")[3].split(",")
        assert row[6] == ""
        assert row[7] == "SKIPPED"

    def test_export_to_file(self, collector_with_results):
        exporter = CsvExporter()

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "results.csv"
            exporter.export(collector_with_results, path)

            assert path.exists()


class TestMarkdownExporter:
    def test_to_string(self, collector_with_results):
        exporter = MarkdownExporter()
        output = exporter.to_string(collector_with_results)

        assert "# Transaction Isolation Anomaly Report" in output
        assert "## Summary" in output
        assert "## test_db 8.0.36" in output

    def test_matrix_rows(self, collector_with_results):
        output = MarkdownExporter().to_string(collector_with_results)

        assert "| dirty_read | ✓ present | ✗ present (expected absent) | N/A |" in output
        assert "| write_skew | N/A | N/A | – blocked |" in output

    def test_export_to_file(self, collector_with_results):
        exporter = MarkdownExporter()

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "report.md"
            exporter.export(collector_with_results, path)

            assert path.exists()
            content = path.read_text()
            assert "# Transaction Isolation Anomaly Report" in content
