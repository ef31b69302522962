r"""
Tests for the isolation-bench command line.
"""

import json

from typer.testing import CliRunner

from isolation_bench.cli import app

runner = CliRunner()


class TestAdaptersCommand:
    def test_list(self):
        result = runner.invoke(app, ["adapters", "list"])
        assert result.exit_code == 0
        assert "duckdb (contract: snapshot)" in result.output
        assert "mysql (contract: standard)" in result.output
        assert "postgresql (contract: postgresql)" in result.output

    def test_test_requires_name(self):
        result = runner.invoke(app, ["adapters", "test"])
        assert result.exit_code == 1

    def test_test_duckdb(self):
        result = runner.invoke(app, ["adapters", "test", "-n", "duckdb"])
        assert result.exit_code == 0
        assert "Successfully connected to DuckDB" in result.output

    def test_unknown_action(self):
        result = runner.invoke(app, ["adapters", "drop"])
        assert result.exit_code == 1


class TestContractCommand:
    def test_mysql_matrix(self):
        result = runner.invoke(app, ["contract", "-s", "mysql"])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == "Contract: standard"
        dirty = next(line for line in lines if line.startswith("dirty_read"))
        assert dirty.split()[1:] == ["present", "absent", "absent", "absent"]
        skew = next(line for line in lines if line.startswith("write_skew"))
        assert skew.split()[1:] == ["present", "present", "present", "absent"]

    def test_duckdb_matrix(self):
        result = runner.invoke(app, ["contract", "-s", "duckdb"])
        assert result.exit_code == 0
        lost = next(line for line in result.output.splitlines() if line.startswith("lost_update"))
        assert lost.split()[1:] == ["absent"] * 4

    def test_unknown_store(self):
        result = runner.invoke(app, ["contract", "-s", "oracle"])
        assert result.exit_code == 1


class TestRunCommand:
    def test_dry_run(self):
        result = runner.invoke(app, ["run", "-s", "duckdb,mysql", "-a", "dirty-read", "-l", "serializable", "--dry-run"])
        assert result.exit_code == 0
        assert "duckdb: dirty_read" in result.output
        assert "mysql: dirty_read" in result.output
        assert "Levels: serializable" in result.output

    def test_unknown_level(self):
        result = runner.invoke(app, ["run", "-l", "chaos", "--dry-run"])
        assert result.exit_code == 1

    def test_unknown_profile(self):
        result = runner.invoke(app, ["run", "-p", "huge", "--dry-run"])
        assert result.exit_code == 1

    def test_no_stores(self):
        result = runner.invoke(app, ["run", "-s", "nosuchstore"])
        assert result.exit_code == 1

    def test_run_duckdb(self, tmp_path):
        result = runner.invoke(
            app,
            ["run", "-s", "duckdb", "-a", "dirty_read,write_skew", "-p", "quick", "-o", str(tmp_path), "-f", "all"],
        )
        assert result.exit_code == 0, result.output
        assert "8 matched, 0 mismatched" in result.output

        [json_path] = tmp_path.glob("*.json")
        data = json.loads(json_path.read_text())
        assert len(data["results"]) == 8
        assert {r["status"] for r in data["results"]} == {"SUCCESS"}
        assert len(list(tmp_path.glob("*.csv"))) == 1
        assert len(list(tmp_path.glob("*.md"))) == 1
