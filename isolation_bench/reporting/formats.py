r"""
Export formats for scenario results.

    from isolation_bench.reporting.formats import JsonExporter, MarkdownExporter

    exporter = JsonExporter()
    exporter.export(collector, "results.json")
"""

import csv
import io
import json
from abc import ABC, abstractmethod
from pathlib import Path

from isolation_bench.reporting.collector import ResultCollector
from isolation_bench.types import Anomaly, IsolationLevel, ScenarioResult, Status

__all__ = ["BaseExporter", "CsvExporter", "JsonExporter", "MarkdownExporter", "format_cell"]


def _presence(flag: bool) -> str:
    return "present" if flag else "absent"


def format_cell(result: ScenarioResult | None) -> str:
    """Render one matrix cell, e.g. ``✓ present`` or ``✗ absent (expected present)``."""
    if result is None:
        return "N/A"
    if result.status == Status.SKIPPED:
        return "– blocked"
    if result.status == Status.TIMEOUT:
        return "✗ TIMEOUT"
    if result.status == Status.FAILED:
        return "✗ FAILED"
    observed = _presence(bool(result.observed))
    if result.status == Status.MISMATCH:
        return f"✗ {observed} (expected {_presence(result.expected)})"
    return f"✓ {observed}"


class BaseExporter(ABC):
    """Base class for result exporters."""

    @abstractmethod
    def export(self, collector: ResultCollector, path: str | Path) -> None:
        """Export results to file."""
        ...

    @abstractmethod
    def to_string(self, collector: ResultCollector) -> str:
        """Export results to string."""
        ...


class JsonExporter(BaseExporter):
    """Export results to JSON format."""

    def __init__(self, *, indent: int = 2) -> None:
        self._indent = indent

    def export(self, collector: ResultCollector, path: str | Path) -> None:
        """Export results to JSON file."""
        Path(path).write_text(self.to_string(collector))

    def to_string(self, collector: ResultCollector) -> str:
        """Export results to JSON string."""
        return json.dumps(collector.to_dict(), indent=self._indent, default=str)


class CsvExporter(BaseExporter):
    """Export results to CSV format, one row per matrix cell."""

    HEADER = [
        "session_id",
        "store",
        "scenario",
        "level",
        "effective_level",
        "expected",
        "observed",
        "status",
        "elapsed_ms",
        "error",
    ]

    def export(self, collector: ResultCollector, path: str | Path) -> None:
        """Export results to CSV file."""
        Path(path).write_text(self.to_string(collector))

    def to_string(self, collector: ResultCollector) -> str:
        """Export results to CSV string."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(self.HEADER)

        session_id = collector.session.session_id

        for result in collector.results:
            writer.writerow([
                session_id,
                result.store,
                result.scenario,
                result.level.key,
                result.effective_level.key if result.effective_level else "",
                _presence(result.expected),
                "" if result.observed is None else _presence(result.observed),
                result.status.name,
                f"{result.elapsed_ms:.3f}",
                result.error or "",
            ])

        return buffer.getvalue().rstrip("\n")


class MarkdownExporter(BaseExporter):
    """Export results to Markdown format."""

    def export(self, collector: ResultCollector, path: str | Path) -> None:
        """Export results to Markdown file."""
        Path(path).write_text(self.to_string(collector))

    def to_string(self, collector: ResultCollector) -> str:
        """Export results to Markdown string."""
        lines: list[str] = []
        session = collector.session
        env = collector.environment

        lines.append("# Transaction Isolation Anomaly Report")
        lines.append("")
        lines.append(f"**Session:** {session.session_id}")
        lines.append(f"**Profile:** {session.profile}")
        lines.append(f"**Date:** {session.started_at[:10] if session.started_at else 'N/A'}")
        lines.append("")

        lines.append("## Environment")
        lines.append("")
        lines.append(f"- Platform: {env.platform}")
        lines.append(f"- Python: {env.python_version}")
        lines.append(f"- CPU: {env.cpu} ({env.cpu_count} logical)")
        lines.append("")

        lines.append("## Summary")
        lines.append("")
        self._add_summary_table(collector, lines)

        for store in session.stores:
            version = session.store_versions.get(store)
            title = f"{store} {version}" if version and version != "unknown" else store
            lines.append(f"## {title}")
            lines.append("")
            self._add_matrix_table(collector, store, lines)

        return "\n".join(lines)

    def _add_summary_table(self, collector: ResultCollector, lines: list[str]) -> None:
        """Add per-store status counts."""
        lines.append("| Store | Success | Mismatch | Failed | Timeout | Skipped |")
        lines.append("|-------|---------|----------|--------|---------|---------|")

        for store, counts in collector.summarize().items():
            lines.append(
                f"| {store} | {counts['SUCCESS']} | {counts['MISMATCH']} | {counts['FAILED']} "
                f"| {counts['TIMEOUT']} | {counts['SKIPPED']} |"
            )

        lines.append("")

    def _add_matrix_table(self, collector: ResultCollector, store: str, lines: list[str]) -> None:
        """Add the anomaly x level matrix for one store."""
        results = collector.get_results_by_store(store)
        if not results:
            lines.append("No scenarios were run.")
            lines.append("")
            return

        levels = [level for level in IsolationLevel if any(r.level == level for r in results)]
        anomalies = [anomaly for anomaly in Anomaly if any(r.anomaly == anomaly for r in results)]

        header = "| Anomaly |" + " | ".join(level.key for level in levels) + " |"
        separator = "|---------|" + "|".join("-" * 12 for _ in levels) + "|"
        lines.append(header)
        lines.append(separator)

        for anomaly in anomalies:
            row = f"| {anomaly.key} |"
            for level in levels:
                result = next((r for r in results if r.anomaly == anomaly and r.level == level), None)
                row += f" {format_cell(result)} |"
            lines.append(row)

        lines.append("")
