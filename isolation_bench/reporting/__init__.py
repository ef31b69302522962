r"""
Result collection and reporting.

Aggregates scenario results and exports them to
JSON, CSV, and Markdown formats.

    from isolation_bench.reporting import ResultCollector, MarkdownExporter

    collector = ResultCollector()
    collector.add_result(result)
    MarkdownExporter().export(collector, "report.md")
"""

from isolation_bench.reporting.collector import EnvironmentInfo, ResultCollector, SessionInfo
from isolation_bench.reporting.formats import CsvExporter, JsonExporter, MarkdownExporter, format_cell

__all__ = [
    "CsvExporter",
    "EnvironmentInfo",
    "JsonExporter",
    "MarkdownExporter",
    "ResultCollector",
    "SessionInfo",
    "format_cell",
]
