r"""
Command-line interface for isolation-bench.

    isolation-bench run -s duckdb -p quick
    isolation-bench contract -s mysql
"""

from isolation_bench.cli.main import app, main

__all__ = [
    "app",
    "main",
]
