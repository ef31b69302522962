r"""
Store adapters for isolation-bench.

Each adapter implements the TransactionalStore protocol so the scenario
drivers run unchanged against any store. Driver packages are imported lazily
in ``connect()``.

    from isolation_bench.adapters import AdapterRegistry

    store = AdapterRegistry.create("duckdb")
    store.connect()
"""

from isolation_bench.adapters.base import AdapterRegistry, BaseStore, DbApiSession, Transaction
from isolation_bench.adapters.duckdb import DuckDBStore
from isolation_bench.adapters.mysql import MySQLStore
from isolation_bench.adapters.postgresql import PostgreSQLStore

__all__ = [
    "AdapterRegistry",
    "BaseStore",
    "DbApiSession",
    "DuckDBStore",
    "MySQLStore",
    "PostgreSQLStore",
    "Transaction",
]
