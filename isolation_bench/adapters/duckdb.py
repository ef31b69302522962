r"""
DuckDB embedded store adapter.

DuckDB runs every transaction under snapshot isolation regardless of the
level requested, and aborts the second writer of a row with a
TransactionException (first-updater-wins).

Requires: pip install duckdb

Environment variables:
    ISOLATION_BENCH_DUCKDB_PATH: Database path (default: :memory:)

    from isolation_bench.adapters.duckdb import DuckDBStore

    store = DuckDBStore()
    store.connect()  # In-memory by default
"""

import logging
import threading
from typing import Any

from isolation_bench.adapters.base import TABLE_NAME, AdapterRegistry, BaseStore, DbApiSession, Transaction
from isolation_bench.config import get_env
from isolation_bench.expectations import SNAPSHOT
from isolation_bench.types import IsolationLevel

__all__ = ["DuckDBSession", "DuckDBStore"]

logger = logging.getLogger(__name__)


class DuckDBSession(DbApiSession):
    """DuckDB returns affected row counts as a result set, not via rowcount."""

    def _affected(self) -> int:
        row = self._cursor.fetchone()
        return row[0] if row else 0


@AdapterRegistry.register("duckdb")
class DuckDBStore(BaseStore):
    """DuckDB embedded store adapter."""

    contract = SNAPSHOT

    def __init__(self) -> None:
        self._conn: Any = None
        self._connected = False
        self._cursor_lock = threading.Lock()
        self._conflict_errors: tuple[type[BaseException], ...] = ()

    @property
    def name(self) -> str:
        return "DuckDB"

    @property
    def version(self) -> str:
        try:
            import duckdb

            return duckdb.__version__
        except Exception:
            return "unknown"

    @property
    def is_embedded(self) -> bool:
        return True

    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        if self._connected:
            return
        try:
            import duckdb
        except ImportError as e:
            msg = "duckdb package not installed. Install with: pip install duckdb"
            raise ImportError(msg) from e

        path = uri or kwargs.get("path") or get_env("DUCKDB_PATH", default=":memory:")

        self._conn = duckdb.connect(path)
        self._conflict_errors = (duckdb.TransactionException,)
        self._connected = True
        self.ensure_schema()

    def disconnect(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
        self._connected = False

    def _create_schema(self) -> None:
        self._conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                key_ VARCHAR NOT NULL,
                value INTEGER NOT NULL DEFAULT 0
            )
        """)

    def effective_level(self, level: IsolationLevel) -> IsolationLevel:
        return IsolationLevel.REPEATABLE_READ

    def _is_driver_conflict(self, exc: BaseException) -> bool:
        return isinstance(exc, self._conflict_errors)

    def _begin(self, level: IsolationLevel) -> Transaction:
        # Cursors are independent connections to the same database
        with self._cursor_lock:
            cursor = self._conn.cursor()
        cursor.execute("BEGIN TRANSACTION")
        logger.debug("BEGIN on DuckDB (requested %s, running snapshot)", level.sql)
        session = DuckDBSession(cursor, placeholder="?", order_by="rowid")
        return Transaction(connection=cursor, session=session, level=level)

    def _commit(self, txn: Transaction) -> None:
        txn.connection.execute("COMMIT")

    def _rollback(self, txn: Transaction) -> None:
        txn.connection.execute("ROLLBACK")

    def _release(self, txn: Transaction) -> None:
        txn.connection.close()
