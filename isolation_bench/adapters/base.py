r"""
Base adapter implementation with common functionality.

Provides the single-attempt transaction loop, the retrying wrapper and a
DB-API session that renders Predicate filters into SQL, so a concrete
adapter only has to open, commit, roll back and release a transaction.

    from isolation_bench.adapters.base import BaseStore

    class MyAdapter(BaseStore):
        def connect(self, *, uri: str | None = None, **kwargs) -> None:
            ...
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, TypeVar

from isolation_bench.errors import SchemaError, TransientConflict
from isolation_bench.executor import RetryingExecutor
from isolation_bench.expectations import STANDARD, IsolationContract
from isolation_bench.protocols import StoreSession, UnitOfWork
from isolation_bench.types import IsolationLevel, Predicate, Row, TransactionOutcome, TransactionStatus

__all__ = ["AdapterRegistry", "BaseStore", "DbApiSession", "TABLE_NAME", "Transaction"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

TABLE_NAME = "key_value"


class AdapterRegistry:
    """Registry for store adapters."""

    _adapters: dict[str, type["BaseStore"]] = {}

    @classmethod
    def register(cls, name: str) -> Any:
        """Decorator to register an adapter class."""

        def decorator(adapter_cls: type["BaseStore"]) -> type["BaseStore"]:
            cls._adapters[name] = adapter_cls
            return adapter_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> type["BaseStore"] | None:
        """Get adapter class by name."""
        return cls._adapters.get(name)

    @classmethod
    def list(cls) -> list[str]:
        """List registered adapter names."""
        return list(cls._adapters.keys())

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> "BaseStore":
        """Create adapter instance by name."""
        adapter_cls = cls.get(name)
        if adapter_cls is None:
            valid = ", ".join(cls.list()) or "none"
            msg = f"Unknown adapter '{name}'. Registered: {valid}"
            raise ValueError(msg)
        return adapter_cls(**kwargs)


class DbApiSession:
    """StoreSession over a DB-API cursor.

    Args:
        cursor: Cursor bound to the open transaction.
        placeholder: Parameter marker of the driver ("%s" or "?").
        order_by: Column giving insertion order.
    """

    def __init__(self, cursor: Any, *, placeholder: str = "%s", order_by: str = "id") -> None:
        self._cursor = cursor
        self._p = placeholder
        self._order_by = order_by

    def _where(self, predicate: Predicate) -> tuple[str, tuple[Any, ...]]:
        if predicate.key is None:
            return "", ()
        return f" WHERE key_ = {self._p}", (predicate.key,)

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> None:
        if params:
            self._cursor.execute(sql, params)
        else:
            self._cursor.execute(sql)

    def _affected(self) -> int:
        """Rows touched by the last statement."""
        return self._cursor.rowcount

    def insert(self, key: str, value: int = 0) -> None:
        self._execute(
            f"INSERT INTO {TABLE_NAME} (key_, value) VALUES ({self._p}, {self._p})",
            (key, value),
        )

    def update(self, predicate: Predicate, value: int) -> int:
        where, params = self._where(predicate)
        self._execute(f"UPDATE {TABLE_NAME} SET value = {self._p}{where}", (value, *params))
        return self._affected()

    def select(self, predicate: Predicate) -> list[Row]:
        where, params = self._where(predicate)
        self._execute(f"SELECT key_, value FROM {TABLE_NAME}{where} ORDER BY {self._order_by}", params)
        return [Row(key=key, value=value) for key, value in self._cursor.fetchall()]

    def count(self, predicate: Predicate) -> int:
        where, params = self._where(predicate)
        self._execute(f"SELECT COUNT(*) FROM {TABLE_NAME}{where}", params)
        return self._cursor.fetchone()[0]

    def delete_all(self) -> int:
        self._execute(f"DELETE FROM {TABLE_NAME}")
        return self._affected()


@dataclass
class Transaction:
    """An open transaction: driver connection plus the session bound to it."""

    connection: Any
    session: StoreSession
    level: IsolationLevel


class BaseStore(ABC):
    """Base class for transactional store adapters.

    Subclasses open, commit, roll back and release transactions; this class
    turns driver conflicts into CONFLICT outcomes and layers retries on top.
    """

    _connected: bool = False
    contract: IsolationContract = STANDARD

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable adapter name."""
        ...

    @property
    def version(self) -> str:
        """Store version string."""
        return "unknown"

    @property
    def connected(self) -> bool:
        """Whether adapter is currently connected."""
        return self._connected

    @property
    def is_embedded(self) -> bool:
        """Whether this is an embedded (in-process) store.

        Override in subclasses. Defaults to False (server).
        """
        return False

    @abstractmethod
    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        """Establish connection to the store."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to the store."""
        ...

    @abstractmethod
    def _create_schema(self) -> None:
        """Create the key_value table if absent."""
        ...

    @abstractmethod
    def _begin(self, level: IsolationLevel) -> Transaction:
        """Open a transaction at ``level``."""
        ...

    @abstractmethod
    def _commit(self, txn: Transaction) -> None:
        ...

    @abstractmethod
    def _rollback(self, txn: Transaction) -> None:
        ...

    @abstractmethod
    def _release(self, txn: Transaction) -> None:
        """Return the transaction's connection or cursor."""
        ...

    def _is_driver_conflict(self, exc: BaseException) -> bool:
        """Driver-specific conflict detection. Override in subclasses."""
        return False

    def effective_level(self, level: IsolationLevel) -> IsolationLevel:
        """Isolation level applied when ``level`` is requested.

        Defaults to the requested level. Override for stores that upgrade
        or collapse levels.
        """
        return level

    def is_transient(self, exc: BaseException) -> bool:
        """Whether ``exc`` is a conflict that a retry may resolve."""
        return isinstance(exc, TransientConflict) or self._is_driver_conflict(exc)

    def ensure_schema(self) -> None:
        """Create the row table if absent.

        Raises:
            SchemaError: If the store refused the DDL.
        """
        if not self._connected:
            msg = f"{self.name} is not connected"
            raise SchemaError(msg)
        try:
            self._create_schema()
        except Exception as e:
            msg = f"Could not create table '{TABLE_NAME}' on {self.name}: {e}"
            raise SchemaError(msg) from e

    def reset(self) -> None:
        """Delete all rows in a transaction of their own."""
        self.run_in_transaction(IsolationLevel.READ_COMMITTED, lambda session: session.delete_all())

    def attempt(self, level: IsolationLevel, body: UnitOfWork[T]) -> TransactionOutcome[T]:
        """Run ``body`` once inside a transaction at ``level``.

        Returns:
            COMMITTED outcome with the body's value, or CONFLICT outcome if
            the store reported a transient conflict (effects rolled back).

        Raises:
            Exception: Any non-transient error, after rolling back.
        """
        txn = self._begin(level)
        try:
            value = body(txn.session)
            self._commit(txn)
        except Exception as e:
            logger.debug("ROLLBACK on %s at %s: %s", self.name, level.sql, e)
            self._safe_rollback(txn)
            if not self.is_transient(e):
                raise
            return TransactionOutcome(status=TransactionStatus.CONFLICT, attempts=1, conflicts=1, error=str(e))
        finally:
            self._release(txn)
        logger.debug("COMMIT on %s at %s", self.name, level.sql)
        return TransactionOutcome(status=TransactionStatus.COMMITTED, value=value)

    def run_in_transaction(
        self,
        level: IsolationLevel,
        body: UnitOfWork[T],
        *,
        retry_budget: int = 3,
    ) -> T:
        """Run ``body`` with up to ``retry_budget`` attempts.

        Raises:
            ConflictExhausted: If every attempt conflicted.
        """
        return RetryingExecutor(self).run(level, retry_budget, body).unwrap()

    def _safe_rollback(self, txn: Transaction) -> None:
        # The driver may already have aborted the transaction on its own
        try:
            self._rollback(txn)
        except Exception as e:
            logger.debug("Rollback on %s failed after error: %s", self.name, e)
