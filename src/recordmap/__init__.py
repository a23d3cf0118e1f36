"""
Record mapping for SQLite, PostgreSQL and MySQL.

Dataclass records are registered with a DbMap, which generates and caches
the INSERT/UPDATE/DELETE/SELECT statements for them, propagates
auto-increment keys and enforces optimistic locking through a version
column. Record operations can also be called as module functions taking the
executor (a DbMap or Transaction) first: recordmap.insert(dbmap, record).
"""
__version__ = '0.1.0'

from typing import Any

from recordmap.connection import ConnectionWrapper, connect
from recordmap.cursor import Result
from recordmap.dbmap import DbMap
from recordmap.dialect import Dialect, MySQLDialect, PostgresDialect
from recordmap.dialect import SqliteDialect, get_dialect
from recordmap.exceptions import NOT_APPLIED, ConnectionFailure, DatabaseError
from recordmap.exceptions import DbConnectionError, DialectConfigError
from recordmap.exceptions import IntegrityError, IntegrityViolationError
from recordmap.exceptions import MappingError, NoKeysError, OperationalError
from recordmap.exceptions import OptimisticLockError, ProgrammingError
from recordmap.exceptions import QueryError, TransactionFinishedError
from recordmap.exceptions import TypeConversionError, UniqueViolation
from recordmap.exceptions import UnregisteredTypeError, ValidationError
from recordmap.executor import SqlExecutor
from recordmap.mapping import ColumnMap, FKAction, ForeignKey, TableMap
from recordmap.mapping import column, embed, transient
from recordmap.options import DatabaseOptions
from recordmap.transaction import Transaction
from recordmap.types import TypeConverter


def insert(executor: SqlExecutor, *records: Any) -> None:
    """Insert records through a DbMap or Transaction.
    """
    executor.insert(*records)


def update(executor: SqlExecutor, *records: Any) -> int:
    """Update records through a DbMap or Transaction.
    """
    return executor.update(*records)


def delete(executor: SqlExecutor, *records: Any) -> int:
    """Delete records through a DbMap or Transaction.
    """
    return executor.delete(*records)


def get(executor: SqlExecutor, cls: type, *keys: Any) -> Any | None:
    """Fetch a record by key through a DbMap or Transaction.
    """
    return executor.get(cls, *keys)


def select(executor: SqlExecutor, cls: type, query: str, *args: Any) -> list:
    """Run a query and load each row into a `cls` record.
    """
    return executor.select(cls, query, *args)


__all__ = [
    '__version__',
    'ColumnMap',
    'ConnectionFailure',
    'ConnectionWrapper',
    'DatabaseError',
    'DatabaseOptions',
    'DbConnectionError',
    'DbMap',
    'Dialect',
    'DialectConfigError',
    'FKAction',
    'ForeignKey',
    'IntegrityError',
    'IntegrityViolationError',
    'MappingError',
    'MySQLDialect',
    'NOT_APPLIED',
    'NoKeysError',
    'OperationalError',
    'OptimisticLockError',
    'PostgresDialect',
    'ProgrammingError',
    'QueryError',
    'Result',
    'SqlExecutor',
    'SqliteDialect',
    'TableMap',
    'Transaction',
    'TransactionFinishedError',
    'TypeConversionError',
    'TypeConverter',
    'UniqueViolation',
    'UnregisteredTypeError',
    'ValidationError',
    'column',
    'connect',
    'delete',
    'embed',
    'get',
    'get_dialect',
    'insert',
    'select',
    'transient',
    'update',
]
