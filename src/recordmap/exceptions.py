"""
Mapping and database exception classes.
"""
import sqlite3

import psycopg
import pymysql

# rows-affected value reported for a conflicted update or delete
NOT_APPLIED = -1


class DatabaseError(Exception):
    """Base class for all recordmap errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or maintaining database connection.
    """


class QueryError(DatabaseError):
    """Error in query syntax or execution.
    """


class TypeConversionError(DatabaseError):
    """Error converting types between Python and database.
    """


class IntegrityViolationError(DatabaseError):
    """A record would violate a table constraint (raised before the statement runs).
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


class NoKeysError(ValidationError):
    """A keyed operation was attempted on a table without key columns.

    Tables may legitimately be registered without keys (for select-only use),
    so this is recoverable rather than a programming error.
    """

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(f'No keys defined for table: {table_name}')


class TransactionFinishedError(DatabaseError):
    """The transaction was already committed or rolled back.
    """


class OptimisticLockError(DatabaseError):
    """An update or delete matched no rows for the version the caller held.

    `row_exists` distinguishes a version mismatch (the row is still there but
    was modified elsewhere) from a row that has been deleted.
    """

    rows_affected = NOT_APPLIED

    def __init__(self, table_name: str, keys: list, row_exists: bool,
                 local_version: int) -> None:
        self.table_name = table_name
        self.keys = keys
        self.row_exists = row_exists
        self.local_version = local_version
        if row_exists:
            msg = (f'recordmap: OptimisticLockError table={table_name} keys={keys} '
                   f'out of date version={local_version}')
        else:
            msg = f'recordmap: OptimisticLockError no row found for table={table_name} keys={keys}'
        super().__init__(msg)


class UnregisteredTypeError(TypeError):
    """A typed operation was called with a record type that was never registered.
    """

    def __init__(self, cls: type) -> None:
        self.cls = cls
        super().__init__(f'No table found for type: {getattr(cls, "__name__", cls)}')


class MappingError(ValueError):
    """Invalid table or column metadata configuration.
    """


class DialectConfigError(ValueError):
    """A dialect is missing settings it needs to generate SQL.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    pymysql.err.OperationalError,
    pymysql.err.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    ConnectionFailure,
    )

IntegrityError = (
    psycopg.IntegrityError,
    pymysql.err.IntegrityError,
    sqlite3.IntegrityError,
    IntegrityViolationError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    psycopg.DatabaseError,
    pymysql.err.ProgrammingError,
    sqlite3.ProgrammingError,
    sqlite3.DatabaseError,
    QueryError,
    )

OperationalError = (
    psycopg.OperationalError,
    pymysql.err.OperationalError,
    sqlite3.OperationalError,
    )

UniqueViolation = (
    psycopg.errors.UniqueViolation,
    sqlite3.IntegrityError,
    IntegrityViolationError,
    )
