"""
Cursor wrapper used by every statement the mapper runs.

Implements the parts of Python DB-API 2.0 (PEP-249) the mapper relies on,
adding placeholder rewriting, parameter conversion, SQL logging and call
statistics.
"""
import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass
from functools import wraps
from typing import TYPE_CHECKING, Any, Self

from recordmap.types import ParamConverter

if TYPE_CHECKING:
    from recordmap.connection import ConnectionWrapper
    from recordmap.dialect import Dialect

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of a non-query statement."""
    rowcount: int
    lastrowid: int | None = None


def dumpsql(func):
    """Decorator for logging SQL statements and parameters."""
    @wraps(func)
    def wrapper(self, operation: str, args: tuple = ()):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            result = func(self, operation, args)
            if hasattr(self.dbapi_cursor, 'statusmessage'):
                logger.debug(f'Query result: {self.dbapi_cursor.statusmessage}')
            return result
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Cursor wrapper that speaks the dialect's placeholder style.
    """

    def __init__(self, cursor: Any, connection_wrapper: 'ConnectionWrapper',
                 dialect: 'Dialect') -> None:
        """Initialize cursor wrapper.

        Args:
            cursor: The underlying DBAPI cursor
            connection_wrapper: The connection wrapper that created this cursor
            dialect: Dialect used to rewrite placeholders
        """
        self.dbapi_cursor = cursor
        self.connwrapper = connection_wrapper
        self.dialect = dialect

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[tuple]:
        """Iterate through remaining rows."""
        while True:
            row = self.dbapi_cursor.fetchone()
            if row is None:
                break
            yield row

    @property
    def description(self) -> list[tuple] | None:
        """Column descriptions for last query."""
        return self.dbapi_cursor.description

    @property
    def column_names(self) -> list[str]:
        """Result column names for the last query, in order."""
        return [d[0] for d in self.description or []]

    @property
    def rowcount(self) -> int:
        """Number of rows produced/affected by last operation."""
        return self.dbapi_cursor.rowcount

    @property
    def lastrowid(self) -> int | None:
        """Row id generated by the last INSERT, where the driver reports one."""
        return getattr(self.dbapi_cursor, 'lastrowid', None)

    def close(self) -> None:
        """Close cursor."""
        self.dbapi_cursor.close()

    def fetchone(self) -> tuple | None:
        """Fetch next row."""
        return self.dbapi_cursor.fetchone()

    def fetchall(self) -> list[tuple]:
        """Fetch all remaining rows."""
        return self.dbapi_cursor.fetchall()

    @dumpsql
    def execute(self, operation: str, args: tuple = ()) -> int:
        """Execute a statement, returning the affected row count.
        """
        operation, args = self.dialect.standardize_sql(operation, args)
        if args:
            self.dbapi_cursor.execute(operation, ParamConverter.convert_params(tuple(args)))
        else:
            self.dbapi_cursor.execute(operation)
        return self.dbapi_cursor.rowcount
