"""
Statement executor interface shared by DbMap and Transaction.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

import pandas as pd
from recordmap import crud
from recordmap.cursor import Cursor, Result

if TYPE_CHECKING:
    from recordmap.dbmap import DbMap
    from recordmap.mapping import ColumnMap

logger = logging.getLogger(__name__)


class SqlExecutor(ABC):
    """Runs statements and record operations against one connection.

    Implemented by DbMap (autocommit) and Transaction (inside an open
    transaction); both expose exactly the same operations.
    """

    @property
    @abstractmethod
    def dbmap(self) -> 'DbMap':
        """The DbMap holding table metadata for this executor."""

    @abstractmethod
    def _cursor(self) -> Cursor:
        """A new cursor on the executor's connection."""

    def _check_open(self) -> None:
        """Raise if the executor can no longer run statements."""

    def _run(self, sql: str, args: tuple) -> Cursor:
        self._check_open()
        dbmap = self.dbmap
        dbmap._initialise()
        dbmap._trace(sql, args)
        cursor = self._cursor()
        try:
            cursor.execute(sql, args)
        except Exception:
            cursor.close()
            raise
        return cursor

    def exec(self, sql: str, *args: Any) -> Result:
        """Execute a statement, returning the affected row count and last row id.
        """
        cursor = self._run(sql, args)
        try:
            return Result(cursor.rowcount, cursor.lastrowid)
        finally:
            cursor.close()

    def query(self, sql: str, *args: Any) -> Cursor:
        """Execute a query and return its open cursor; close it when done.
        """
        return self._run(sql, args)

    def insert(self, *records: Any) -> None:
        """Insert records, setting auto-increment ids and versions on them.
        """
        self._check_open()
        crud.insert(self.dbmap, self, records)

    def update(self, *records: Any) -> int:
        """Update records by key, returning the total rows affected.

        Raises OptimisticLockError when a versioned record is out of date.
        """
        self._check_open()
        return crud.update(self.dbmap, self, records)

    def update_columns(self, columns: Iterable[str] | Callable[['ColumnMap'], bool],
                       *records: Any) -> int:
        """Update only the given fields (names or a ColumnMap predicate).
        """
        self._check_open()
        return crud.update(self.dbmap, self, records, crud.column_filter(columns))

    def delete(self, *records: Any) -> int:
        """Delete records by key, returning the total rows affected.
        """
        self._check_open()
        return crud.delete(self.dbmap, self, records)

    def get(self, cls: type, *keys: Any) -> Any | None:
        """Fetch a record by its key values (in key order), or None.
        """
        self._check_open()
        return crud.get(self.dbmap, self, cls, *keys)

    def select(self, cls: type, query: str, *args: Any, into: list | None = None) -> list:
        """Run a query and load each row into a `cls` record.
        """
        self._check_open()
        return crud.select(self.dbmap, self, cls, query, args, into)

    def select_one(self, cls: type, query: str, *args: Any) -> Any | None:
        self._check_open()
        return crud.select_one(self.dbmap, self, cls, query, args)

    def select_int(self, query: str, *args: Any) -> int | None:
        found, value = crud.select_value(self, query, args)
        if not found:
            return 0
        return None if value is None else int(value)

    def select_float(self, query: str, *args: Any) -> float | None:
        found, value = crud.select_value(self, query, args)
        if not found:
            return 0.0
        return None if value is None else float(value)

    def select_str(self, query: str, *args: Any) -> str | None:
        found, value = crud.select_value(self, query, args)
        if not found:
            return ''
        return None if value is None else str(value)

    def select_frame(self, query: str, *args: Any) -> pd.DataFrame:
        """Run a query and return the rows as a DataFrame.

        Always returns a DataFrame, with columns preserved for empty results.
        """
        with self.query(query, *args) as cursor:
            columns = cursor.column_names
            rows = cursor.fetchall()
        return pd.DataFrame.from_records(rows, columns=columns)
