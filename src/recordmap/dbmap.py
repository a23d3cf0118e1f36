"""
DbMap: the registry of mapped tables and the autocommit executor.

    cn = recordmap.connect(drivername='sqlite', database=':memory:')
    dbmap = DbMap(cn)
    dbmap.add_table(Person, 'person').set_keys(True, 'id')
    dbmap.create_tables()

    person = Person(name='Ann')
    dbmap.insert(person)           # person.id and person.version now set
    dbmap.get(Person, person.id)
"""
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Self

from recordmap.connection import ConnectionWrapper, connect
from recordmap.cursor import Cursor
from recordmap.dialect import Dialect, get_db_dialect
from recordmap.exceptions import NoKeysError, UnregisteredTypeError
from recordmap.executor import SqlExecutor
from recordmap.mapping import ColumnMap, TableMap
from recordmap.options import DatabaseOptions
from recordmap.schema import create_table_sql, drop_table_sql, truncate_table_sql
from recordmap.transaction import Transaction
from recordmap.types import TypeConverter, coerce_value

logger = logging.getLogger(__name__)


class DbMap(SqlExecutor):
    """Registry of record-to-table mappings bound to one connection.

    Args:
        cn: Open connection from `recordmap.connect`
        dialect: Dialect instance; defaults to the connection's dialect
        type_converter: Custom value conversion for fields
        version_field: Field name used as the optimistic-lock version column
    """

    def __init__(self, cn: ConnectionWrapper, dialect: Dialect | None = None,
                 type_converter: TypeConverter | None = None,
                 version_field: str = 'version') -> None:
        self.cn = cn
        self.dialect = dialect or get_db_dialect(cn)
        self.type_converter = type_converter
        self.version_field = version_field
        self._tables: list[TableMap] = []
        self._lock = threading.RLock()
        self._initialised = False
        self._trace_logger: logging.Logger | None = None
        self._trace_prefix = ''

    @classmethod
    def connect(cls, options: DatabaseOptions | dict[str, Any] | None = None,
                dialect: Dialect | None = None,
                type_converter: TypeConverter | None = None,
                version_field: str = 'version', **kw: Any) -> Self:
        """Open a connection and wrap it in a new DbMap."""
        return cls(connect(options, **kw), dialect=dialect,
                   type_converter=type_converter, version_field=version_field)

    def __repr__(self) -> str:
        return f'DbMap({self.dialect!r}, tables={[t.table_name for t in self.tables]})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def dbmap(self) -> Self:
        return self

    def _cursor(self) -> Cursor:
        return self.cn.cursor(self.dialect)

    def close(self) -> None:
        self.cn.close()

    # registry

    def add_table(self, cls: type, name: str | None = None, schema: str | None = None) -> TableMap:
        """Register a record type, returning its TableMap for further configuration.

        Registering a type again renames the existing mapping (and moves it to
        `schema` when one is given) instead of adding a second one.
        """
        name = name or cls.__name__
        with self._lock:
            for table in self._tables:
                if table.record_type is cls:
                    table.table_name = name
                    if schema is not None:
                        table.schema_name = schema
                    table.reset_sql()
                    logger.debug(f'Re-registered {cls.__name__} as table {name}')
                    return table

            table = TableMap(cls, name, schema or '', self.dialect, self.version_field)
            self._tables.append(table)
        logger.debug(f'Registered {cls.__name__} as table {name} '
                     f'({len(table.columns)} columns)')
        return table

    @property
    def tables(self) -> list[TableMap]:
        with self._lock:
            return list(self._tables)

    def table_or_none(self, cls: type) -> TableMap | None:
        with self._lock:
            for table in self._tables:
                if table.record_type is cls:
                    return table
        return None

    def table_for(self, cls: type, check_pk: bool = False) -> TableMap:
        """Look up the mapping for a record type.

        Raises
            UnregisteredTypeError: cls was never registered
            NoKeysError: check_pk is set and the table has no keys
        """
        table = self.table_or_none(cls)
        if table is None:
            raise UnregisteredTypeError(cls)
        if check_pk and not table.keys:
            raise NoKeysError(table.table_name)
        return table

    def table_for_record(self, record: Any, check_pk: bool = False) -> TableMap:
        return self.table_for(type(record), check_pk)

    # value conversion

    def to_db(self, value: Any) -> Any:
        if self.type_converter is not None:
            return self.type_converter.to_db(value)
        return value

    def from_db(self, col: ColumnMap, value: Any) -> Any:
        if self.type_converter is not None:
            binder = self.type_converter.from_db(col.py_type)
            if binder is not None:
                return binder(value)
        return coerce_value(value, col.py_type)

    # schema

    def create_tables(self, if_not_exists: bool = False) -> None:
        """Create every registered table, in registration order."""
        for table in self.tables:
            for sql in create_table_sql(table, if_not_exists):
                self.exec(sql)

    def create_tables_if_not_exists(self) -> None:
        self.create_tables(if_not_exists=True)

    def drop_table(self, cls: type, if_exists: bool = False) -> None:
        self.exec(drop_table_sql(self.table_for(cls), if_exists))

    def drop_tables(self, if_exists: bool = False) -> None:
        """Drop every registered table, in reverse registration order."""
        for table in reversed(self.tables):
            self.exec(drop_table_sql(table, if_exists))

    def drop_tables_if_exists(self) -> None:
        self.drop_tables(if_exists=True)

    def truncate_tables(self) -> None:
        """Remove all rows from every registered table.

        Continues past failures and raises the last one after all tables
        were attempted.
        """
        error = None
        for table in reversed(self.tables):
            try:
                self.exec(truncate_table_sql(table))
            except Exception as exc:
                logger.error(f'Could not truncate {table.table_name}: {exc}')
                error = exc
        if error is not None:
            raise error

    # execution support

    def _initialise(self) -> None:
        """Run the dialect's per-connection init statements once."""
        if self._initialised:
            return
        with self._lock:
            if self._initialised:
                return
            for sql in self.dialect.init_statements():
                self._trace(sql, ())
                with self.cn.cursor(self.dialect) as cursor:
                    cursor.execute(sql)
            self._initialised = True

    def trace_on(self, prefix: str = '', logger: logging.Logger | None = None) -> None:
        """Log every statement and its arguments at INFO through `logger`."""
        self._trace_prefix = prefix
        self._trace_logger = logger or logging.getLogger('recordmap.trace')

    def trace_off(self) -> None:
        self._trace_logger = None

    def _trace(self, sql: str, args: tuple) -> None:
        if self._trace_logger is not None:
            bound = ' '.join(f'{i}:{arg!r}' for i, arg in enumerate(args, 1))
            self._trace_logger.info(f'{self._trace_prefix}{sql} [{bound}]')

    def begin(self) -> Transaction:
        """Start a transaction on this DbMap's connection."""
        return Transaction(self)

    @contextmanager
    def cancel_after(self, seconds: float) -> Iterator[Self]:
        """Interrupt any statement still running `seconds` after entering.

        The interrupted statement raises the driver's own error.
        """
        if not self.dialect.supports_cancel:
            raise NotImplementedError(
                f'{self.dialect.dialect_name} does not support cancelling statements')
        timer = threading.Timer(seconds, self.dialect.cancel, args=(self.cn.driver_connection,))
        timer.daemon = True
        timer.start()
        try:
            yield self
        finally:
            timer.cancel()
