"""
Record operations shared by DbMap and Transaction.

Each function takes the DbMap holding the table metadata and the executor
the statements run on, so the same code serves both autocommit and
transactional use.
"""
import dataclasses
import enum
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from recordmap.cache import FIELD_INDEX_CACHE, Cache
from recordmap.exceptions import IntegrityViolationError, OptimisticLockError, QueryError
from recordmap.exceptions import TypeConversionError, ValidationError
from recordmap.hooks import run_hook
from recordmap.mapping import ColumnMap, TableMap, read_record_columns
from recordmap.types import new_record

if TYPE_CHECKING:
    from recordmap.bindings import BindInstance
    from recordmap.dbmap import DbMap
    from recordmap.executor import SqlExecutor

logger = logging.getLogger(__name__)


def _holds_int(py_type: type) -> bool:
    if py_type is object:
        return True
    return issubclass(py_type, int) and not issubclass(py_type, bool | enum.Enum)


def column_filter(columns: Iterable[str] | Callable[[ColumnMap], bool]) -> Callable[[ColumnMap], bool]:
    """Column filter accepting field or column names, or a predicate as is."""
    if callable(columns):
        return columns
    names = set(columns)
    return lambda col: col.field_name in names or col.column_name in names


def insert(dbmap: 'DbMap', executor: 'SqlExecutor', records: Iterable[Any]) -> None:
    for record in records:
        table = dbmap.table_for_record(record)
        run_hook('pre_insert', record, executor)

        missing = [col.dotted_path for col in table.keys
                   if not col.is_auto_incr and col.get(record) is None]
        if missing:
            raise IntegrityViolationError(
                f'recordmap: {type(record).__name__} key {", ".join(missing)} is None')

        bi = table.bind_insert(record, dbmap.to_db)
        if bi.auto_incr_column is None:
            executor.exec(bi.query, *bi.args)
        else:
            new_id = dbmap.dialect.insert_auto_incr(executor, bi.query, bi.args)
            col = bi.auto_incr_column
            if not _holds_int(col.py_type):
                raise TypeConversionError(
                    f'recordmap: cannot set auto-increment id {new_id} on '
                    f'{type(record).__name__}.{col.dotted_path} of type '
                    f'{col.py_type.__name__}; the field must be an int')
            col.set(record, int(new_id))

        run_hook('post_insert', record, executor)


def update(dbmap: 'DbMap', executor: 'SqlExecutor', records: Iterable[Any],
           col_filter: Callable[[ColumnMap], bool] | None = None) -> int:
    count = 0
    for record in records:
        table = dbmap.table_for_record(record, check_pk=True)
        run_hook('pre_update', record, executor)

        bi = table.bind_update(record, dbmap.to_db, col_filter)
        rows = executor.exec(bi.query, *bi.args).rowcount
        if rows == 0 and bi.existing_version > 0:
            raise lock_error(dbmap, executor, table, bi)
        if bi.version_column is not None:
            bi.version_column.set(record, bi.existing_version + 1)
        count += rows

        run_hook('post_update', record, executor)
    return count


def delete(dbmap: 'DbMap', executor: 'SqlExecutor', records: Iterable[Any]) -> int:
    count = 0
    for record in records:
        table = dbmap.table_for_record(record, check_pk=True)
        run_hook('pre_delete', record, executor)

        bi = table.bind_delete(record, dbmap.to_db)
        rows = executor.exec(bi.query, *bi.args).rowcount
        if rows == 0 and bi.existing_version > 0:
            raise lock_error(dbmap, executor, table, bi)
        count += rows

        run_hook('post_delete', record, executor)
    return count


def lock_error(dbmap: 'DbMap', executor: 'SqlExecutor', table: TableMap,
               bi: 'BindInstance') -> OptimisticLockError:
    """Build the conflict error, checking whether the row still exists."""
    existing = get(dbmap, executor, table.record_type, *bi.keys)
    logger.debug(f'Optimistic lock conflict on {table.table_name} keys={bi.keys} '
                 f'version={bi.existing_version} row_exists={existing is not None}')
    return OptimisticLockError(table.table_name, list(bi.keys), existing is not None,
                               bi.existing_version)


def _load_record(dbmap: 'DbMap', cls: type, columns: list[ColumnMap], row: tuple) -> Any:
    record = new_record(cls)
    for col, value in zip(columns, row):
        col.set(record, dbmap.from_db(col, value))
    return record


def get(dbmap: 'DbMap', executor: 'SqlExecutor', cls: type, *keys: Any) -> Any | None:
    """Fetch one record by key values given in key order; None when absent."""
    table = dbmap.table_for(cls, check_pk=True)
    if len(keys) != len(table.keys):
        raise ValidationError(
            f'{table.table_name} has {len(table.keys)} key column(s), got {len(keys)} value(s)')

    plan = table.bind_get()
    with executor.query(plan.query, *keys) as cursor:
        row = cursor.fetchone()
    if row is None:
        return None

    record = _load_record(dbmap, cls, plan.columns, row)
    run_hook('post_get', record, executor)
    return record


def _resolve_columns(dbmap: 'DbMap', cls: type, table: TableMap | None,
                     names: list[str], query: str) -> list[ColumnMap]:
    if table is not None:
        candidates = table.columns
    else:
        candidates, _ = read_record_columns(cls, dbmap.version_field)
    candidates = [col for col in candidates if not col.transient]

    def find(match: Callable[[ColumnMap], bool]) -> ColumnMap | None:
        return next((col for col in candidates if match(col)), None)

    resolved = []
    for name in names:
        lower = name.lower()
        col = (find(lambda c: c.column_name == name)
               or find(lambda c: c.field_name == name)
               or find(lambda c: lower in {c.column_name.lower(), c.field_name.lower()}))
        if col is None:
            raise QueryError(f'recordmap: No field {name} in type {cls.__name__} (query: {query})')
        resolved.append(col)
    return resolved


def column_to_field_index(dbmap: 'DbMap', cls: type, names: list[str],
                          query: str) -> list[ColumnMap]:
    """Map result column names to record columns, cached per result shape."""
    table = dbmap.table_or_none(cls)
    key = (cls, id(table), table.generation if table else 0, tuple(names))
    return Cache.get_instance().get_or_build(
        FIELD_INDEX_CACHE, key, lambda: _resolve_columns(dbmap, cls, table, names, query))


def select(dbmap: 'DbMap', executor: 'SqlExecutor', cls: type, query: str,
           args: tuple, into: list | None = None) -> list:
    """Run a query and load each row into a new `cls` record.

    Rows are appended to `into` when given, else to a new list; the list is
    returned either way.
    """
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise ValidationError(f'recordmap: cannot select into non-record type {cls!r}')

    results = into if into is not None else []
    with executor.query(query, *args) as cursor:
        columns = column_to_field_index(dbmap, cls, cursor.column_names, query)
        rows = cursor.fetchall()

    for row in rows:
        record = _load_record(dbmap, cls, columns, row)
        run_hook('post_get', record, executor)
        results.append(record)
    return results


def select_one(dbmap: 'DbMap', executor: 'SqlExecutor', cls: type, query: str,
               args: tuple) -> Any | None:
    results = select(dbmap, executor, cls, query, args)
    if len(results) > 1:
        raise ValidationError(f'recordmap: select_one expected one row, got {len(results)}')
    return results[0] if results else None


def select_value(executor: 'SqlExecutor', query: str, args: tuple) -> tuple[bool, Any]:
    """First column of the first row, with whether any row was returned."""
    with executor.query(query, *args) as cursor:
        row = cursor.fetchone()
    if row is None:
        return False, None
    return True, row[0]
