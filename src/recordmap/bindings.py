"""
Statement binding plans.

A plan is the SQL text for one operation on one table plus the ordered list
of argument sources used to fill its bind variables. Plans are built lazily
on first use, exactly once, and shared by every later call until the table's
metadata changes.
"""
import enum
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from recordmap.exceptions import MappingError

if TYPE_CHECKING:
    from recordmap.mapping import ColumnMap, TableMap

logger = logging.getLogger(__name__)

PLAN_OPERATIONS = ('insert', 'update', 'delete', 'get')


class ArgSource(enum.Enum):
    FIELD = 'field'
    # existing version + 1, written back to a record whose version is 0
    NEXT_VERSION = 'next_version'
    # version value the record held when the statement was bound
    EXISTING_VERSION = 'existing_version'


@dataclass(frozen=True, slots=True)
class ArgBinding:
    source: ArgSource
    column: 'ColumnMap'


@dataclass(slots=True)
class BindInstance:
    """Arguments bound from one record for one plan execution."""
    query: str
    args: list
    keys: list
    existing_version: int = 0
    version_column: 'ColumnMap | None' = None
    auto_incr_column: 'ColumnMap | None' = None


class BindPlan:
    """SQL text and argument sources for one operation on one table.
    """

    def __init__(self) -> None:
        self._clear()
        self._built = False
        self._lock = threading.Lock()

    def _clear(self) -> None:
        self.query = ''
        self.args: list[ArgBinding] = []
        self.key_columns: list[ColumnMap] = []
        self.columns: list[ColumnMap] = []
        self.version_column: ColumnMap | None = None
        self.auto_incr_column: ColumnMap | None = None

    @property
    def built(self) -> bool:
        return self._built

    def build_once(self, builder: Callable[['BindPlan'], None]) -> Self:
        """Run builder on this plan unless a build already completed.

        Concurrent callers block until the single build finishes.
        """
        if self._built:
            return self
        with self._lock:
            if not self._built:
                self._clear()
                builder(self)
                self._built = True
                logger.debug(f'Built plan: {self.query}')
        return self

    def create_bind_instance(self, record: Any, to_db: Callable[[Any], Any]) -> BindInstance:
        """Extract and convert this plan's arguments from a record.
        """
        existing_version = 0
        if self.version_column is not None:
            existing_version = int(self.version_column.get(record) or 0)

        args = []
        for binding in self.args:
            if binding.source is ArgSource.NEXT_VERSION:
                new_version = existing_version + 1
                args.append(to_db(new_version))
                if existing_version == 0:
                    binding.column.set(record, new_version)
            elif binding.source is ArgSource.EXISTING_VERSION:
                args.append(to_db(existing_version))
            else:
                args.append(to_db(binding.column.get(record)))

        keys = [to_db(col.get(record)) for col in self.key_columns]

        return BindInstance(self.query, args, keys, existing_version,
                            self.version_column, self.auto_incr_column)


def _key_predicates(table: 'TableMap', plan: BindPlan, start: int) -> list[str]:
    """WHERE terms for the key columns and, when configured, the version column."""
    dialect = table.dialect
    where = []
    i = start
    for col in table.keys:
        where.append(f'{dialect.quote_field(col.column_name)}={dialect.bind_var(i)}')
        plan.args.append(ArgBinding(ArgSource.FIELD, col))
        plan.key_columns.append(col)
        i += 1
    if table.version is not None:
        where.append(f'{dialect.quote_field(table.version.column_name)}={dialect.bind_var(i)}')
        plan.args.append(ArgBinding(ArgSource.EXISTING_VERSION, table.version))
        plan.version_column = table.version
    return where


def build_insert_plan(table: 'TableMap', plan: BindPlan) -> None:
    dialect = table.dialect
    names, values = [], []
    i = 0
    for col in table.columns:
        if col.transient:
            continue
        if col.is_auto_incr:
            plan.auto_incr_column = col
            bind_value = dialect.auto_incr_bind_value()
            if bind_value:
                names.append(dialect.quote_field(col.column_name))
                values.append(bind_value)
            continue
        names.append(dialect.quote_field(col.column_name))
        values.append(dialect.bind_var(i))
        i += 1
        if col is table.version:
            plan.args.append(ArgBinding(ArgSource.NEXT_VERSION, col))
            plan.version_column = col
        else:
            plan.args.append(ArgBinding(ArgSource.FIELD, col))

    sql = f'insert into {table.quoted_name()} ({",".join(names)}) values ({",".join(values)})'
    if plan.auto_incr_column is not None:
        sql += dialect.auto_incr_insert_suffix(plan.auto_incr_column.column_name)
    plan.query = sql + dialect.query_suffix()


def build_update_plan(table: 'TableMap', plan: BindPlan,
                      col_filter: Callable[['ColumnMap'], bool] | None = None) -> None:
    """UPDATE of every non-key column, or those accepted by col_filter.

    The version column is always updated when configured.
    """
    dialect = table.dialect
    assignments = []
    i = 0
    for col in table.columns:
        if col.transient or col.is_pk or col.is_auto_incr:
            continue
        if col_filter is not None and col is not table.version and not col_filter(col):
            continue
        assignments.append(f'{dialect.quote_field(col.column_name)}={dialect.bind_var(i)}')
        i += 1
        if col is table.version:
            plan.args.append(ArgBinding(ArgSource.NEXT_VERSION, col))
        else:
            plan.args.append(ArgBinding(ArgSource.FIELD, col))

    if not assignments:
        raise MappingError(f'No updatable columns for table {table.table_name}')

    where = _key_predicates(table, plan, i)
    plan.query = (f'update {table.quoted_name()} set {", ".join(assignments)}'
                  f' where {" and ".join(where)}{dialect.query_suffix()}')


def build_delete_plan(table: 'TableMap', plan: BindPlan) -> None:
    dialect = table.dialect
    where = _key_predicates(table, plan, 0)
    plan.query = f'delete from {table.quoted_name()} where {" and ".join(where)}{dialect.query_suffix()}'


def build_get_plan(table: 'TableMap', plan: BindPlan) -> None:
    """SELECT of all non-transient columns by key; key values come from the caller."""
    dialect = table.dialect
    plan.columns = [col for col in table.columns if not col.transient]
    where = []
    for i, col in enumerate(table.keys):
        where.append(f'{dialect.quote_field(col.column_name)}={dialect.bind_var(i)}')
        plan.key_columns.append(col)
    names = ','.join(dialect.quote_field(col.column_name) for col in plan.columns)
    plan.query = (f'select {names} from {table.quoted_name()}'
                  f' where {" and ".join(where)}{dialect.query_suffix()}')
