"""
Table and column metadata for record types.

Record types are dataclasses. Field metadata selects the column:

    @dataclass
    class Invoice:
        id: int = 0
        person_id: int = column('PersonId', default=0)
        memo: str = transient()
        audit: Audit = embed(Audit)
        version: int = 0

`column(name)` overrides the column name, `transient()` excludes the field
from all generated SQL and `embed(Sub)` flattens the columns of another
record into this one. A field of an embedding record with the same name as
an embedded field replaces it, keeping the embedded column's position.
"""
import dataclasses
import enum
import logging
import threading
import typing
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Self

from recordmap.bindings import PLAN_OPERATIONS, BindInstance, BindPlan
from recordmap.bindings import build_delete_plan, build_get_plan
from recordmap.bindings import build_insert_plan, build_update_plan
from recordmap.exceptions import MappingError
from recordmap.schema import create_table_sql
from recordmap.types import new_record, resolve_field_type

if TYPE_CHECKING:
    from recordmap.dialect import Dialect

logger = logging.getLogger(__name__)

FIELD_TAG = 'db'
EMBED_TAG = 'embed'
TRANSIENT_MARKER = '-'


def column(name: str | None = None, **kwargs: Any) -> Any:
    """Dataclass field stored in the column `name` (defaults to the field name).
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    if name:
        metadata[FIELD_TAG] = name
    return dataclasses.field(metadata=metadata, **kwargs)


def transient(**kwargs: Any) -> Any:
    """Dataclass field that is never written to or read from the database.
    """
    if 'default' not in kwargs and 'default_factory' not in kwargs:
        kwargs['default'] = None
    return column(TRANSIENT_MARKER, **kwargs)


def embed(record_type: type, **kwargs: Any) -> Any:
    """Dataclass field whose record columns are flattened into the parent.
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[EMBED_TAG] = True
    if 'default' not in kwargs and 'default_factory' not in kwargs:
        kwargs['default_factory'] = lambda: new_record(record_type)
    return dataclasses.field(metadata=metadata, **kwargs)


class FKAction(enum.Enum):
    NO_ACTION = 'no action'
    RESTRICT = 'restrict'
    CASCADE = 'cascade'
    SET_NULL = 'set null'


@dataclasses.dataclass(frozen=True)
class ForeignKey:
    """Reference from a column to `table(column)`, emitted in CREATE TABLE."""
    table: str
    column: str
    on_delete: FKAction | None = None
    on_update: FKAction | None = None


class ColumnMap:
    """Mapping between one record field and one table column.

    `path` is the attribute chain from the record to the field; it has more
    than one element when the field comes from an embedded record.
    """

    def __init__(self, column_name: str, field_name: str, path: tuple[str, ...],
                 py_type: type = object,
                 transient: bool = False,
                 embedded_types: tuple[type, ...] = ()) -> None:
        self.column_name = column_name
        self.field_name = field_name
        self.path = path
        self.py_type = py_type
        self.transient = transient
        self.embedded_types = embedded_types
        self.is_pk = False
        self.is_auto_incr = False
        self.unique = False
        self.is_not_null = False
        self.max_size = 0
        self.references: ForeignKey | None = None
        self._table: TableMap | None = None

    def __repr__(self) -> str:
        return (f'ColumnMap({self.column_name!r}, field={".".join(self.path)!r}, '
                f'type={self.py_type.__name__})')

    @property
    def dotted_path(self) -> str:
        return '.'.join(self.path)

    def get(self, record: Any) -> Any:
        """Read this column's field value from a record."""
        obj = record
        for attr in self.path:
            if obj is None:
                return None
            obj = getattr(obj, attr)
        return obj

    def set(self, record: Any, value: Any) -> None:
        """Write a value to this column's field, creating embedded records as needed."""
        obj = record
        for attr, sub_type in zip(self.path[:-1], self.embedded_types):
            child = getattr(obj, attr)
            if child is None:
                child = new_record(sub_type)
                setattr(obj, attr, child)
            obj = child
        setattr(obj, self.path[-1], value)

    def prefixed(self, attr: str, sub_type: type) -> 'ColumnMap':
        """Copy of this column reached through the embedded field `attr`."""
        return ColumnMap(self.column_name, self.field_name, (attr, *self.path),
                         self.py_type, self.transient,
                         (sub_type, *self.embedded_types))

    def _changed(self) -> Self:
        if self._table is not None:
            self._table.reset_sql()
        return self

    def rename(self, column_name: str) -> Self:
        """Store this field in a different column."""
        self.column_name = column_name
        return self._changed()

    def set_transient(self, transient: bool = True) -> Self:
        """Exclude (or re-include) this field in generated SQL."""
        self.transient = transient
        return self._changed()

    def set_unique(self, unique: bool = True) -> Self:
        """Add a unique constraint to this column at table creation."""
        self.unique = unique
        return self._changed()

    def set_not_null(self, not_null: bool = True) -> Self:
        """Add a not null constraint to this column at table creation."""
        self.is_not_null = not_null
        return self._changed()

    def set_max_size(self, size: int) -> Self:
        """Size used for string column types at table creation."""
        self.max_size = size
        return self._changed()

    def set_foreign_key(self, fk: ForeignKey | None) -> Self:
        """Add a foreign key reference to this column at table creation."""
        self.references = fk
        return self._changed()


def _find_field(columns: list[ColumnMap], field_name: str) -> int | None:
    for i, col in enumerate(columns):
        if not col.transient and col.field_name == field_name:
            return i
    return None


def read_record_columns(cls: type, version_field: str = 'version'
                        ) -> tuple[list[ColumnMap], ColumnMap | None]:
    """Build the ordered column list for a record type.

    Returns the columns and the version column (the first non-transient field
    named `version_field`, or None).

    Raises
        MappingError: cls is not a dataclass type
    """
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise MappingError(f'{cls!r} is not a dataclass record type')

    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as e:
        logger.debug(f'Could not resolve type hints for {cls.__name__}: {e}')
        hints = {}

    columns: list[ColumnMap] = []
    version: ColumnMap | None = None

    for f in dataclasses.fields(cls):
        py_type, _ = resolve_field_type(hints.get(f.name, f.type))

        if f.metadata.get(EMBED_TAG):
            sub_columns, sub_version = read_record_columns(py_type, version_field)
            for sub in sub_columns:
                col = sub.prefixed(f.name, py_type)
                # the embedding record's own field wins
                if not col.transient and _find_field(columns, col.field_name) is not None:
                    continue
                columns.append(col)
                if version is None and sub is sub_version:
                    version = col
            continue

        tag = f.metadata.get(FIELD_TAG, '')
        col = ColumnMap(
            column_name=tag if tag and tag != TRANSIENT_MARKER else f.name,
            field_name=f.name,
            path=(f.name,),
            py_type=py_type,
            transient=tag == TRANSIENT_MARKER,
        )

        existing = None if col.transient else _find_field(columns, f.name)
        if existing is not None:
            if version is columns[existing]:
                version = col
            columns[existing] = col
        else:
            columns.append(col)

        if version is None and not col.transient and f.name == version_field:
            version = col

    return columns, version


class TableMap:
    """Mapping between a record type and a database table.

    Holds the columns, keys, version column and the four cached binding
    plans. Any metadata change made through this class or its ColumnMaps
    resets the plans.
    """

    def __init__(self, record_type: type, table_name: str, schema_name: str,
                 dialect: 'Dialect', version_field: str = 'version') -> None:
        self.record_type = record_type
        self.table_name = table_name
        self.schema_name = schema_name or ''
        self.dialect = dialect
        self.columns, self.version = read_record_columns(record_type, version_field)
        for col in self.columns:
            col._table = self
        self.keys: list[ColumnMap] = []
        self.unique_together: list[list[str]] = []
        self.generation = 0
        self._lock = threading.Lock()
        self._plans = self._new_plans()

    def __repr__(self) -> str:
        return f'TableMap({self.record_type.__name__} -> {self.quoted_name()})'

    @staticmethod
    def _new_plans() -> dict[str, BindPlan]:
        return {op: BindPlan() for op in PLAN_OPERATIONS}

    def quoted_name(self) -> str:
        return self.dialect.quoted_table_for_query(self.schema_name, self.table_name)

    def reset_sql(self) -> None:
        """Discard cached statements so they are rebuilt from current metadata."""
        with self._lock:
            self._plans = self._new_plans()
            self.generation += 1
        logger.debug(f'Reset cached SQL for table {self.table_name}')

    def col_map_or_none(self, field: str) -> ColumnMap | None:
        for col in self.columns:
            if field in {col.field_name, col.column_name, col.dotted_path}:
                return col
        return None

    def col_map(self, field: str) -> ColumnMap:
        """Find a column by field name, column name or dotted embedded path.

        Raises
            MappingError: no such column
        """
        col = self.col_map_or_none(field)
        if col is None:
            raise MappingError(f'No column with field name {field} in table {self.table_name}')
        return col

    def set_keys(self, is_auto_incr: bool, *field_names: str) -> Self:
        """Make the named fields the primary key, in the given order.

        The order is the order key values are passed to `get`. An
        auto-increment key must be a single field.
        """
        if is_auto_incr and len(field_names) != 1:
            raise MappingError(
                f'recordmap: set_keys: is_auto_incr can only be used with one field '
                f'({len(field_names)} given)')
        keys = [self.col_map(name) for name in field_names]
        for col in self.keys:
            col.is_pk = False
            col.is_auto_incr = False
        for col in keys:
            col.is_pk = True
            col.is_auto_incr = is_auto_incr
        self.keys = keys
        self.reset_sql()
        return self

    def set_unique_together(self, *field_names: str) -> Self:
        """Add a composite unique constraint over two or more fields."""
        if len(field_names) < 2:
            raise MappingError('recordmap: set_unique_together: must provide at least two fields')
        names = [self.col_map(name).column_name for name in field_names]
        if sorted(names) not in (sorted(group) for group in self.unique_together):
            self.unique_together.append(names)
            self.reset_sql()
        return self

    def set_version_col(self, field: str) -> ColumnMap:
        """Use `field` for optimistic locking."""
        col = self.col_map(field)
        self.version = col
        self.reset_sql()
        return col

    def sql_for_create(self, if_not_exists: bool = False) -> str:
        """CREATE TABLE statement(s) for this table."""
        return ' '.join(create_table_sql(self, if_not_exists))

    def _plan(self, op: str, builder: Callable[['TableMap', BindPlan], None]) -> BindPlan:
        with self._lock:
            plan = self._plans[op]
        return plan.build_once(lambda p: builder(self, p))

    def bind_insert(self, record: Any, to_db: Callable[[Any], Any]) -> BindInstance:
        return self._plan('insert', build_insert_plan).create_bind_instance(record, to_db)

    def bind_update(self, record: Any, to_db: Callable[[Any], Any],
                    col_filter: Callable[[ColumnMap], bool] | None = None) -> BindInstance:
        if col_filter is None:
            plan = self._plan('update', build_update_plan)
        else:
            # filtered plans depend on the caller's filter and are not cached
            plan = BindPlan().build_once(lambda p: build_update_plan(self, p, col_filter))
        return plan.create_bind_instance(record, to_db)

    def bind_delete(self, record: Any, to_db: Callable[[Any], Any]) -> BindInstance:
        return self._plan('delete', build_delete_plan).create_bind_instance(record, to_db)

    def bind_get(self) -> BindPlan:
        return self._plan('get', build_get_plan)
