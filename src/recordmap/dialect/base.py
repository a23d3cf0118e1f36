"""
Base dialect interface for SQL generation and connection handling.

A dialect supplies everything that differs between databases: SQL type
names for field types, identifier quoting, bind-variable syntax,
auto-increment handling, create-table and truncate syntax, and the
driver-level connection settings. Mapper code works against this interface
only, so adding a database means registering one more subclass.
"""
import datetime
import decimal
import enum
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from recordmap.sql import quote_identifier, standardize_placeholders
from recordmap.types import JSON_TYPES
from recordmap.utils import get_raw_connection

if TYPE_CHECKING:
    from recordmap.executor import SqlExecutor
    from recordmap.options import DatabaseOptions

logger = logging.getLogger(__name__)

# Registry of dialect name -> dialect class
# Defined here to avoid circular imports (concrete dialects import from base)
_DIALECT_REGISTRY: dict[str, type['Dialect']] = {}


def register_dialect(name: str):
    """Decorator to register a dialect class under a SQLAlchemy dialect name.

    Usage:
        @register_dialect('postgresql')
        class PostgresDialect(Dialect):
            ...
    """
    def decorator(cls: type['Dialect']) -> type['Dialect']:
        _DIALECT_REGISTRY[name] = cls
        return cls
    return decorator


def type_key(py_type: type) -> str:
    """Classify a field type for the dialect type maps.

    Returns one of bool, int, float, decimal, bytes, datetime, date, time,
    json or str. Enums classify by their value type; anything unknown is str.
    """
    if issubclass(py_type, enum.Enum):
        return 'int' if issubclass(py_type, int) else 'str'
    if issubclass(py_type, bool):
        return 'bool'
    if issubclass(py_type, int):
        return 'int'
    if issubclass(py_type, float):
        return 'float'
    if issubclass(py_type, decimal.Decimal):
        return 'decimal'
    if issubclass(py_type, bytes | bytearray | memoryview):
        return 'bytes'
    if issubclass(py_type, datetime.datetime):
        return 'datetime'
    if issubclass(py_type, datetime.date):
        return 'date'
    if issubclass(py_type, datetime.time):
        return 'time'
    if issubclass(py_type, JSON_TYPES):
        return 'json'
    return 'str'


class Dialect(ABC):
    """Base class for database-specific SQL and connection behavior.
    """

    # SQL type name per type_key(); str is handled by varchar_type
    type_map: dict[str, str] = {}

    # placeholder marker the DBAPI driver expects
    paramstyle = '?'

    def __init__(self, suffix: str = '') -> None:
        self.suffix = suffix

    def __repr__(self) -> str:
        return f'{type(self).__name__}()'

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the SQLAlchemy dialect name."""

    # DDL

    def to_sql_type(self, py_type: type, max_size: int = 0, is_auto_incr: bool = False) -> str:
        """Map a field type to a SQL column type.

        Args:
            py_type: Semantic field type
            max_size: Advisory size for string columns, 0 for the default
            is_auto_incr: Whether the column is the auto-increment key

        Returns
            SQL column type
        """
        key = type_key(py_type)
        if key == 'str' or key not in self.type_map:
            return self.varchar_type(max_size)
        return self.type_map[key]

    def varchar_type(self, max_size: int) -> str:
        return f'varchar({max_size if max_size > 0 else 255})'

    @abstractmethod
    def auto_incr_str(self) -> str:
        """Keyword appended to an auto-increment column definition."""

    def auto_incr_bind_value(self) -> str:
        """Literal used for the auto-increment column in an INSERT values list.

        An empty string omits the column from the INSERT entirely.
        """
        return 'null'

    def auto_incr_insert_suffix(self, column: str) -> str:
        """Clause appended to INSERT to return the generated key inline."""
        return ''

    def create_table_suffix(self) -> str:
        """Text appended after the closing parenthesis of CREATE TABLE."""
        return self.suffix

    def truncate_clause(self) -> str:
        return 'truncate'

    def query_suffix(self) -> str:
        return ';'

    def create_schema_sql(self, schema: str, if_not_exists: bool = False) -> str:
        """Statement creating a schema, or '' when the dialect has none."""
        clause = 'create schema if not exists' if if_not_exists else 'create schema'
        return f'{clause} {self.quote_field(schema)}{self.query_suffix()}'

    def init_statements(self) -> list[str]:
        """Statements run once per connection before any other statement."""
        return []

    # DML

    def bind_var(self, i: int) -> str:
        """Bind-variable token for the i-th (zero-based) argument."""
        return '?'

    def quote_field(self, name: str) -> str:
        return quote_identifier(name, self.dialect_name)

    def quoted_table_for_query(self, schema: str | None, table: str) -> str:
        """Table name qualified with its schema, quoted for use in statements."""
        if schema and schema.strip():
            return f'{self.quote_field(schema)}.{self.quote_field(table)}'
        return self.quote_field(table)

    def insert_auto_incr(self, executor: 'SqlExecutor', sql: str, args: list) -> int:
        """Run an INSERT and return the key generated by the database.
        """
        result = executor.exec(sql, *args)
        return result.lastrowid

    def standardize_sql(self, sql: str, args: tuple | list = ()) -> tuple[str, tuple]:
        """Rewrite placeholders to this driver's paramstyle.
        """
        return standardize_placeholders(sql, args, self.paramstyle)

    # connection handling

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL."""

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs."""
        return {}

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Args:
            options: DatabaseOptions to validate

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def register_type_adapters(self, raw_conn: Any) -> None:
        """Register driver-level type adapters. Nothing by default."""

    def configure_connection(self, conn: Any) -> None:
        """Prepare a freshly opened connection: adapters, then autocommit.
        """
        raw_conn = get_raw_connection(conn)
        self.register_type_adapters(raw_conn)
        self.enable_autocommit(raw_conn)

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode."""

    @abstractmethod
    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode."""

    def begin(self, raw_conn: Any) -> None:
        """Open a transaction on the raw connection."""
        self.disable_autocommit(raw_conn)

    def end(self, raw_conn: Any) -> None:
        """Return the raw connection to auto-commit after commit or rollback."""
        self.enable_autocommit(raw_conn)

    @property
    def supports_cancel(self) -> bool:
        return False

    def cancel(self, raw_conn: Any) -> None:
        """Interrupt the statement currently running on raw_conn."""
        raise NotImplementedError(f'{self.dialect_name} does not support cancelling statements')
