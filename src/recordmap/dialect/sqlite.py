"""
SQLite dialect.

- `?` bind variables and double-quoted identifiers
- integer primary keys with `autoincrement`, ids read from `lastrowid`
- no schemas; `delete from` in place of truncate
- foreign keys enabled once per connection
- ISO 8601 text storage for dates, datetimes and times
"""
import datetime
import decimal
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

from recordmap.dialect.base import Dialect, register_dialect
from recordmap.types import adapt_date, adapt_datetime, adapt_decimal
from recordmap.types import convert_date, convert_datetime

if TYPE_CHECKING:
    from recordmap.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_dialect('sqlite')
class SqliteDialect(Dialect):
    """SQLite-specific SQL and connection behavior.
    """

    type_map = {
        'bool': 'integer',
        'int': 'integer',
        'float': 'real',
        'decimal': 'real',
        'bytes': 'blob',
        'datetime': 'datetime',
        'date': 'date',
        'time': 'varchar(16)',
        'json': 'text',
    }

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def auto_incr_str(self) -> str:
        return 'autoincrement'

    def truncate_clause(self) -> str:
        return 'delete from'

    def create_schema_sql(self, schema: str, if_not_exists: bool = False) -> str:
        # attached databases stand in for schemas
        return ''

    def init_statements(self) -> list[str]:
        return ['pragma foreign_keys = on']

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for SQLite."""
        return f'sqlite:///{options.database}'

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        return {
            'connect_args': {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
            }
        }

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def register_type_adapters(self, raw_conn: Any) -> None:
        """Register adapters (Python -> SQLite) and converters (SQLite -> Python).
        """
        sqlite3.register_adapter(datetime.date, adapt_date)
        sqlite3.register_adapter(datetime.datetime, adapt_datetime)
        sqlite3.register_adapter(datetime.time, datetime.time.isoformat)
        sqlite3.register_adapter(decimal.Decimal, adapt_decimal)

        sqlite3.register_converter('date', convert_date)
        sqlite3.register_converter('datetime', convert_datetime)
        sqlite3.register_converter('timestamp', convert_datetime)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = None

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = 'DEFERRED'

    def begin(self, raw_conn: Any) -> None:
        """Start an explicit transaction so DDL and savepoints are covered too.
        """
        raw_conn.execute('begin')

    def end(self, raw_conn: Any) -> None:
        """Nothing to restore: transactions run with isolation_level None."""

    @property
    def supports_cancel(self) -> bool:
        return True

    def cancel(self, raw_conn: Any) -> None:
        logger.debug('Interrupting running SQLite statement')
        raw_conn.interrupt()
