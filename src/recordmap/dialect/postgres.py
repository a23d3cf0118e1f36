"""
PostgreSQL dialect (psycopg 3).

- `$n` bind variables, rewritten to `%s` for the driver
- `bigserial` keys whose value comes back through `returning`
- `truncate` and `create schema` supported natively
- running statements cancelled through the libpq cancel request
"""
import logging
from typing import TYPE_CHECKING, Any

from recordmap.dialect.base import Dialect, register_dialect

if TYPE_CHECKING:
    from recordmap.executor import SqlExecutor
    from recordmap.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_dialect('postgresql')
class PostgresDialect(Dialect):
    """PostgreSQL-specific SQL and connection behavior.
    """

    type_map = {
        'bool': 'boolean',
        'int': 'bigint',
        'float': 'double precision',
        'decimal': 'numeric',
        'bytes': 'bytea',
        'datetime': 'timestamp',
        'date': 'date',
        'time': 'time',
        'json': 'text',
    }

    paramstyle = '%s'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def to_sql_type(self, py_type: type, max_size: int = 0, is_auto_incr: bool = False) -> str:
        sql_type = super().to_sql_type(py_type, max_size, is_auto_incr)
        if is_auto_incr and sql_type == 'bigint':
            return 'bigserial'
        return sql_type

    def varchar_type(self, max_size: int) -> str:
        return f'varchar({max_size})' if max_size > 0 else 'text'

    def auto_incr_str(self) -> str:
        return ''

    def auto_incr_bind_value(self) -> str:
        return 'default'

    def auto_incr_insert_suffix(self, column: str) -> str:
        return f' returning {self.quote_field(column)}'

    def bind_var(self, i: int) -> str:
        return f'${i + 1}'

    def insert_auto_incr(self, executor: 'SqlExecutor', sql: str, args: list) -> int:
        """Run the INSERT ... RETURNING statement and fetch the new key.
        """
        with executor.query(sql, *args) as cursor:
            row = cursor.fetchone()
        return row[0]

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        url = (f'postgresql+psycopg://{options.username}:{options.password}'
               f'@{options.hostname}:{options.port}/{options.database}')
        params = [f'application_name={options.appname}']
        if options.timeout:
            params.append(f'connect_timeout={options.timeout}')
        return url + '?' + '&'.join(params)

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = True

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = False

    @property
    def supports_cancel(self) -> bool:
        return True

    def cancel(self, raw_conn: Any) -> None:
        logger.debug('Sending cancel request for running PostgreSQL statement')
        cancel = getattr(raw_conn, 'cancel_safe', None) or raw_conn.cancel
        cancel()
