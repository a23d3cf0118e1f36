"""
MySQL dialect (PyMySQL).

Table creation needs a storage engine and character set; both must be given
when the dialect is constructed, e.g. `MySQLDialect('InnoDB', 'utf8mb4')`.
"""
import logging
from typing import TYPE_CHECKING, Any

from recordmap.dialect.base import Dialect, register_dialect
from recordmap.exceptions import DialectConfigError

if TYPE_CHECKING:
    from recordmap.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_dialect('mysql')
class MySQLDialect(Dialect):
    """MySQL-specific SQL and connection behavior.
    """

    type_map = {
        'bool': 'boolean',
        'int': 'bigint',
        'float': 'double',
        'decimal': 'decimal(20,6)',
        'bytes': 'mediumblob',
        'datetime': 'datetime(6)',
        'date': 'date',
        'time': 'time(6)',
        'json': 'text',
    }

    paramstyle = '%s'

    def __init__(self, engine: str = '', encoding: str = '', suffix: str = '') -> None:
        super().__init__(suffix)
        self.engine = engine
        self.encoding = encoding

    def __repr__(self) -> str:
        return f'MySQLDialect(engine={self.engine!r}, encoding={self.encoding!r})'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for MySQL."""
        return 'mysql'

    def auto_incr_str(self) -> str:
        return 'auto_increment'

    def create_table_suffix(self) -> str:
        """Engine and charset clause for CREATE TABLE.

        Raises
            DialectConfigError: engine or encoding was not configured
        """
        if not self.engine:
            raise DialectConfigError(
                'MySQLDialect.engine is not set; construct it with a storage '
                "engine, e.g. MySQLDialect('InnoDB', 'utf8mb4')")
        if not self.encoding:
            raise DialectConfigError(
                'MySQLDialect.encoding is not set; construct it with a character '
                "set, e.g. MySQLDialect('InnoDB', 'utf8mb4')")
        return f' engine={self.engine} charset={self.encoding}{self.suffix}'

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for MySQL."""
        url = (f'mysql+pymysql://{options.username}:{options.password}'
               f'@{options.hostname}:{options.port}/{options.database}')
        if options.timeout:
            url += f'?connect_timeout={options.timeout}'
        return url

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for MySQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']

    def enable_autocommit(self, raw_conn: Any) -> None:
        raw_conn.autocommit(True)

    def disable_autocommit(self, raw_conn: Any) -> None:
        raw_conn.autocommit(False)

    def begin(self, raw_conn: Any) -> None:
        self.disable_autocommit(raw_conn)
        raw_conn.begin()
