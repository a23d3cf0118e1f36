"""Connection helpers shared by the connection and dialect modules.

Nothing here imports from the rest of the package.
"""
from typing import Any

DRIVER_MODULES = {
    'psycopg': 'postgresql',
    'sqlite3': 'sqlite',
    'pymysql': 'mysql',
    }


def get_dialect_name(obj: Any) -> str:
    """Lowercase dialect name for a wrapper, SQLAlchemy object or DBAPI connection.

    Wrappers and SQLAlchemy objects are asked directly; raw driver connections
    are recognized by the module their class lives in.
    """
    dialect = getattr(obj, 'dialect', None)
    if dialect is not None:
        return (dialect if isinstance(dialect, str) else str(dialect.name)).lower()

    for attr in ('engine', 'sa_connection'):
        inner = getattr(obj, attr, None)
        if inner is not None and inner is not obj:
            try:
                return get_dialect_name(inner)
            except AttributeError:
                continue

    module = type(obj).__module__
    for prefix, name in DRIVER_MODULES.items():
        if prefix in module:
            return name

    raise AttributeError(f'Cannot determine dialect for {type(obj)}')


def get_raw_connection(connection: Any) -> Any:
    """Unwrap a SQLAlchemy pool proxy to the driver connection it holds."""
    return getattr(connection, 'driver_connection', connection)
