"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function for opening a database connection
2. The `ConnectionWrapper` class that tracks calls and hands out cursors
3. A lock-guarded registry of engines keyed by connection options

SQLAlchemy is used for URL handling, driver loading and connection
lifecycle only. Every engine uses `NullPool`: a closed wrapper closes its
DBAPI connection. Statements run on the raw DBAPI connection in
auto-commit mode unless a transaction is open.
"""
import atexit
import dataclasses
import logging
import threading
from collections.abc import Callable
from typing import Any, Self

import sqlalchemy as sa
from recordmap.cursor import Cursor
from recordmap.dialect import Dialect, get_db_dialect, get_dialect
from recordmap.exceptions import ConnectionFailure
from recordmap.options import DatabaseOptions
from recordmap.utils import get_dialect_name, get_raw_connection
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.pool import NullPool

__all__ = [
    'ConnectionWrapper',
    'connect',
    'configure_connection',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Engine for `options`, shared by every connection opened with equal options.
    """
    key = repr(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        dialect = get_dialect(options.drivername)
        url = dialect.build_connection_url(options)

        engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
        engine_kwargs.update(dialect.get_engine_kwargs(options))
        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose and forget every registered engine.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """A SQLAlchemy connection plus per-connection statement statistics.

    Hands out dialect-aware cursors over the DBAPI connection and supports
    the context manager protocol for closing.
    """

    def __init__(self, sa_connection: sa.engine.Connection | None = None,
                 options: DatabaseOptions | None = None) -> None:
        """Wrap an open SQLAlchemy connection (or nothing, for a detached wrapper).
        """
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine if sa_connection else None
        self.options = options
        self.dbapi_connection = sa_connection.connection if sa_connection else None
        self._dialect = get_dialect_name(sa_connection) if sa_connection else None
        self.calls = 0
        self.time = 0
        self.in_transaction = False

    def __enter__(self) -> Self:
        """Close on exit from a with block.
        """
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql', 'sqlite' or 'mysql')."""
        return self._dialect

    @property
    def driver_connection(self) -> Any:
        """The driver's own connection object (sqlite3, psycopg or pymysql)."""
        return get_raw_connection(self.dbapi_connection)

    @property
    def closed(self) -> bool:
        return self.sa_connection is None or self.sa_connection.closed

    def cursor(self, dialect: Dialect | None = None) -> Cursor:
        """New `Cursor` over the DBAPI connection, rewriting for `dialect`.
        """
        if self.closed:
            raise ConnectionFailure('recordmap: connection is closed')
        dialect = dialect or get_db_dialect(self)
        return Cursor(self.dbapi_connection.cursor(), self, dialect)

    def addcall(self, elapsed: float) -> None:
        """Record one executed statement taking `elapsed` seconds.
        """
        self.time += elapsed
        self.calls += 1

    def commit(self) -> None:
        self.dbapi_connection.commit()

    def rollback(self) -> None:
        self.dbapi_connection.rollback()

    def close(self) -> None:
        """Close the SQLAlchemy connection, releasing the DBAPI connection.
        """
        if self.closed:
            return
        if self.in_transaction:
            logger.warning('Closing a connection with an open transaction, rolling back')
            self.rollback()
            self.in_transaction = False
        self.sa_connection.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1, self.calls):.3f}s per query)')


def configure_connection(sa_connection: sa.engine.Connection) -> None:
    """Apply per-connection driver settings for the connection's dialect.
    """
    dialect = get_db_dialect(sa_connection)
    dialect.configure_connection(sa_connection.connection)


def connect(options: DatabaseOptions | dict[str, Any] | None = None,
            **kw: Any) -> ConnectionWrapper:
    """Open a connection described by `options` and return it wrapped.

    Args:
        options: Can be:
                - DatabaseOptions object
                - Dictionary of options
                - None, with options given as keyword arguments
        **kw: Keyword arguments overriding options

    Returns
        An open ConnectionWrapper
    """
    if options is None:
        options = DatabaseOptions(**kw)
    elif isinstance(options, dict):
        options = DatabaseOptions(**(options | kw))
    elif kw:
        options = dataclasses.replace(options, **kw)

    engine = get_engine_for_options(options)

    try:
        sa_connection = engine.connect()
    except DBAPIError as exc:
        raise ConnectionFailure(f'recordmap: cannot connect to {options.drivername} '
                                f'database {options.database}: {exc.orig}') from exc
    configure_connection(sa_connection)

    return ConnectionWrapper(sa_connection, options)
