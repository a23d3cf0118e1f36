"""
Dialect factory for database-specific SQL generation.
"""
from functools import lru_cache

from recordmap.dialect.base import _DIALECT_REGISTRY
from recordmap.dialect.base import Dialect as Dialect
from recordmap.dialect.base import register_dialect as register_dialect
from recordmap.dialect.mysql import MySQLDialect as MySQLDialect
from recordmap.dialect.postgres import PostgresDialect as PostgresDialect
from recordmap.dialect.sqlite import SqliteDialect as SqliteDialect
from recordmap.utils import get_dialect_name


def _validate_dialect(dialect: str) -> None:
    """Raise ValueError if dialect is not registered."""
    if dialect not in _DIALECT_REGISTRY:
        available = list(_DIALECT_REGISTRY.keys())
        raise ValueError(f'Unsupported dialect: {dialect}. Available: {available}')


@lru_cache(maxsize=8)
def _get_dialect(dialect: str) -> Dialect:
    """Get cached default-configured dialect instance."""
    _validate_dialect(dialect)
    return _DIALECT_REGISTRY[dialect]()


def get_dialect(dialect: str) -> Dialect:
    """Get the default dialect instance for a dialect name.
    """
    return _get_dialect(dialect)


def get_db_dialect(cn) -> Dialect:
    """Get the default dialect for a connection."""
    return _get_dialect(get_dialect_name(cn))


def get_available_dialects() -> list[str]:
    """Return list of registered dialect names."""
    return list(_DIALECT_REGISTRY.keys())


def is_supported_dialect(dialect: str) -> bool:
    """Check if a dialect is supported."""
    return dialect in _DIALECT_REGISTRY


def get_dialect_class(dialect: str) -> type[Dialect]:
    """Get the dialect class for a name without instantiating."""
    _validate_dialect(dialect)
    return _DIALECT_REGISTRY[dialect]
