import os
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Self

from recordmap.dialect import get_available_dialects, get_dialect_class
from recordmap.dialect import is_supported_dialect

__all__ = ['DatabaseOptions']


def _scriptname() -> str | None:
    """Name of the running script without extension, if there is one."""
    argv0 = sys.argv[0] if sys.argv else ''
    return Path(argv0).stem or None


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `postgresql`, `sqlite`, `mysql`

    Required fields depend on the driver: `database` for sqlite; hostname,
    username, password, database and port for the server databases.
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or _scriptname() or 'python_console'
        if self.port:
            self.port = int(self.port)
        if self.timeout:
            self.timeout = int(self.timeout)
        dialect_cls = get_dialect_class(self.drivername)
        dialect_cls.validate_options(self)

    @classmethod
    def from_env(cls, prefix: str = 'RECORDMAP_', **overrides) -> Self:
        """Build options from environment variables named <prefix><FIELD>.

        Example: RECORDMAP_DRIVERNAME=sqlite RECORDMAP_DATABASE=:memory:
        """
        values = {}
        for f in fields(cls):
            env = os.getenv(f'{prefix}{f.name.upper()}')
            if env is not None:
                values[f.name] = env
        values.update(overrides)
        return cls(**values)
