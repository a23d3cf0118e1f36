import pytest
import recordmap

import config
from tests.fixtures.records import register_tables


@pytest.fixture
def sqlite_conn():
    """Create an in-memory SQLite connection for testing"""
    cn = recordmap.connect(config.sqlite)
    yield cn
    cn.close()


@pytest.fixture
def sl_dbmap(sqlite_conn):
    """DbMap over an in-memory SQLite database with the shared tables created"""
    dbmap = register_tables(recordmap.DbMap(sqlite_conn))
    dbmap.create_tables()
    yield dbmap
