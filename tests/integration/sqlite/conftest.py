"""
Fixtures for SQLite-specific integration tests.
"""
import pytest
import recordmap
from tests.fixtures.records import register_tables


@pytest.fixture
def sqlite_file_options(tmp_path):
    """Options for a file-based SQLite database, for persistence across connections."""
    return {'drivername': 'sqlite', 'database': str(tmp_path / 'recordmap_test.db')}


@pytest.fixture
def file_dbmap(sqlite_file_options):
    """DbMap over a fresh file-based SQLite database with the shared tables created"""
    with recordmap.DbMap.connect(sqlite_file_options) as dbmap:
        register_tables(dbmap)
        dbmap.create_tables()
        yield dbmap
