"""
Fixtures for database-agnostic integration tests.

The `dbmap` fixture is parametrized over the dialects named in
RECORDMAP_TEST_DIALECTS (sqlite and postgresql by default), so every test
using it runs once per backend against the same mapped tables.
"""
import pytest

import config

_FIXTURES = {'sqlite': 'sl_dbmap', 'postgresql': 'pg_dbmap'}
_IDS = {'sqlite': 'sl', 'postgresql': 'pg'}

DIALECTS = [name for name in config.selected_dialects() if name in _FIXTURES]


@pytest.fixture(params=DIALECTS, ids=[_IDS[name] for name in DIALECTS])
def dbmap(request):
    """Parametrized fixture providing a DbMap for each selected backend.
    """
    return request.getfixturevalue(_FIXTURES[request.param])


@pytest.fixture
def dialect(dbmap):
    """Get the dialect name of the current backend."""
    return dbmap.dialect.dialect_name
