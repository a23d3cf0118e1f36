"""
Unit tests for connection utility functions.
"""
import pytest
from recordmap.utils import get_dialect_name, get_raw_connection


@pytest.mark.parametrize('db_type', ['postgresql', 'sqlite', 'mysql'])
def test_dialect_from_driver_type(create_simple_mock_connection, db_type):
    """Test detection from the driver connection's module"""
    assert get_dialect_name(create_simple_mock_connection(db_type)) == db_type


def test_unknown_driver(create_simple_mock_connection):
    with pytest.raises(AttributeError, match='Cannot determine dialect'):
        get_dialect_name(create_simple_mock_connection('unknown'))


def test_dialect_from_string_attribute(mocker):
    """Test detection from a wrapper exposing the dialect name"""
    conn = mocker.Mock(dialect='SQLite')
    assert get_dialect_name(conn) == 'sqlite'


def test_dialect_from_sqlalchemy_dialect(mocker):
    """Test detection from a SQLAlchemy engine or connection"""
    dialect = mocker.Mock()
    dialect.name = 'postgresql'
    assert get_dialect_name(mocker.Mock(dialect=dialect)) == 'postgresql'


def test_dialect_from_engine(mocker):
    """Test detection through an engine attribute"""
    engine = mocker.Mock(spec=['dialect'])
    engine.dialect.name = 'mysql'
    conn = mocker.Mock(spec=['engine'])
    conn.engine = engine
    assert get_dialect_name(conn) == 'mysql'


def test_raw_connection(mocker):
    """Test unwrapping a pool proxy to the driver connection"""
    raw = object()
    proxy = mocker.Mock(driver_connection=raw)
    assert get_raw_connection(proxy) is raw
    assert get_raw_connection(raw) is raw
