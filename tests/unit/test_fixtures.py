"""Unit tests for the PostgreSQL test server fixture."""
import pytest
from tests.fixtures.postgres import start_postgres_container

testcontainers_postgres = pytest.importorskip('testcontainers.postgres')


def test_skips_when_container_cannot_be_created(mocker):
    """Test that a failing container constructor skips instead of erroring"""
    mocker.patch.object(testcontainers_postgres, 'PostgresContainer',
                        side_effect=RuntimeError('Error while fetching server API version'))
    with pytest.raises(pytest.skip.Exception, match='PostgreSQL container unavailable'):
        start_postgres_container()


def test_skips_when_container_cannot_start(mocker):
    container = mocker.Mock()
    container.start.side_effect = RuntimeError('docker daemon not running')
    mocker.patch.object(testcontainers_postgres, 'PostgresContainer', return_value=container)
    with pytest.raises(pytest.skip.Exception, match='docker daemon not running'):
        start_postgres_container()


def test_returns_started_container(mocker):
    container = mocker.Mock()
    factory = mocker.patch.object(testcontainers_postgres, 'PostgresContainer',
                                  return_value=container)
    assert start_postgres_container() is container
    container.start.assert_called_once()
    assert factory.call_args.kwargs['image'] == 'postgres:16'
