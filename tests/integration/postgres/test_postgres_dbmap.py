"""
PostgreSQL-specific tests: schemas, RETURNING keys, cancellation and
server-side errors.
"""
import logging
from dataclasses import dataclass

import psycopg
import pytest
import recordmap
from recordmap import DbMap
from tests.fixtures.records import Person

pytestmark = pytest.mark.postgres

SCHEMA = 'recordmap_test'


@dataclass
class Entry:
    id: int = 0
    title: str = ''
    version: int = 0


@pytest.fixture
def schema_dbmap(pg_conn):
    dbmap = DbMap(pg_conn)
    dbmap.add_table(Entry, 'entry', schema=SCHEMA).set_keys(True, 'id')
    dbmap.exec(f'drop schema if exists "{SCHEMA}" cascade')
    yield dbmap
    dbmap.exec(f'drop schema if exists "{SCHEMA}" cascade')


def test_schema_created_with_table(schema_dbmap):
    """Test that a table in a schema creates the schema first."""
    schema_dbmap.create_tables_if_not_exists()

    entry = Entry(title='first')
    schema_dbmap.insert(entry)
    assert schema_dbmap.get(Entry, entry.id).title == 'first'
    count = schema_dbmap.select_int(f'select count(*) from "{SCHEMA}"."entry"')
    assert count == 1


def test_truncate_schema_table(schema_dbmap):
    schema_dbmap.create_tables()
    schema_dbmap.insert(Entry(title='a'), Entry(title='b'))
    schema_dbmap.truncate_tables()
    assert schema_dbmap.select_int(f'select count(*) from "{SCHEMA}"."entry"') == 0


def test_insert_returns_key(pg_dbmap, caplog):
    """Test that the generated key comes back through RETURNING."""
    pg_dbmap.trace_on()
    person = Person(fname='Ann')
    with caplog.at_level(logging.INFO, logger='recordmap.trace'):
        pg_dbmap.insert(person)

    assert any('returning "id"' in r.getMessage() for r in caplog.records)
    assert person.id == pg_dbmap.select_int("select currval(pg_get_serial_sequence('person', 'id'))")


def test_cancel_after_interrupts_query(pg_dbmap):
    """Test that a long statement is cancelled with the driver's error."""
    with pytest.raises(psycopg.errors.QueryCanceled), pg_dbmap.cancel_after(0.5):
        pg_dbmap.exec('select pg_sleep(10)')
    assert pg_dbmap.select_int('select 1') == 1


def test_failed_statement_rolls_back_transaction(pg_dbmap):
    """Test that a failed statement inside a transaction can be rolled back."""
    person = Person(fname='Ann')
    with pytest.raises(recordmap.ProgrammingError), pg_dbmap.begin() as tx:
        tx.insert(person)
        tx.exec('select * from no_such_table')

    assert pg_dbmap.select_int('select count(*) from person') == 0


def test_savepoint_recovers_failed_statement(pg_dbmap):
    """Test that rolling back to a savepoint clears an aborted transaction."""
    with pg_dbmap.begin() as tx:
        tx.insert(Person(fname='kept'))
        tx.savepoint('before_error')
        with pytest.raises(recordmap.ProgrammingError):
            tx.exec('select * from no_such_table')
        tx.rollback_to_savepoint('before_error')

    assert pg_dbmap.select_int('select count(*) from person') == 1


def test_percent_placeholder_style(pg_dbmap):
    """Test that driver-style %s placeholders are accepted as written."""
    pg_dbmap.insert(Person(fname='Ann', lname='Lee'))
    assert pg_dbmap.select_str('select "LName" from person where "FName" = %s', 'Ann') == 'Lee'
