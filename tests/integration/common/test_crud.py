"""
Database-agnostic tests for record insert, get, update and delete.

These tests run against every selected backend to verify the generated
statements behave the same everywhere.
"""
import numpy as np
import pytest
import recordmap
from recordmap import NoKeysError, UnregisteredTypeError, ValidationError
from tests.fixtures.records import CompositeKey, Invoice, Names, Person
from tests.fixtures.records import ReadOnly, Versioned, WithEmbedded
from tests.fixtures.records import WithIgnored


class TestInsert:
    """Tests for inserting records."""

    def test_insert_sets_auto_increment_id_and_version(self, dbmap):
        """Test that insert writes the generated key and first version back."""
        person = Person(fname='Bob', lname='Smith')
        dbmap.insert(person)

        assert person.id > 0
        assert person.version == 1
        assert person.id == dbmap.select_int('select max(id) from person')

    def test_insert_many_assigns_distinct_ids(self, dbmap):
        """Test that every record in a batch gets its own key."""
        people = [Person(fname=f'P{i}') for i in range(3)]
        dbmap.insert(*people)

        ids = [p.id for p in people]
        assert len(set(ids)) == 3
        assert dbmap.select_int('select count(*) from person') == 3

    def test_batch_stops_at_first_failure(self, dbmap):
        """Test that records before a failing one stay inserted."""
        first = Person(fname='First')
        with pytest.raises(UnregisteredTypeError):
            dbmap.insert(first, Names('not', 'registered'))

        assert first.id > 0
        assert dbmap.get(Person, first.id) is not None

    def test_insert_without_keys(self, dbmap):
        """Test that tables without keys still accept inserts."""
        dbmap.insert(ReadOnly('total', 5))
        assert dbmap.select_int('select total from read_only where name = ?', 'total') == 5

    def test_module_level_functions(self, dbmap):
        """Test the executor-first module functions."""
        person = Person(fname='Module')
        recordmap.insert(dbmap, person)
        loaded = recordmap.get(dbmap, Person, person.id)
        assert loaded.fname == 'Module'

        loaded.lname = 'Level'
        assert recordmap.update(dbmap, loaded) == 1
        assert recordmap.select(dbmap, Person, 'select * from person')[0].lname == 'Level'
        assert recordmap.delete(dbmap, loaded) == 1


class TestGet:
    """Tests for loading records by key."""

    def test_get_round_trip(self, dbmap):
        """Test that a record reads back equal to what was inserted."""
        person = Person(created=100, updated=200, fname='Ann', lname='Lee')
        dbmap.insert(person)

        loaded = dbmap.get(Person, person.id)
        assert loaded == person

    def test_get_missing_returns_none(self, dbmap):
        """Test that an unknown key is not an error."""
        assert dbmap.get(Person, 999999) is None

    def test_get_wrong_key_count(self, dbmap):
        """Test that the number of key values must match the key columns."""
        with pytest.raises(ValidationError):
            dbmap.get(Person, 1, 2)

    def test_get_unregistered_type(self, dbmap):
        """Test that an unmapped type raises a TypeError subclass."""
        with pytest.raises(TypeError):
            dbmap.get(Names, 1)

    def test_get_without_keys(self, dbmap):
        """Test that keyed operations on a keyless table are rejected."""
        with pytest.raises(NoKeysError):
            dbmap.get(ReadOnly, 'total')

    def test_composite_key_order(self, dbmap):
        """Test that key values are matched in set_keys order."""
        dbmap.insert(CompositeKey('a1', 'b1', 'first'), CompositeKey('b1', 'a1', 'second'))

        assert dbmap.get(CompositeKey, 'a1', 'b1').value == 'first'
        assert dbmap.get(CompositeKey, 'b1', 'a1').value == 'second'
        assert dbmap.get(CompositeKey, 'a1', 'a1') is None

    def test_numpy_key_value(self, dbmap):
        """Test that numpy scalars are accepted as arguments."""
        person = Person(fname='Numpy')
        dbmap.insert(person)
        assert dbmap.get(Person, np.int64(person.id)).fname == 'Numpy'

    def test_transient_field_not_stored(self, dbmap):
        """Test that transient fields come back as their default."""
        record = WithIgnored(external=42, created=7)
        dbmap.insert(record)

        loaded = dbmap.get(WithIgnored, record.id)
        assert loaded.created == 7
        assert loaded.external == 0

    def test_embedded_round_trip(self, dbmap):
        """Test that embedded record fields are stored and rebuilt."""
        record = WithEmbedded(names=Names('Ann', 'Lee'))
        dbmap.insert(record)

        loaded = dbmap.get(WithEmbedded, record.id)
        assert loaded.names == Names('Ann', 'Lee')
        assert loaded.version == 1

    def test_bool_column(self, dbmap):
        """Test that booleans read back as bool."""
        invoice = Invoice(memo='paid', is_paid=True)
        dbmap.insert(invoice)

        loaded = dbmap.get(Invoice, invoice.id)
        assert loaded.is_paid is True


class TestUpdate:
    """Tests for updating records."""

    def test_update_increments_version(self, dbmap):
        """Test that a successful update bumps the version by one."""
        person = Person(fname='Bob')
        dbmap.insert(person)

        person.lname = 'Edwards'
        assert dbmap.update(person) == 1
        assert person.version == 2
        assert dbmap.get(Person, person.id) == person

    def test_update_many_returns_total(self, dbmap):
        """Test that a batch update reports the summed row count."""
        people = [Person(fname='A'), Person(fname='B')]
        dbmap.insert(*people)
        for person in people:
            person.lname = 'Same'

        assert dbmap.update(*people) == 2

    def test_update_without_version_column(self, dbmap):
        """Test that a row removed elsewhere yields zero rows, not an error."""
        invoice = Invoice(memo='gone')
        dbmap.insert(invoice)
        dbmap.exec('delete from invoice where id = ?', invoice.id)

        invoice.memo = 'still gone'
        assert dbmap.update(invoice) == 0

    def test_update_without_keys(self, dbmap):
        """Test that keyless tables cannot be updated."""
        with pytest.raises(NoKeysError):
            dbmap.update(ReadOnly('x', 1))

    def test_custom_version_column(self, dbmap):
        """Test that a renamed version field is maintained."""
        record = Versioned(name='v')
        dbmap.insert(record)
        assert record.rev == 1

        record.name = 'w'
        dbmap.update(record)
        assert record.rev == 2
        assert dbmap.select_int('select "Rev" from versioned where id = ?', record.id) == 2

    @pytest.mark.parametrize('columns', [['fname'], ['FName']])
    def test_update_columns(self, dbmap, columns):
        """Test that only the chosen columns (and the version) are written."""
        person = Person(fname='Old', lname='Keep')
        dbmap.insert(person)

        person.fname = 'New'
        person.lname = 'Ignored'
        assert dbmap.update_columns(columns, person) == 1

        loaded = dbmap.get(Person, person.id)
        assert loaded.fname == 'New'
        assert loaded.lname == 'Keep'
        assert loaded.version == 2

    def test_update_columns_predicate(self, dbmap):
        """Test that a ColumnMap predicate selects columns."""
        person = Person(fname='Old', lname='Old')
        dbmap.insert(person)

        person.fname = person.lname = 'New'
        dbmap.update_columns(lambda col: col.column_name == 'LName', person)

        loaded = dbmap.get(Person, person.id)
        assert (loaded.fname, loaded.lname) == ('Old', 'New')


class TestDelete:
    """Tests for deleting records."""

    def test_delete(self, dbmap):
        """Test that a deleted record can no longer be loaded."""
        person = Person(fname='Doomed')
        dbmap.insert(person)

        assert dbmap.delete(person) == 1
        assert dbmap.get(Person, person.id) is None

    def test_delete_composite_key(self, dbmap):
        """Test that delete matches every key column."""
        dbmap.insert(CompositeKey('a', 'b'), CompositeKey('a', 'c'))

        assert dbmap.delete(CompositeKey('a', 'b')) == 1
        assert dbmap.select_int('select count(*) from composite_key') == 1

    def test_exec_result(self, dbmap):
        """Test that exec reports the affected row count."""
        dbmap.insert(Person(fname='x'), Person(fname='x'))
        result = dbmap.exec('update person set "LName" = ? where "FName" = ?', 'y', 'x')
        assert result.rowcount == 2
