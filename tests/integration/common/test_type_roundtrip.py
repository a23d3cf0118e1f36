"""
Database-agnostic tests for storing and loading field types.
"""
import datetime
import decimal

import pytest
from recordmap import DbMap
from tests.fixtures.records import Color, Money, MoneyConverter, Product, TypeSampler


@pytest.fixture
def sample():
    return TypeSampler(
        flag=True,
        ratio=0.25,
        amount=decimal.Decimal('12.5'),
        data=b'\x00\x01binary',
        day=datetime.date(2024, 2, 29),
        stamp=datetime.datetime(2024, 2, 29, 13, 45, 30),
        color=Color.BLUE,
        tags=['a', 'b'],
        attrs={'k': 1, 'nested': {'x': [1, 2]}},
        note='hello',
        )


def test_all_types_round_trip(dbmap, sample):
    """Test that each supported field type reads back unchanged."""
    dbmap.insert(sample)
    loaded = dbmap.get(TypeSampler, sample.id)

    assert loaded.flag is True
    assert loaded.ratio == 0.25
    assert loaded.amount == decimal.Decimal('12.5')
    assert isinstance(loaded.amount, decimal.Decimal)
    assert loaded.data == b'\x00\x01binary'
    assert loaded.day == datetime.date(2024, 2, 29)
    assert loaded.stamp == datetime.datetime(2024, 2, 29, 13, 45, 30)
    assert loaded.color is Color.BLUE
    assert loaded.tags == ['a', 'b']
    assert loaded.attrs == {'k': 1, 'nested': {'x': [1, 2]}}
    assert loaded.note == 'hello'


def test_nulls_round_trip(dbmap):
    """Test that nullable fields keep None."""
    record = TypeSampler()
    dbmap.insert(record)
    loaded = dbmap.get(TypeSampler, record.id)

    assert loaded.day is None
    assert loaded.stamp is None
    assert loaded.note is None
    assert loaded.flag is False
    assert loaded.color is Color.RED


def test_enum_stored_by_value(dbmap, sample):
    """Test that enums are stored as their value."""
    dbmap.insert(sample)
    assert dbmap.select_str('select color from type_sampler where id = ?', sample.id) == 'blue'


def test_custom_type_converter(dbmap):
    """Test that a TypeConverter handles its own field types in both directions."""
    money_map = DbMap(dbmap.cn, type_converter=MoneyConverter())
    money_map.add_table(Product, 'product').set_keys(True, 'id')
    money_map.drop_tables_if_exists()
    money_map.create_tables()
    try:
        product = Product(name='widget', price=Money(1250))
        money_map.insert(product)

        loaded = money_map.get(Product, product.id)
        assert loaded.price == Money(1250)
        assert loaded.name == 'widget'
        assert money_map.select(Product, 'select * from product')[0].price == Money(1250)
    finally:
        money_map.drop_tables_if_exists()
