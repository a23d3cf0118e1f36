"""
Type handling between record fields and database values.

This module provides:
- ParamConverter: convert bound Python values to driver-compatible values
- TypeConverter: user hook for custom field types (to_db / from_db)
- coerce_value: convert a fetched value to a field's declared type
- resolve_field_type: reduce a type hint to the semantic type of a column
- new_record: build a record instance without running its __init__
- SQLite converters for date and datetime columns
"""
import dataclasses
import datetime
import decimal
import enum
import json
import logging
import types
import typing
from collections.abc import Callable
from typing import Any

import dateutil.parser
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

NUMPY_FLOAT_TYPES = (np.floating,)
NUMPY_INT_TYPES = (np.integer, np.unsignedinteger)

JSON_TYPES = (dict, list)


class ParamConverter:
    """Parameter conversion for statement arguments.

    Handles NumPy, Pandas, Enum and JSON-able container values.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a database-compatible format."""
        if value is None:
            return None

        if value is pd.NaT or value is pd.NA:
            return None

        if isinstance(value, np.datetime64):
            if np.isnat(value):
                return None
            return pd.Timestamp(value).to_pydatetime()

        if isinstance(value, (*NUMPY_FLOAT_TYPES, *NUMPY_INT_TYPES, np.bool_)):
            return value.item()

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        if isinstance(value, enum.Enum):
            return value.value

        if isinstance(value, JSON_TYPES):
            return json.dumps(value)

        return value

    @staticmethod
    def convert_params(params: Any) -> Any:
        """Convert a collection of parameters for database operations."""
        if params is None:
            return None

        if isinstance(params, list | tuple):
            return type(params)(ParamConverter.convert_value(v) for v in params)

        return ParamConverter.convert_value(params)


class TypeConverter:
    """Custom conversion between field values and database values.

    Subclass and pass an instance to `DbMap(type_converter=...)`.

    `to_db` is applied to every bound argument of generated statements.
    `from_db` is asked once per column with the field's declared type and
    returns a callable that turns the fetched value into the field value, or
    None to fall back to the built-in coercion.
    """

    def to_db(self, value: Any) -> Any:
        return value

    def from_db(self, field_type: type) -> Callable[[Any], Any] | None:
        return None


def resolve_field_type(hint: Any) -> tuple[type, bool]:
    """Reduce a type hint to (semantic type, nullable).

    `Optional[X]`, `X | None` and `Annotated[X, ...]` unwrap to X and generic
    aliases (`list[int]`, `dict[str, Any]`) to their origin.
    """
    nullable = False
    while True:
        origin = typing.get_origin(hint)
        if origin is typing.Annotated:
            hint = typing.get_args(hint)[0]
            continue
        if origin is typing.Union or origin is types.UnionType:
            args = typing.get_args(hint)
            nullable = nullable or type(None) in args
            args = [a for a in args if a is not type(None)]
            if len(args) != 1:
                return object, nullable
            hint = args[0]
            continue
        if origin is not None:
            hint = origin
        break
    if not isinstance(hint, type):
        return object, nullable
    return hint, nullable


def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, bytes):
        value = value.decode()
    return dateutil.parser.isoparse(str(value))


def coerce_value(value: Any, py_type: type) -> Any:
    """Convert a fetched database value to `py_type`.

    Values already of the right type pass through; unknown types are returned
    unchanged so the driver's own conversion stands.
    """
    if value is None or py_type is object:
        return value

    if issubclass(py_type, enum.Enum):
        return value if isinstance(value, py_type) else py_type(value)

    if py_type is bool:
        return bool(value)

    if isinstance(value, py_type):
        return value

    if py_type is int:
        return int(value)

    if py_type is float:
        return float(value)

    if py_type is decimal.Decimal:
        return decimal.Decimal(str(value))

    if py_type is str:
        return value.decode() if isinstance(value, bytes) else str(value)

    if py_type is bytes:
        return value.encode() if isinstance(value, str) else bytes(value)

    if py_type is datetime.datetime:
        return _to_datetime(value)

    if py_type is datetime.date:
        return _to_datetime(value).date()

    if py_type is datetime.time:
        if isinstance(value, datetime.timedelta):
            return (datetime.datetime.min + value).time()
        return datetime.time.fromisoformat(value.decode() if isinstance(value, bytes) else str(value))

    if py_type in JSON_TYPES and isinstance(value, str | bytes):
        return json.loads(value)

    return value


def new_record(cls: type) -> Any:
    """Create an instance of a dataclass record without calling __init__.

    Each field starts at its declared default, default factory result, or None.
    """
    record = cls.__new__(cls)
    for f in dataclasses.fields(cls):
        if f.default is not dataclasses.MISSING:
            value = f.default
        elif f.default_factory is not dataclasses.MISSING:
            value = f.default_factory()
        else:
            value = None
        object.__setattr__(record, f.name, value)
    return record


# SQLite adapters and converters


def adapt_date(val: datetime.date) -> str:
    """Adapt date to ISO 8601 text."""
    return val.isoformat()


def adapt_datetime(val: datetime.datetime) -> str:
    """Adapt datetime to ISO 8601 text."""
    return val.isoformat(sep=' ')


def adapt_decimal(val: decimal.Decimal) -> str:
    return str(val)


def convert_date(val: bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    return dateutil.parser.isoparse(val.decode()).date()


def convert_datetime(val: bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    return dateutil.parser.isoparse(val.decode())
