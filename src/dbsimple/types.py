"""
Type coercion table for result columns.

This module provides:
- ColumnType: the closed set of declared column types
- Widening rules used during setter resolution
- The two value conversions applied before invoking a setter
- Resolution of driver type codes and annotations to ColumnType
- SQLite converters for values coming back from the database
"""
import datetime
import decimal
import logging
import types
import typing
from enum import Enum
from typing import Any

import dateutil.parser
import numpy as np
from psycopg.postgres import types as pg_types

logger = logging.getLogger(__name__)

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1


def type_name(tp: Any) -> str:
    """Textual name of a type, without the builtins prefix.

    >>> type_name(int)
    'int'
    >>> type_name(decimal.Decimal)
    'decimal.Decimal'
    """
    module = getattr(tp, '__module__', None)
    qualname = getattr(tp, '__qualname__', None) or getattr(tp, '__name__', None) or repr(tp)
    if module in {None, 'builtins'}:
        return qualname
    return f'{module}.{qualname}'


class ColumnType(Enum):
    """Declared type of a result column.

    Each member lists the Python types a setter may declare to accept it.
    """
    NULL = ('null', ())
    BOOLEAN = ('boolean', (bool, np.bool_))
    SMALLINT = ('smallint', (np.int16, np.int8))
    INTEGER = ('integer', (np.int32,))
    BIGINT = ('bigint', (int, np.int64))
    REAL = ('real', (np.float32,))
    DOUBLE = ('double', (float, np.float64))
    DECIMAL = ('decimal', (decimal.Decimal,))
    STRING = ('string', (str,))
    BYTES = ('bytes', (bytes, bytearray, memoryview))
    TIMESTAMP = ('timestamp', (datetime.datetime,))
    DATE = ('date', (datetime.date,))
    TIME = ('time', (datetime.time,))
    ARRAY = ('array', (list, tuple))
    OBJECT = ('object', (object,))

    def __init__(self, label: str, python_types: tuple[type, ...]) -> None:
        self.label = label
        self.python_types = python_types

    @property
    def type_names(self) -> frozenset[str]:
        """Accepted textual type names."""
        return frozenset(type_name(tp) for tp in self.python_types)

    def accepts(self, column_type: 'ColumnType') -> bool:
        """Check if a setter declared with this type accepts the column type.
        """
        return self is ColumnType.OBJECT or column_type is ColumnType.NULL or self is column_type

    def __repr__(self) -> str:
        return f'ColumnType.{self.name}'


# Exact type lookup, then isinstance/issubclass scan in declaration order.
# TIMESTAMP precedes DATE because datetime subclasses date.
_BY_TYPE: dict[type, ColumnType] = {
    tp: column_type
    for column_type in ColumnType
    if column_type is not ColumnType.OBJECT
    for tp in column_type.python_types
}
_SCAN_ORDER = tuple(ct for ct in ColumnType if ct not in {ColumnType.NULL, ColumnType.OBJECT})

WIDENINGS: dict[ColumnType, ColumnType] = {
    ColumnType.INTEGER: ColumnType.BIGINT,
    ColumnType.TIMESTAMP: ColumnType.DATE,
}


def widen(column_type: ColumnType) -> ColumnType | None:
    """Return the one-step widening of a column type, if any.

    >>> widen(ColumnType.INTEGER)
    ColumnType.BIGINT
    >>> widen(ColumnType.STRING) is None
    True
    """
    return WIDENINGS.get(column_type)


def column_type_of(value: Any) -> ColumnType:
    """Infer the column type from a value read from the driver.

    Python ints in the signed 32-bit range are INTEGER, larger ones BIGINT.

    >>> column_type_of(1)
    ColumnType.INTEGER
    >>> column_type_of(2 ** 40)
    ColumnType.BIGINT
    >>> column_type_of(True)
    ColumnType.BOOLEAN
    """
    if value is None:
        return ColumnType.NULL

    column_type = _BY_TYPE.get(type(value))
    if column_type is ColumnType.BIGINT and type(value) is int and INT32_MIN <= value <= INT32_MAX:
        return ColumnType.INTEGER
    if column_type is not None:
        return column_type

    for candidate in _SCAN_ORDER:
        if isinstance(value, candidate.python_types):
            if candidate is ColumnType.BIGINT and INT32_MIN <= value <= INT32_MAX:
                return ColumnType.INTEGER
            return candidate

    return ColumnType.OBJECT


def column_type_for_annotation(annotation: Any) -> ColumnType | None:
    """Resolve a setter annotation to the column type it accepts.

    Returns None for annotations with no column type counterpart.

    >>> column_type_for_annotation(int)
    ColumnType.BIGINT
    >>> column_type_for_annotation(datetime.date | None)
    ColumnType.DATE
    >>> column_type_for_annotation(Any)
    ColumnType.OBJECT
    """
    if annotation is None or annotation is Any or annotation is object:
        return ColumnType.OBJECT

    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
        return column_type_for_annotation(typing.get_args(annotation)[0])
    if origin in {typing.Union, types.UnionType}:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return column_type_for_annotation(args[0])
        return None
    if origin is not None:
        annotation = origin

    if not isinstance(annotation, type):
        return None

    column_type = _BY_TYPE.get(annotation)
    if column_type is not None:
        return column_type

    for candidate in _SCAN_ORDER:
        if issubclass(annotation, candidate.python_types):
            return candidate

    return None


def annotation_name(annotation: Any) -> str:
    """Textual name of a setter annotation, unwrapping Optional and Annotated.
    """
    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
        return annotation_name(typing.get_args(annotation)[0])
    if origin in {typing.Union, types.UnionType}:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return annotation_name(args[0])
    if origin is not None:
        return type_name(origin)
    return type_name(annotation)


def convert_for_setter(value: Any, setter_type: ColumnType) -> Any:
    """Apply the automatic conversions performed before a setter is invoked.

    Only two exist: a 32-bit integer written to a 64-bit integer setter is
    promoted, and a timestamp written to a date setter is reinterpreted as a
    plain datetime of the same instant.

    >>> convert_for_setter(np.int32(7), ColumnType.BIGINT)
    7
    """
    if value is None:
        return None

    if setter_type is ColumnType.BIGINT and column_type_of(value) is ColumnType.INTEGER:
        return int(value)

    if setter_type is ColumnType.DATE and column_type_of(value) is ColumnType.TIMESTAMP:
        return datetime.datetime.combine(value.date(), value.timetz())

    return value


# Type Resolution - PostgreSQL OIDs -> ColumnType

_oid = lambda x: pg_types.get(x).oid
_aoid = lambda x: pg_types.get(x).array_oid

postgres_types: dict[int, ColumnType] = {}

postgres_types[_oid('bool')] = ColumnType.BOOLEAN
postgres_types[_oid('int2')] = ColumnType.SMALLINT
postgres_types[_oid('int4')] = ColumnType.INTEGER
postgres_types[_oid('int8')] = ColumnType.BIGINT
postgres_types[_oid('float4')] = ColumnType.REAL
postgres_types[_oid('float8')] = ColumnType.DOUBLE
postgres_types[_oid('numeric')] = ColumnType.DECIMAL

for v in [_oid('bpchar'), _oid('name'), _oid('text'), _oid('varchar')]:
    postgres_types[v] = ColumnType.STRING

postgres_types[_oid('bytea')] = ColumnType.BYTES
postgres_types[_oid('date')] = ColumnType.DATE

for v in [_oid('time'), _oid('timetz')]:
    postgres_types[v] = ColumnType.TIME

for v in [_oid('timestamp'), _oid('timestamptz')]:
    postgres_types[v] = ColumnType.TIMESTAMP

for k in tuple(postgres_types):
    postgres_types[_aoid(k)] = ColumnType.ARRAY


def resolve_column_type(type_code: Any, value: Any,
                        type_map: dict[Any, ColumnType] | None = None) -> ColumnType:
    """Resolve the declared type of a column.

    Uses the driver type code when the dialect reports one, otherwise the
    value itself.
    """
    if type_map and type_code is not None:
        column_type = type_map.get(type_code)
        if column_type is not None:
            return column_type
    return column_type_of(value)


# SQLite converters - Database value converters

def convert_date(val: bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    return dateutil.parser.isoparse(val.decode()).date()


def convert_datetime(val: bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    return dateutil.parser.isoparse(val.decode())


def convert_time(val: bytes) -> datetime.time:
    """Convert ISO 8601 time string to time object."""
    return datetime.time.fromisoformat(val.decode())


def convert_boolean(val: bytes) -> bool:
    """Convert stored 0/1 (or text) to bool."""
    return val.strip().lower() not in {b'0', b'', b'false', b'f'}


def convert_decimal(val: bytes) -> decimal.Decimal:
    """Convert stored numeric text to Decimal."""
    return decimal.Decimal(val.decode())


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
