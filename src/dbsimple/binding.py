"""
Positional argument binding.

Every query argument is classified into a BindKind, a closed set of bind
operations each carrying its own conversion to a driver-ready value. Values
that no kind recognizes fall into BindKind.OBJECT and are handed to the
driver unchanged, unless strict binding is enabled, in which case only the
legacy kinds are accepted.

Null detection happens before classification, so None, pandas.NA,
pandas.NaT, float NaN and numpy NaT always bind as SQL NULL.
"""
import datetime
import decimal
import io
import logging
import math
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
from dbsimple.exceptions import UnsupportedArgumentTypeError
from dbsimple.types import INT32_MAX, INT32_MIN

if TYPE_CHECKING:
    from dbsimple.statement import PreparedStatement

logger = logging.getLogger(__name__)


def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).to_pydatetime()
    return value


def _read_stream(value: Any) -> bytes | str:
    return value.read()


def _to_array(value: Any) -> list:
    if isinstance(value, np.ndarray):
        return value.tolist()
    return list(value)


class BindKind(Enum):
    """Bind operation for one query argument."""
    NULL = ('null', lambda v: None)
    STRING = ('string', str)
    INTEGER = ('integer', int)
    BIGINT = ('bigint', int)
    REAL = ('real', float)
    DOUBLE = ('double', float)
    DECIMAL = ('decimal', lambda v: v)
    BOOLEAN = ('boolean', bool)
    TIMESTAMP = ('timestamp', _to_datetime)
    DATE = ('date', lambda v: v)
    TIME = ('time', lambda v: v)
    BYTES = ('bytes', bytes)
    STREAM = ('stream', _read_stream)
    ARRAY = ('array', _to_array)
    OBJECT = ('object', lambda v: v)

    def __init__(self, label: str, converter: Callable[[Any], Any]) -> None:
        self.label = label
        self.converter = converter

    def convert(self, value: Any) -> Any:
        """Convert a host value to the driver value for this kind."""
        return self.converter(value)


# Kinds accepted by strict (legacy) binding: string, 32/64-bit int, float,
# double, boolean, date and decimal. TIMESTAMP is the datetime form of date.
LEGACY_KINDS = frozenset({
    BindKind.NULL,
    BindKind.STRING,
    BindKind.INTEGER,
    BindKind.BIGINT,
    BindKind.REAL,
    BindKind.DOUBLE,
    BindKind.BOOLEAN,
    BindKind.DATE,
    BindKind.TIMESTAMP,
    BindKind.DECIMAL,
})


def is_null(value: Any) -> bool:
    """Check if a value binds as SQL NULL.

    >>> is_null(None), is_null(pd.NA), is_null(float('nan')), is_null(0)
    (True, True, True, False)
    """
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    if isinstance(value, float | np.floating) and math.isnan(value):
        return True
    if isinstance(value, np.datetime64) and np.isnat(value):
        return True
    return False


def classify(value: Any) -> BindKind:
    """Classify a host value into its bind kind.

    Order matters: bool before int, datetime before date.

    >>> classify(1), classify(2 ** 40), classify(True)
    (<BindKind.INTEGER: ...>, <BindKind.BIGINT: ...>, <BindKind.BOOLEAN: ...>)
    """
    if is_null(value):
        return BindKind.NULL
    if isinstance(value, str):
        return BindKind.STRING
    if isinstance(value, bool | np.bool_):
        return BindKind.BOOLEAN
    if isinstance(value, np.int64):
        return BindKind.BIGINT
    if isinstance(value, int | np.integer):
        return BindKind.INTEGER if INT32_MIN <= value <= INT32_MAX else BindKind.BIGINT
    if isinstance(value, np.float32):
        return BindKind.REAL
    if isinstance(value, float | np.floating):
        return BindKind.DOUBLE
    if isinstance(value, decimal.Decimal):
        return BindKind.DECIMAL
    if isinstance(value, datetime.datetime | np.datetime64):
        return BindKind.TIMESTAMP
    if isinstance(value, datetime.date):
        return BindKind.DATE
    if isinstance(value, datetime.time):
        return BindKind.TIME
    if isinstance(value, bytes | bytearray | memoryview):
        return BindKind.BYTES
    if isinstance(value, io.IOBase) or (hasattr(value, 'read') and callable(value.read)):
        return BindKind.STREAM
    if isinstance(value, list | tuple | np.ndarray):
        return BindKind.ARRAY
    return BindKind.OBJECT


def bind_argument(statement: 'PreparedStatement', position: int, value: Any,
                  strict: bool = False) -> BindKind:
    """Bind one argument at a 1-based position.

    Raises UnsupportedArgumentTypeError under strict binding for values
    outside the legacy kinds.
    """
    kind = classify(value)

    if kind is BindKind.NULL:
        statement.bind_null(position)
        return kind

    if strict and kind not in LEGACY_KINDS:
        raise UnsupportedArgumentTypeError(
            f'Query arguments of type {type(value).__name__} are not supported')

    statement.bind(position, kind.convert(value))
    return kind


def bind_arguments(statement: 'PreparedStatement', *args: Any,
                   strict: bool = False) -> 'PreparedStatement':
    """Bind all arguments positionally, starting at 1.
    """
    statement.clear_parameters()
    for position, value in enumerate(args, start=1):
        kind = bind_argument(statement, position, value, strict=strict)
        logger.debug(f'Bound parameter {position} as {kind.label}')
    return statement
