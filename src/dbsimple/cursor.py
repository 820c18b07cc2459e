"""
Result cursors and row views.

A ResultCursor wraps one DB-API cursor for one execution of a prepared
statement. It is advanced explicitly, one row at a time, and exposes the
current row through a Row view addressed by 1-based column ordinals. The
caller that receives a ResultCursor owns it and must close it.
"""
import datetime
import decimal
import logging
import time
from collections.abc import Callable, Iterator, Sequence
from functools import wraps
from typing import TYPE_CHECKING, Any, Self

import dateutil.parser
from dbsimple.exceptions import DRIVER_ERRORS, DriverError, NoRowsError
from dbsimple.exceptions import InvalidColumnNameError
from dbsimple.types import ColumnType, resolve_column_type

if TYPE_CHECKING:
    from dbsimple.connection import ConnectionWrapper
    from dbsimple.strategy import DatabaseStrategy

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL queries and parameters."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            result = func(self, operation, *args, **kwargs)
            if hasattr(self.dbapi_cursor, 'statusmessage'):
                logger.debug(f'Query result: {self.dbapi_cursor.statusmessage}')
            return result
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            if self.connwrapper is not None:
                self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


# Column value accessors. NULL is handled before any of these run.

def _to_string(value: Any) -> str:
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).decode()
    return str(value)


def _to_decimal(value: Any) -> decimal.Decimal:
    if isinstance(value, decimal.Decimal):
        return value
    return decimal.Decimal(str(value))


def _to_boolean(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {'1', 't', 'true', 'y', 'yes'}
    return bool(value)


def _to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return dateutil.parser.isoparse(_to_string(value)).date()


def _to_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.datetime):
        return value.timetz()
    if isinstance(value, datetime.time):
        return value
    return datetime.time.fromisoformat(_to_string(value))


def _to_timestamp(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    return dateutil.parser.isoparse(_to_string(value))


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode()
    return bytes(value)


class Row:
    """View over one result row, addressed by 1-based column ordinals.
    """

    __slots__ = ('_description', '_values', '_type_map')

    def __init__(self, description: Sequence[Sequence[Any]], values: Sequence[Any],
                 type_map: dict[Any, ColumnType] | None = None) -> None:
        self._description = description
        self._values = values
        self._type_map = type_map

    def __len__(self) -> int:
        return len(self._description)

    def __repr__(self) -> str:
        pairs = ', '.join(f'{d[0]}={v!r}' for d, v in zip(self._description, self._values))
        return f'Row({pairs})'

    @property
    def column_count(self) -> int:
        return len(self._description)

    def _check(self, index: int) -> int:
        if not 1 <= index <= len(self._description):
            raise IndexError(f'Column index {index} out of range 1..{len(self._description)}')
        return index - 1

    def column_name(self, index: int) -> str:
        """Column label as reported by the driver."""
        return self._description[self._check(index)][0]

    def column_type(self, index: int) -> ColumnType:
        """Declared type of the column, from the driver type code or the value.
        """
        i = self._check(index)
        return resolve_column_type(self._description[i][1], self._values[i], self._type_map)

    def value(self, index: int) -> Any:
        return self._values[self._check(index)]

    def index_of(self, label: str) -> int:
        """Ordinal of a column label: exact match first, then case-insensitive.
        """
        names = [d[0] for d in self._description]
        if label in names:
            return names.index(label) + 1
        folded = label.casefold()
        for i, name in enumerate(names, start=1):
            if name.casefold() == folded:
                return i
        raise InvalidColumnNameError(f'No column labelled {label!r} in {names}')

    def _get(self, index: int, conversion: Callable[[Any], Any]) -> Any:
        value = self.value(index)
        if value is None:
            return None
        return conversion(value)

    def get_string(self, index: int) -> str | None:
        return self._get(index, _to_string)

    def get_int(self, index: int) -> int | None:
        return self._get(index, int)

    get_short = get_int
    get_long = get_int

    def get_float(self, index: int) -> float | None:
        return self._get(index, float)

    get_double = get_float

    def get_decimal(self, index: int) -> decimal.Decimal | None:
        return self._get(index, _to_decimal)

    def get_boolean(self, index: int) -> bool | None:
        return self._get(index, _to_boolean)

    def get_date(self, index: int) -> datetime.date | None:
        return self._get(index, _to_date)

    def get_time(self, index: int) -> datetime.time | None:
        return self._get(index, _to_time)

    def get_timestamp(self, index: int) -> datetime.datetime | None:
        return self._get(index, _to_timestamp)

    def get_bytes(self, index: int) -> bytes | None:
        return self._get(index, _to_bytes)

    def get_object(self, index: int) -> Any:
        return self.value(index)


class ResultCursor:
    """Forward-only cursor over the result of one statement execution.
    """

    def __init__(self, cursor: Any, connection_wrapper: 'ConnectionWrapper | None' = None,
                 strategy: 'DatabaseStrategy | None' = None) -> None:
        """Initialize cursor wrapper.

        Args:
            cursor: The underlying DBAPI cursor
            connection_wrapper: The connection wrapper that created this cursor
            strategy: Driver strategy used to execute and to map type codes
        """
        self.dbapi_cursor = cursor
        self.connwrapper = connection_wrapper
        self.strategy = strategy
        self._type_map = strategy.get_type_map() if strategy is not None else None
        self._row: Row | None = None
        self._closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[Row]:
        while self.advance():
            yield self._row

    @dumpsql
    def execute(self, operation: str, parameters: Sequence[Any] = (),
                prepare: bool = False) -> Self:
        """Execute an operation with positional parameters.
        """
        try:
            if self.strategy is not None:
                self.strategy.execute(self.dbapi_cursor, operation, tuple(parameters), prepare)
            else:
                self.dbapi_cursor.execute(operation, tuple(parameters))
        except (*DRIVER_ERRORS, OverflowError) as err:
            raise DriverError(str(err)) from err
        return self

    @property
    def description(self) -> Sequence[Sequence[Any]] | None:
        """Column descriptions for the last execution."""
        return self.dbapi_cursor.description

    @property
    def has_result_set(self) -> bool:
        """Whether the last execution produced rows to read."""
        return self.description is not None

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last execution."""
        return self.dbapi_cursor.rowcount

    @property
    def closed(self) -> bool:
        return self._closed

    def advance(self) -> bool:
        """Move to the next row. Returns False when the rows are exhausted.
        """
        self._row = None
        if self._closed or self.description is None:
            return False
        try:
            values = self.dbapi_cursor.fetchone()
        except DRIVER_ERRORS as err:
            raise DriverError(str(err)) from err
        if values is None:
            return False
        self._row = Row(self.description, values, self._type_map)
        return True

    @property
    def row(self) -> Row:
        """The current row."""
        if self._row is None:
            raise NoRowsError('Cursor is not positioned on a row')
        return self._row

    @property
    def column_count(self) -> int:
        return len(self.description or ())

    def column_name(self, index: int) -> str:
        return self.row.column_name(index)

    def column_type(self, index: int) -> ColumnType:
        return self.row.column_type(index)

    def value(self, index: int) -> Any:
        return self.row.value(index)

    def close(self) -> None:
        """Close the cursor. Failures are logged, never raised."""
        if self._closed:
            return
        self._closed = True
        self._row = None
        try:
            self.dbapi_cursor.close()
        except Exception as err:
            logger.warning(f'Error closing cursor: {err}')
