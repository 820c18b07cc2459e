"""
Prepared-statement convenience layer over sqlite3 and psycopg connections.

All operations can be called either as:
- Module functions: db.fetch_entity(cn, User, sql, *args)
- ConnectionWrapper methods: cn.fetch_entity(User, sql, *args)
"""
__version__ = '0.1.0'

from typing import Any

from dbsimple.connection import ConnectionWrapper, connect, wrap
from dbsimple.cursor import ResultCursor, Row
from dbsimple.exceptions import DatabaseError, DriverError
from dbsimple.exceptions import InvalidColumnNameError, MalformedSetterError
from dbsimple.exceptions import MappingError, NoRowsError
from dbsimple.exceptions import SetterNotFoundError, SetterResolutionError
from dbsimple.exceptions import SetterTypeMismatchError, TooManyRowsError
from dbsimple.exceptions import UnsupportedArgumentTypeError
from dbsimple.naming import to_camel_case
from dbsimple.options import DatabaseOptions
from dbsimple.setters import SetterCache, SetterDescriptor
from dbsimple.statement import PreparedStatement
from dbsimple.types import ColumnType


def prepare(cn: ConnectionWrapper, sql: str) -> PreparedStatement:
    """Return the cached prepared statement for sql.
    """
    return cn.prepare(sql)


def bind_arguments(cn: ConnectionWrapper, statement: PreparedStatement,
                   *args: Any) -> PreparedStatement:
    """Bind arguments positionally using the connection's binding mode.
    """
    return cn.bind_arguments(statement, *args)


def fetch(cn: ConnectionWrapper, sql: str, *args: Any) -> ResultCursor:
    """Execute a query and return its open cursor. The caller must close it.
    """
    return cn.fetch(sql, *args)


def execute(cn: ConnectionWrapper, sql: str, *args: Any) -> bool:
    """Execute a statement. Returns True if it produced a result set.
    """
    return cn.execute(sql, *args)


def update(cn: ConnectionWrapper, sql: str, *args: Any) -> int:
    """Execute a statement and return the affected row count.
    """
    return cn.update(sql, *args)


delete = update
insert = update


def fetch_entity(cn: ConnectionWrapper, entity: Any, sql: str, *args: Any) -> Any:
    """Map the single row of a query into an entity.

    Returns None on no rows; raises TooManyRowsError on more than one.
    """
    return cn.fetch_entity(entity, sql, *args)


def fetch_all_entity(cn: ConnectionWrapper, entity_type: type, sql: str, *args: Any) -> list:
    """Map every row of a query into a new entity.
    """
    return cn.fetch_all_entity(entity_type, sql, *args)


def fetch_all_entity_map(cn: ConnectionWrapper, entity_type: type, column_label: str,
                         sql: str, *args: Any) -> dict:
    """Map every row into a new entity, keyed by the string value of a column.
    """
    return cn.fetch_all_entity_map(entity_type, column_label, sql, *args)


def fetch_map(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    """Single row as an attrdict keyed by lower-cased column label.
    """
    return cn.fetch_map(sql, *args)


def fetch_all_map(cn: ConnectionWrapper, sql: str, *args: Any) -> list:
    return cn.fetch_all_map(sql, *args)


def fetch_string(cn: ConnectionWrapper, sql: str, *args: Any) -> str | None:
    return cn.fetch_string(sql, *args)


def fetch_int(cn: ConnectionWrapper, sql: str, *args: Any) -> int | None:
    return cn.fetch_int(sql, *args)


def fetch_short(cn: ConnectionWrapper, sql: str, *args: Any) -> int | None:
    return cn.fetch_short(sql, *args)


def fetch_long(cn: ConnectionWrapper, sql: str, *args: Any) -> int | None:
    return cn.fetch_long(sql, *args)


def fetch_float(cn: ConnectionWrapper, sql: str, *args: Any) -> float | None:
    return cn.fetch_float(sql, *args)


def fetch_double(cn: ConnectionWrapper, sql: str, *args: Any) -> float | None:
    return cn.fetch_double(sql, *args)


def fetch_decimal(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    return cn.fetch_decimal(sql, *args)


def fetch_boolean(cn: ConnectionWrapper, sql: str, *args: Any) -> bool | None:
    return cn.fetch_boolean(sql, *args)


def fetch_date(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    return cn.fetch_date(sql, *args)


def fetch_time(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    return cn.fetch_time(sql, *args)


def fetch_timestamp(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    return cn.fetch_timestamp(sql, *args)


def fetch_bytes(cn: ConnectionWrapper, sql: str, *args: Any) -> bytes | None:
    return cn.fetch_bytes(sql, *args)


def fetch_object(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    return cn.fetch_object(sql, *args)


def fetch_list_int(cn: ConnectionWrapper, sql: str, *args: Any) -> list:
    """Column 1 of every row as ints.
    """
    return cn.fetch_list_int(sql, *args)


def fetch_list_long(cn: ConnectionWrapper, sql: str, *args: Any) -> list:
    return cn.fetch_list_long(sql, *args)


def commit(cn: ConnectionWrapper) -> None:
    cn.commit()


def rollback(cn: ConnectionWrapper) -> None:
    cn.rollback()


def close(cn: ConnectionWrapper) -> None:
    """Close the connection, logging rather than raising close failures.
    """
    cn.close()


__all__ = [
    'connect',
    'wrap',
    'ConnectionWrapper',
    'DatabaseOptions',
    'PreparedStatement',
    'ResultCursor',
    'Row',
    'ColumnType',
    'SetterCache',
    'SetterDescriptor',
    'to_camel_case',
    'prepare',
    'bind_arguments',
    'fetch',
    'execute',
    'update',
    'delete',
    'insert',
    'fetch_entity',
    'fetch_all_entity',
    'fetch_all_entity_map',
    'fetch_map',
    'fetch_all_map',
    'fetch_string',
    'fetch_int',
    'fetch_short',
    'fetch_long',
    'fetch_float',
    'fetch_double',
    'fetch_decimal',
    'fetch_boolean',
    'fetch_date',
    'fetch_time',
    'fetch_timestamp',
    'fetch_bytes',
    'fetch_object',
    'fetch_list_int',
    'fetch_list_long',
    'commit',
    'rollback',
    'close',
    'DatabaseError',
    'DriverError',
    'InvalidColumnNameError',
    'UnsupportedArgumentTypeError',
    'TooManyRowsError',
    'NoRowsError',
    'MappingError',
    'SetterResolutionError',
    'SetterNotFoundError',
    'MalformedSetterError',
    'SetterTypeMismatchError',
]
