"""
Database connection handling.

This module provides:
1. The `connect()` function for opening a connection through SQLAlchemy
2. The `wrap()` function for adopting an existing DBAPI connection
3. The `ConnectionWrapper` class with the statement cache, argument binding,
   fetch and update methods
4. Engine creation through a thread-safe registry

The ConnectionWrapper is the primary client, providing methods like:
- fetch_entity(entity, sql, *args) - Map a single row into an entity
- fetch_all_entity(entity_type, sql, *args) - Map every row into new entities
- fetch_map(sql, *args) - Single row as an attrdict
- fetch_long(sql, *args) - Scalar from column 1 of the first row
- update(sql, *args) - Execute and return the affected row count

A connection, its statement cache and its cursors must be used from one
thread at a time.
"""
import atexit
import logging
import threading
from collections.abc import Callable
from dataclasses import fields
from typing import Any, Self, TypeVar

import sqlalchemy as sa
from dbsimple.binding import bind_arguments
from dbsimple.cursor import ResultCursor
from dbsimple.exceptions import DRIVER_ERRORS, DatabaseError, DriverError
from dbsimple.exceptions import TooManyRowsError
from dbsimple.mapping import instantiate, map_row, map_row_to_dict
from dbsimple.options import DatabaseOptions
from dbsimple.setters import SetterCache
from dbsimple.statement import PreparedStatement, StatementCache
from dbsimple.strategy import get_strategy
from dbsimple.utils import get_dialect_name, get_raw_connection
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from libb import attrdict, load_options

__all__ = [
    'ConnectionWrapper',
    'connect',
    'wrap',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')
_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options: DatabaseOptions) -> sa.URL:
    """Convert DatabaseOptions to SQLAlchemy URL.
    """
    return get_strategy(options.drivername).build_connection_url(options)


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.

    Engines never pool connections: every `connect()` opens a new driver
    connection and `close()` closes it.
    """
    key = str(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        strategy = get_strategy(options.drivername)
        url = create_url_from_options(options)

        engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
        engine_kwargs.update(strategy.get_engine_kwargs(options))
        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """Wraps a driver connection with cached statements and row mapping.

    Tracks query execution counts and timing in `calls` and `time`.
    """

    def __init__(self, sa_connection: sa.engine.Connection | None = None,
                 options: DatabaseOptions | None = None,
                 dbapi_connection: Any | None = None,
                 setter_cache: SetterCache | None = None,
                 strict_binding: bool | None = None,
                 prepare_statements: bool | None = None) -> None:
        """Initialize a connection wrapper from a SQLAlchemy or DBAPI connection.
        """
        if sa_connection is None and dbapi_connection is None:
            raise ValueError('Either a SQLAlchemy or a DBAPI connection is required')

        self.sa_connection = sa_connection
        self.engine = sa_connection.engine if sa_connection is not None else None
        self.options = options
        if dbapi_connection is None:
            dbapi_connection = get_raw_connection(sa_connection.connection)
        self.dbapi_connection = dbapi_connection
        self._dialect = get_dialect_name(sa_connection if sa_connection is not None else dbapi_connection)
        self.strategy = get_strategy(self._dialect)
        self.setter_cache = setter_cache if setter_cache is not None else SetterCache.get_instance()
        self.statements = StatementCache()

        if strict_binding is None:
            strict_binding = options.strict_binding if options is not None else False
        if prepare_statements is None:
            prepare_statements = options.prepare_statements if options is not None else True
        self.strict_binding = strict_binding
        self.prepare_statements = prepare_statements

        self.calls = 0
        self.time = 0
        self._closed = False

    def __enter__(self) -> Self:
        """Support for context manager protocol
        """
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        state = 'closed' if self._closed else 'open'
        return f'<ConnectionWrapper {self._dialect} {state}, {len(self.statements)} statements>'

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        return self._dialect

    @property
    def closed(self) -> bool:
        return self._closed

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def _check_open(self) -> None:
        if self._closed:
            raise DatabaseError('Connection is closed')

    def new_cursor(self) -> ResultCursor:
        """Open a fresh result cursor on the driver connection.
        """
        self._check_open()
        try:
            cursor = self.dbapi_connection.cursor()
        except DRIVER_ERRORS as err:
            raise DriverError(str(err)) from err
        return ResultCursor(cursor, self, self.strategy)

    # Statements

    def prepare(self, sql: str) -> PreparedStatement:
        """Return the prepared statement for sql, creating and caching it on first use.
        """
        self._check_open()
        if not self.prepare_statements:
            return PreparedStatement(self, sql)
        return self.statements.get(self, sql)

    def bind_arguments(self, statement: PreparedStatement, *args: Any) -> PreparedStatement:
        """Clear the statement's parameters and bind args positionally.
        """
        return bind_arguments(statement, *args, strict=self.strict_binding)

    def fetch(self, sql: str, *args: Any) -> ResultCursor:
        """Execute a query and return its open cursor. The caller must close it.
        """
        statement = self.prepare(sql)
        self.bind_arguments(statement, *args)
        return statement.execute()

    def execute(self, sql: str, *args: Any) -> bool:
        """Execute a statement. Returns True if it produced a result set.
        """
        with self.fetch(sql, *args) as cursor:
            return cursor.has_result_set

    def update(self, sql: str, *args: Any) -> int:
        """Execute a statement and return the number of affected rows.
        """
        with self.fetch(sql, *args) as cursor:
            return cursor.rowcount

    # Entities and maps

    def fetch_entity(self, entity: T | type[T], sql: str, *args: Any) -> T | None:
        """Map the single row of a query into an entity.

        `entity` may be an instance to populate or a type to instantiate.
        Returns None when the query returns no rows and raises
        TooManyRowsError when it returns more than one.
        """
        with self.fetch(sql, *args) as cursor:
            if not cursor.advance():
                return None
            target = instantiate(entity) if isinstance(entity, type) else entity
            map_row(target, cursor.row, self.setter_cache)
            if cursor.advance():
                raise TooManyRowsError(f'Query returned more than one row: {sql}')
            return target

    def fetch_all_entity(self, entity_type: type[T], sql: str, *args: Any) -> list[T]:
        """Map every row of a query into a new entity, in result order.
        """
        with self.fetch(sql, *args) as cursor:
            return [map_row(instantiate(entity_type), row, self.setter_cache) for row in cursor]

    def fetch_all_entity_map(self, entity_type: type[T], column_label: str,
                             sql: str, *args: Any) -> dict[str | None, T]:
        """Map every row into a new entity, keyed by the string value of one column.

        The column is matched by exact label, then case-insensitively.
        Later rows with the same key replace earlier ones.
        """
        result: dict[str | None, T] = {}
        with self.fetch(sql, *args) as cursor:
            for row in cursor:
                key = row.get_string(row.index_of(column_label))
                result[key] = map_row(instantiate(entity_type), row, self.setter_cache)
        return result

    def fetch_map(self, sql: str, *args: Any) -> attrdict | None:
        """Single row as an attrdict keyed by lower-cased column label.

        Returns None when the query returns no rows and raises
        TooManyRowsError when it returns more than one.
        """
        with self.fetch(sql, *args) as cursor:
            if not cursor.advance():
                return None
            record = map_row_to_dict(cursor.row)
            if cursor.advance():
                raise TooManyRowsError(f'Query returned more than one row: {sql}')
            return record

    def fetch_all_map(self, sql: str, *args: Any) -> list[attrdict]:
        """Every row as an attrdict, in result order.
        """
        with self.fetch(sql, *args) as cursor:
            return [map_row_to_dict(row) for row in cursor]

    # Scalars: column 1 of the first row, None on no rows or NULL

    def _fetch_scalar(self, accessor: str, sql: str, args: tuple[Any, ...]) -> Any:
        with self.fetch(sql, *args) as cursor:
            if not cursor.advance():
                logger.debug(f'Scalar query returned no rows: {sql}')
                return None
            return getattr(cursor.row, accessor)(1)

    def fetch_string(self, sql: str, *args: Any) -> str | None:
        return self._fetch_scalar('get_string', sql, args)

    def fetch_int(self, sql: str, *args: Any) -> int | None:
        return self._fetch_scalar('get_int', sql, args)

    def fetch_short(self, sql: str, *args: Any) -> int | None:
        return self._fetch_scalar('get_short', sql, args)

    def fetch_long(self, sql: str, *args: Any) -> int | None:
        return self._fetch_scalar('get_long', sql, args)

    def fetch_float(self, sql: str, *args: Any) -> float | None:
        return self._fetch_scalar('get_float', sql, args)

    def fetch_double(self, sql: str, *args: Any) -> float | None:
        return self._fetch_scalar('get_double', sql, args)

    def fetch_decimal(self, sql: str, *args: Any) -> Any:
        return self._fetch_scalar('get_decimal', sql, args)

    def fetch_boolean(self, sql: str, *args: Any) -> bool | None:
        return self._fetch_scalar('get_boolean', sql, args)

    def fetch_date(self, sql: str, *args: Any) -> Any:
        return self._fetch_scalar('get_date', sql, args)

    def fetch_time(self, sql: str, *args: Any) -> Any:
        return self._fetch_scalar('get_time', sql, args)

    def fetch_timestamp(self, sql: str, *args: Any) -> Any:
        return self._fetch_scalar('get_timestamp', sql, args)

    def fetch_bytes(self, sql: str, *args: Any) -> bytes | None:
        return self._fetch_scalar('get_bytes', sql, args)

    def fetch_object(self, sql: str, *args: Any) -> Any:
        """Column 1 of the first row exactly as the driver returned it."""
        return self._fetch_scalar('get_object', sql, args)

    def fetch_list_int(self, sql: str, *args: Any) -> list[int | None]:
        """Column 1 of every row as ints. Empty list when there are no rows.
        """
        with self.fetch(sql, *args) as cursor:
            return [row.get_int(1) for row in cursor]

    def fetch_list_long(self, sql: str, *args: Any) -> list[int | None]:
        with self.fetch(sql, *args) as cursor:
            return [row.get_long(1) for row in cursor]

    # Transactions

    def commit(self) -> None:
        """Commit the driver connection's current transaction.
        """
        self._check_open()
        try:
            self.dbapi_connection.commit()
        except DRIVER_ERRORS as err:
            raise DriverError(str(err)) from err

    def rollback(self) -> None:
        """Roll back the driver connection's current transaction.
        """
        self._check_open()
        try:
            self.dbapi_connection.rollback()
        except DRIVER_ERRORS as err:
            raise DriverError(str(err)) from err

    def close(self) -> None:
        """Close cached statements and the connection. Failures are logged, never raised.
        """
        if self._closed:
            return
        self._closed = True
        self.statements.close()
        try:
            if self.sa_connection is not None:
                self.sa_connection.close()
            else:
                self.dbapi_connection.close()
        except Exception as err:
            logger.warning(f'Error closing connection: {err}')
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s (avg: {self.time/max(1,self.calls):.3f}s per query)')


def wrap(dbapi_connection: Any, setter_cache: SetterCache | None = None,
         strict_binding: bool = False, prepare_statements: bool = True,
         autocommit: bool | None = None) -> ConnectionWrapper:
    """Adopt an existing sqlite3 or psycopg connection.

    The wrapper takes ownership: closing it closes the driver connection.
    The connection's transaction mode is left alone unless `autocommit` is
    given. SQLite connections only return typed dates, timestamps, booleans
    and decimals if they were opened with `detect_types`.
    """
    cn = ConnectionWrapper(dbapi_connection=dbapi_connection, setter_cache=setter_cache,
                           strict_binding=strict_binding, prepare_statements=prepare_statements)
    cn.strategy.register_type_adapters(dbapi_connection)
    if autocommit is True:
        cn.strategy.enable_autocommit(dbapi_connection)
    elif autocommit is False:
        cn.strategy.disable_autocommit(dbapi_connection)
    return cn


@load_options(cls=DatabaseOptions)
def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> ConnectionWrapper:
    """Connect to a database using SQLAlchemy for connection management

    Args:
        options: Can be:
                - DatabaseOptions object
                - String name of a configuration section
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        ConnectionWrapper object for connecting to the database
    """
    if isinstance(options, DatabaseOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=DatabaseOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    engine = get_engine_for_options(options)

    try:
        sa_connection = engine.connect()
    except sa.exc.DBAPIError as err:
        raise DriverError(str(err.orig or err)) from err

    strategy = get_strategy(options.drivername)
    strategy.configure_connection(get_raw_connection(sa_connection.connection),
                                  autocommit=options.autocommit)

    logger.debug(f'Connected to {options.drivername} database {options.database}')
    return ConnectionWrapper(sa_connection, options)
