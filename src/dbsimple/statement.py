"""
Prepared statements and the per-connection statement cache.

A PreparedStatement holds the dialect-standardized SQL of one query and its
positional parameter slots. Every execution opens a fresh DB-API cursor, so
a cached statement can be re-bound and re-executed while a cursor from an
earlier execution is still being read.

The StatementCache is owned by one connection and is not synchronized: a
connection and its statements must be used from one thread at a time.
"""
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from dbsimple.cursor import ResultCursor
from dbsimple.exceptions import DatabaseError
from dbsimple.sql import count_placeholders

if TYPE_CHECKING:
    from dbsimple.connection import ConnectionWrapper

logger = logging.getLogger(__name__)


class PreparedStatement:
    """One cached query with its bound parameters.
    """

    def __init__(self, connection: 'ConnectionWrapper', sql: str) -> None:
        self.connection = connection
        self.sql = sql
        self.operation = connection.strategy.standardize_sql(sql)
        self.parameter_count = count_placeholders(self.operation)
        self._parameters: dict[int, Any] = {}
        self._closed = False

    def __repr__(self) -> str:
        return f'PreparedStatement({self.sql!r}, parameters={self.parameter_count})'

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_position(self, position: int) -> None:
        if not 1 <= position <= self.parameter_count:
            raise ValueError(f'Parameter index {position} out of range 1..{self.parameter_count}')

    def bind(self, position: int, value: Any) -> None:
        """Bind a driver-ready value at a 1-based position."""
        self._check_position(position)
        self._parameters[position] = value

    def bind_null(self, position: int) -> None:
        """Bind SQL NULL at a 1-based position."""
        self._check_position(position)
        self._parameters[position] = None

    def clear_parameters(self) -> None:
        self._parameters.clear()

    @property
    def parameters(self) -> tuple[Any, ...]:
        """Bound values in positional order.

        Raises ValueError if any slot is unbound.
        """
        missing = [i for i in range(1, self.parameter_count + 1) if i not in self._parameters]
        if missing:
            raise ValueError(f'No value bound for parameter(s) {missing}')
        return tuple(self._parameters[i] for i in range(1, self.parameter_count + 1))

    def execute(self) -> ResultCursor:
        """Execute with the bound parameters. The caller owns the returned cursor.
        """
        if self._closed:
            raise DatabaseError(f'Statement is closed: {self.sql!r}')
        parameters = self.parameters
        cursor = self.connection.new_cursor()
        try:
            return cursor.execute(self.operation, parameters,
                                  prepare=self.connection.prepare_statements)
        except Exception:
            cursor.close()
            raise

    def close(self) -> None:
        """Release the statement and its bound values."""
        if self._closed:
            return
        self._closed = True
        self._parameters.clear()
        logger.debug(f'Closed statement: {self.sql!r}')


class StatementCache:
    """Exact SQL string -> PreparedStatement for one connection.
    """

    def __init__(self) -> None:
        self._statements: dict[str, PreparedStatement] = {}

    def __len__(self) -> int:
        return len(self._statements)

    def __contains__(self, sql: str) -> bool:
        return sql in self._statements

    def __iter__(self) -> Iterator[PreparedStatement]:
        return iter(list(self._statements.values()))

    def get(self, connection: 'ConnectionWrapper', sql: str) -> PreparedStatement:
        """Return the cached statement for sql, preparing it on first use.
        """
        statement = self._statements.get(sql)
        if statement is not None and not statement.closed:
            logger.debug(f'Statement cache hit: {sql!r}')
            return statement

        logger.debug(f'Statement cache miss: {sql!r}')
        statement = PreparedStatement(connection, sql)
        self._statements[sql] = statement
        return statement

    def close(self) -> None:
        """Close and drop every cached statement."""
        for statement in self._statements.values():
            statement.close()
        self._statements.clear()
