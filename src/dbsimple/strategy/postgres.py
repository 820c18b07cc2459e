"""
PostgreSQL-specific strategy implementation.

Uses psycopg 3. Declared column types come from the type OIDs psycopg reports
in cursor descriptions, and statements are executed with ``prepare=True`` so
the server keeps a prepared plan for every cached statement.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from dbsimple.sql import escape_percent_signs_in_literals
from dbsimple.strategy.base import DatabaseStrategy, register_strategy
from dbsimple.types import postgres_types

if TYPE_CHECKING:
    from dbsimple.options import DatabaseOptions
    from dbsimple.types import ColumnType

logger = logging.getLogger(__name__)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        if options.appname:
            query['application_name'] = options.appname

        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
            query=query
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL."""
        return {}

    def register_type_adapters(self, connection: Any) -> None:
        """PostgreSQL with psycopg doesn't need special adapters.
        """

    def configure_connection(self, conn: Any, autocommit: bool = True) -> None:
        """Configure connection settings for PostgreSQL.
        """
        raw_conn = conn
        if hasattr(conn, 'driver_connection'):
            raw_conn = conn.driver_connection
        if autocommit:
            self.enable_autocommit(raw_conn)
        else:
            self.disable_autocommit(raw_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = True

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = False

    def get_type_map(self) -> dict[Any, 'ColumnType']:
        """Return mapping of PostgreSQL type OIDs to ColumnType."""
        return postgres_types

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']

    def standardize_sql(self, sql: str) -> str:
        """Convert ? placeholders to %s and escape literal percent signs.
        """
        return escape_percent_signs_in_literals(super().standardize_sql(sql))

    def execute(self, cursor: Any, operation: str, parameters: Sequence[Any],
                prepare: bool = False) -> None:
        """Execute with psycopg, preparing server-side when asked.
        """
        cursor.execute(operation, parameters, prepare=prepare or None)
