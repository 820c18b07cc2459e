"""
SQLite-specific strategy implementation.

The stdlib sqlite3 driver reports no column types in cursor descriptions, so
declared column types are inferred from each value. Connections are opened
with PARSE_DECLTYPES | PARSE_COLNAMES so columns declared DATE, DATETIME,
TIMESTAMP, TIME, BOOLEAN or DECIMAL come back as the matching Python types.
"""
import datetime
import decimal
import json
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from dbsimple.strategy.base import DatabaseStrategy, register_strategy
from dbsimple.types import convert_boolean, convert_date, convert_datetime
from dbsimple.types import convert_decimal, convert_time

if TYPE_CHECKING:
    from dbsimple.options import DatabaseOptions
    from dbsimple.types import ColumnType

logger = logging.getLogger(__name__)


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        connect_args: dict[str, Any] = {
            'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
        }
        if options.timeout:
            connect_args['timeout'] = options.timeout
        return {'connect_args': connect_args}

    def register_type_adapters(self, connection: Any) -> None:
        """Register adapters and converters for SQLite.

        Adapters and converters are process-wide in sqlite3.
        """
        # Adapters (Python -> SQLite)
        sqlite3.register_adapter(decimal.Decimal, str)
        sqlite3.register_adapter(datetime.datetime, lambda v: v.isoformat(' '))
        sqlite3.register_adapter(datetime.date, lambda v: v.isoformat())
        sqlite3.register_adapter(datetime.time, lambda v: v.isoformat())
        sqlite3.register_adapter(dict, json.dumps)
        sqlite3.register_adapter(list, json.dumps)

        # Converters (SQLite -> Python)
        sqlite3.register_converter('date', convert_date)
        sqlite3.register_converter('datetime', convert_datetime)
        sqlite3.register_converter('timestamp', convert_datetime)
        sqlite3.register_converter('time', convert_time)
        sqlite3.register_converter('boolean', convert_boolean)
        sqlite3.register_converter('decimal', convert_decimal)

    def configure_connection(self, conn: Any, autocommit: bool = True) -> None:
        """Configure connection settings for SQLite.
        """
        self.register_type_adapters(conn)
        if autocommit:
            self.enable_autocommit(conn)
        else:
            self.disable_autocommit(conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = None

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = 'DEFERRED'

    def get_type_map(self) -> dict[Any, 'ColumnType']:
        """SQLite reports no type codes."""
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']
