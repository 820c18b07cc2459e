"""
Base strategy interface for driver-specific behavior.

A strategy encapsulates everything that differs between the supported
drivers: how a connection URL is built, how a fresh connection is configured,
which placeholder style the driver expects, how a prepared statement is
executed and which driver type codes map to which ColumnType. The rest of
the package works with any driver through this interface.
"""
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from dbsimple.sql import standardize_placeholders

if TYPE_CHECKING:
    from dbsimple.options import DatabaseOptions
    from dbsimple.types import ColumnType

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for driver-specific operations.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'postgresql', 'sqlite')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for this dialect.

        Args:
            options: DatabaseOptions containing connection parameters
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.
        """

    @abstractmethod
    def register_type_adapters(self, connection: Any) -> None:
        """Register dialect-specific type adapters and converters.

        Args:
            connection: Raw DBAPI connection
        """

    @abstractmethod
    def configure_connection(self, conn: Any, autocommit: bool = True) -> None:
        """Configure a freshly opened raw DBAPI connection.
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on a raw DBAPI connection.
        """

    @abstractmethod
    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode on a raw DBAPI connection.
        """

    @abstractmethod
    def get_type_map(self) -> dict[Any, 'ColumnType']:
        """Return mapping of driver type codes to ColumnType.

        An empty mapping means the driver reports no column types and the
        declared type is inferred from each value.
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def standardize_sql(self, sql: str) -> str:
        """Convert placeholders to this dialect's style.
        """
        return standardize_placeholders(sql, dialect=self.dialect_name)

    def execute(self, cursor: Any, operation: str, parameters: Sequence[Any],
                prepare: bool = False) -> None:
        """Execute an operation on a raw DBAPI cursor.

        Strategies whose driver supports server-side prepared statements
        honor ``prepare``; the default ignores it.
        """
        cursor.execute(operation, parameters)
