"""
Exception classes for dbsimple.

Every failure surfaces synchronously as a subclass of DatabaseError. Driver
failures are wrapped in DriverError with the original exception chained as
``__cause__``. Nothing is retried.
"""
import sqlite3

import psycopg

DRIVER_ERRORS = (
    sqlite3.Error,
    psycopg.Error,
    )


class DatabaseError(Exception):
    """Base class for all dbsimple errors.
    """


class DriverError(DatabaseError):
    """Failure reported by the underlying database driver.
    """


class InvalidColumnNameError(DatabaseError, ValueError):
    """Column name cannot be normalized to an attribute name.
    """


class UnsupportedArgumentTypeError(DatabaseError, TypeError):
    """Query argument has no bind operation under strict binding.
    """


class TooManyRowsError(DatabaseError):
    """A single-row fetch encountered a second row.
    """


class NoRowsError(DatabaseError):
    """Row access on a cursor that is not positioned on a row.
    """


class MappingError(DatabaseError):
    """Error writing a row into an entity.

    The entity may be partially populated: columns processed before the
    failing one keep their values.
    """


class SetterResolutionError(MappingError):
    """Base class for setter lookup failures.
    """


class SetterNotFoundError(SetterResolutionError):
    """No setter accepts the column under any widening.
    """


class MalformedSetterError(SetterResolutionError):
    """Setter does not take exactly one argument.
    """


class SetterTypeMismatchError(SetterResolutionError):
    """Setter annotation name does not match the column type.
    """