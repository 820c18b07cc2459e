"""
Row to entity and row to dict mapping.

Entity mapping walks the columns of a row in ordinal order. Each column label
is normalized to camelCase, its setter is resolved (through the setter
cache), the value gets the automatic conversion for the setter's type and
the setter is invoked. When two columns normalize to the same name, the
later column wins.

A failure on any column raises MappingError and leaves the entity partially
populated: columns processed before the failing one keep their values.
"""
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from dbsimple.exceptions import MappingError
from dbsimple.naming import to_camel_case
from dbsimple.setters import SetterCache
from dbsimple.types import convert_for_setter

from libb import attrdict

if TYPE_CHECKING:
    from dbsimple.cursor import Row

logger = logging.getLogger(__name__)

T = TypeVar('T')


def instantiate(entity_type: type[T]) -> T:
    """Create an entity through its no-argument constructor.
    """
    try:
        return entity_type()
    except Exception as err:
        raise MappingError(f'Cannot instantiate {entity_type.__name__}: {err}') from err


def map_row(entity: T, row: 'Row', cache: SetterCache | None = None) -> T:
    """Write every column of a row into an entity through its setters.
    """
    cache = cache if cache is not None else SetterCache.get_instance()

    for index in range(1, row.column_count + 1):
        label = row.column_name(index)
        try:
            column = to_camel_case(label)
            descriptor = cache.resolve(entity, column, row.column_type(index))
            descriptor.invoke(entity, convert_for_setter(row.value(index), descriptor.column_type))
        except MappingError:
            logger.error(f'Failed to map column {label!r} into {type(entity).__name__}')
            raise
        except Exception as err:
            logger.error(f'Failed to map column {label!r} into {type(entity).__name__}')
            raise MappingError(f'Cannot map column {label!r} into {type(entity).__name__}: {err}') from err

    return entity


def map_row_to_dict(row: 'Row') -> attrdict:
    """Row as an attrdict keyed by lower-cased column label.

    Labels are only lower-cased, not camelCased. Duplicate labels keep the
    last value.
    """
    return attrdict({row.column_name(i).lower(): row.value(i)
                     for i in range(1, row.column_count + 1)})
