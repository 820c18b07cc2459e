"""Column name normalization."""
import logging

from dbsimple.exceptions import InvalidColumnNameError

logger = logging.getLogger(__name__)


def to_camel_case(name: str) -> str:
    """Convert an underscore-delimited column name to camelCase.

    Runs of underscores collapse into a single word boundary and trailing
    underscores are dropped.

    >>> to_camel_case('my_column_name')
    'myColumnName'
    >>> to_camel_case('THIS_IS_A_TEST')
    'thisIsATest'
    >>> to_camel_case('test')
    'test'
    >>> to_camel_case('last__active_')
    'lastActive'
    >>> to_camel_case('_x')
    Traceback (most recent call last):
    ...
    dbsimple.exceptions.InvalidColumnNameError: Column names may not begin with underscores: '_x'
    """
    if not name:
        raise InvalidColumnNameError('Column name may not be empty')

    column_name = name.lower()

    if column_name[0] == '_':
        raise InvalidColumnNameError(f'Column names may not begin with underscores: {name!r}')

    if '_' not in column_name:
        return column_name

    first, *rest = [token for token in column_name.split('_') if token]
    return first + ''.join(token[0].upper() + token[1:] for token in rest)


def setter_name(column_name: str) -> str:
    """Conventional setter name for a normalized column name.

    >>> setter_name('lastActive')
    'setLastActive'
    """
    return 'set' + column_name[0].upper() + column_name[1:]


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
