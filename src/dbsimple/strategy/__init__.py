"""
Driver strategies, looked up by dialect name.

Importing this package registers the sqlite and postgresql strategies.
Strategy instances are stateless and shared per dialect.
"""
from functools import lru_cache

from dbsimple.strategy.base import _STRATEGY_REGISTRY
from dbsimple.strategy.base import DatabaseStrategy as DatabaseStrategy
from dbsimple.strategy.base import register_strategy as register_strategy
from dbsimple.strategy.postgres import PostgresStrategy as PostgresStrategy
from dbsimple.strategy.sqlite import SQLiteStrategy as SQLiteStrategy


def get_available_dialects() -> list[str]:
    return sorted(_STRATEGY_REGISTRY)


def is_supported_dialect(dialect: str) -> bool:
    return dialect in _STRATEGY_REGISTRY


def get_strategy_class(dialect: str) -> type[DatabaseStrategy]:
    """Registered strategy class for a dialect.

    Raises ValueError naming the available dialects for an unknown one.
    """
    try:
        return _STRATEGY_REGISTRY[dialect]
    except KeyError:
        raise ValueError(f'Unsupported dialect: {dialect}. '
                         f'Available: {get_available_dialects()}') from None


@lru_cache(maxsize=None)
def get_strategy(dialect: str) -> DatabaseStrategy:
    """Shared strategy instance for a dialect name."""
    return get_strategy_class(dialect)()
