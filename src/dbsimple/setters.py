"""
Setter discovery and the per-entity-type setter cache.

A column ``last_active`` normalizes to ``lastActive``. The setter for it is,
in order of preference:

1. a method ``setLastActive(self, value)``
2. a property ``lastActive`` with a setter
3. an annotated attribute ``lastActive`` (plain class or dataclass field)

The annotation on the parameter or attribute decides which ColumnType the
setter accepts. A missing or ``Any`` annotation accepts every column type.
When no setter accepts the declared column type, the type is widened once
(INTEGER to BIGINT, TIMESTAMP to DATE) and resolution is retried.

Resolved setters are cached per entity type under the normalized column name
and never evicted. The cache is guarded by a re-entrant lock, so one
instance may be shared by several connections.
"""
import inspect
import logging
import threading
import typing
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from dbsimple.exceptions import MalformedSetterError, SetterNotFoundError
from dbsimple.exceptions import SetterTypeMismatchError
from dbsimple.naming import setter_name
from dbsimple.types import ColumnType, annotation_name
from dbsimple.types import column_type_for_annotation, widen

logger = logging.getLogger(__name__)

_EMPTY = inspect.Parameter.empty


@dataclass(frozen=True, slots=True)
class SetterDescriptor:
    """How to write one column's value into one entity field."""
    name: str
    column_type: ColumnType
    type_name: str
    setter: Callable[[Any, Any], None]

    def invoke(self, entity: Any, value: Any) -> None:
        self.setter(entity, value)


def _entity_type(entity: Any) -> type:
    return entity if isinstance(entity, type) else type(entity)


def _function_parameter(entity_type: type, name: str, func: Callable) -> tuple[str, Any]:
    """Return the name and annotation of a setter's single value parameter.
    """
    params = [
        p for p in list(inspect.signature(func).parameters.values())[1:]
        if p.kind not in {p.VAR_POSITIONAL, p.VAR_KEYWORD}
    ]
    if len(params) != 1:
        raise MalformedSetterError(
            f'Setter {entity_type.__name__}.{name} should accept a single parameter, '
            f'found {len(params)}')

    param = params[0]
    try:
        hints = typing.get_type_hints(func, include_extras=True)
    except (NameError, TypeError):
        hints = {}
    annotation = hints.get(param.name, param.annotation)
    return param.name, None if annotation is _EMPTY else annotation


def _class_annotations(entity_type: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(entity_type, include_extras=True)
    except (NameError, TypeError):
        annotations: dict[str, Any] = {}
        for klass in reversed(entity_type.__mro__):
            annotations.update(getattr(klass, '__annotations__', {}))
        return annotations


def _find_setter(entity_type: type, column_name: str) -> tuple[str, Any, Callable[[Any, Any], None]] | None:
    """Locate the setter member for a column.

    Returns (name, annotation, setter) or None when the entity has no member
    for the column at all.
    """
    method_name = setter_name(column_name)
    member = inspect.getattr_static(entity_type, method_name, None)
    if inspect.isfunction(member):
        _, annotation = _function_parameter(entity_type, method_name, member)
        return method_name, annotation, member

    member = inspect.getattr_static(entity_type, column_name, None)
    if isinstance(member, property) and member.fset is not None:
        _, annotation = _function_parameter(entity_type, column_name, member.fset)
        return column_name, annotation, member.fset

    annotations = _class_annotations(entity_type)
    if column_name in annotations and not isinstance(member, property):
        def assign(entity: Any, value: Any, _name: str = column_name) -> None:
            setattr(entity, _name, value)
        return column_name, annotations[column_name], assign

    return None


def _lookup(entity_type: type, column_name: str,
            column_type: ColumnType) -> SetterDescriptor | None:
    """Find a setter accepting exactly this column type, or None.
    """
    found = _find_setter(entity_type, column_name)
    if found is None:
        return None

    name, annotation, setter = found
    accepted = column_type_for_annotation(annotation)
    if accepted is None or not accepted.accepts(column_type):
        return None

    declared_name = 'object' if annotation is None else annotation_name(annotation)
    if accepted is not ColumnType.OBJECT and column_type is not ColumnType.NULL \
       and declared_name not in column_type.type_names:
        raise SetterTypeMismatchError(
            f'Setter {entity_type.__name__}.{name} argument type {declared_name} '
            f'does not match the column type {column_type.label}')

    return SetterDescriptor(name=name, column_type=accepted, type_name=declared_name, setter=setter)


class SetterCache:
    """Entity type -> normalized column name -> SetterDescriptor.

    Grows monotonically; descriptors are never replaced once cached.
    Resolutions made for a NULL value of unknown type are not cached.
    """

    _instance = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._setters: dict[type, dict[str, SetterDescriptor]] = {}
        self._lock = threading.RLock()
        self.resolutions = 0

    @classmethod
    def get_instance(cls) -> 'SetterCache':
        """Get the process-wide shared cache."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get(self, entity_type: type, column_name: str) -> SetterDescriptor | None:
        with self._lock:
            return self._setters.get(entity_type, {}).get(column_name)

    def put(self, entity_type: type, column_name: str, descriptor: SetterDescriptor) -> SetterDescriptor:
        with self._lock:
            return self._setters.setdefault(entity_type, {}).setdefault(column_name, descriptor)

    def descriptors(self, entity_type: type) -> dict[str, SetterDescriptor]:
        """Snapshot of the cached setters for an entity type."""
        with self._lock:
            return dict(self._setters.get(entity_type, {}))

    def clear(self) -> None:
        with self._lock:
            self._setters.clear()
            self.resolutions = 0

    def __contains__(self, entity_type: type) -> bool:
        """Whether any setter is cached for the entity type. For introspection."""
        with self._lock:
            return entity_type in self._setters

    def __len__(self) -> int:
        """Number of entity types with cached setters. For introspection."""
        with self._lock:
            return len(self._setters)

    def resolve(self, entity: Any, column_name: str, column_type: ColumnType) -> SetterDescriptor:
        """Return the cached setter for a column, resolving it on first use.
        """
        entity_type = _entity_type(entity)
        with self._lock:
            descriptor = self.get(entity_type, column_name)
            if descriptor is not None:
                logger.debug(f'Setter cache hit for {entity_type.__name__}.{column_name}')
                return descriptor

            logger.debug(f'Setter cache miss for {entity_type.__name__}.{column_name}')
            self.resolutions += 1
            descriptor = self._resolve(entity_type, column_name, column_type)
            if column_type is ColumnType.NULL:
                # NULL of unknown type is never cached
                return descriptor
            return self.put(entity_type, column_name, descriptor)

    def _resolve(self, entity_type: type, column_name: str,
                 column_type: ColumnType) -> SetterDescriptor:
        descriptor = _lookup(entity_type, column_name, column_type)
        if descriptor is not None:
            return descriptor

        widened = widen(column_type)
        if widened is None:
            raise SetterNotFoundError(
                f'No setter for column {column_name!r} on {entity_type.__name__} '
                f'accepts {column_type.label}')

        logger.debug(f'Widening {column_type.label} to {widened.label} for {entity_type.__name__}.{column_name}')
        return self._resolve(entity_type, column_name, widened)


def resolve_setter(entity: Any, column_name: str, column_type: ColumnType,
                   cache: SetterCache | None = None) -> SetterDescriptor:
    """Resolve a setter through the given cache, or the shared one.
    """
    cache = cache if cache is not None else SetterCache.get_instance()
    return cache.resolve(entity, column_name, column_type)
