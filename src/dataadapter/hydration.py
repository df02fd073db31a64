"""
Row hydration into scalar values and record instances.

Scalar targets read the first cell of a row. Record targets are created
with their defaults and receive every column whose name exactly matches
one of their writable fields; other columns are ignored.

Usage:
    hydrate_row = row_hydrator(User)
    users = [hydrate_row(row) for row in cursor]
"""
import dataclasses
import functools
import inspect
import logging
import sys
import threading
import typing
from collections.abc import Callable
from typing import Any, NamedTuple

import cachetools

from dataadapter.cursor import RowCursor
from dataadapter.types import coerce, is_scalar_type, unwrap_type, zero_value

__all__ = [
    'FieldAccessor',
    'writable_fields',
    'clear_field_cache',
    'hydrate',
    'hydrate_scalar',
    'row_hydrator',
]

logger = logging.getLogger(__name__)

FIELD_CACHE_SIZE = 256

_field_cache: cachetools.LRUCache = cachetools.LRUCache(maxsize=FIELD_CACHE_SIZE)
_field_cache_lock = threading.RLock()


class FieldAccessor(NamedTuple):
    """A writable field of a record type and the type its values coerce to."""
    name: str
    type: Any

    def assign(self, instance: Any, value: Any) -> None:
        setattr(instance, self.name, coerce(self.type, value))


def _is_public(name: str) -> bool:
    return not name.startswith('_')


def _resolve_hint(hint: Any, klass: type) -> Any:
    """Evaluate one string annotation in the namespace of its class.

    Annotations that cannot be resolved are treated as Any.
    """
    if not isinstance(hint, str):
        return hint
    module = sys.modules.get(klass.__module__)
    globalns = vars(module) if module is not None else {}
    try:
        return eval(hint, globalns, dict(vars(klass)))
    except Exception as err:
        logger.debug(f'Unresolved annotation {hint!r} on {klass.__qualname__}: {err}')
        return Any


def _type_hints(cls: type) -> dict[str, Any]:
    """Resolved annotations of a class and its bases.

    When the annotations cannot be resolved together, each is resolved on
    its own so one missing name only untypes its own field.
    """
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError) as err:
        logger.debug(f'Unresolved annotations on {cls.__qualname__}: {err}')
    hints = {}
    for klass in reversed(cls.__mro__):
        for name, hint in inspect.get_annotations(klass).items():
            hints[name] = _resolve_hint(hint, klass)
    return hints


def _is_classvar(hint: Any) -> bool:
    return hint is typing.ClassVar or typing.get_origin(hint) is typing.ClassVar


def _property_type(prop: property) -> Any:
    """Type of a property from its getter's return or setter's value annotation."""
    try:
        getter = typing.get_type_hints(prop.fget) if prop.fget else {}
        setter = typing.get_type_hints(prop.fset)
    except (NameError, TypeError):
        return Any
    if 'return' in getter:
        return getter['return']
    values = [hint for name, hint in setter.items() if name != 'return']
    return values[-1] if values else Any


def _is_frozen(cls: type) -> bool:
    return dataclasses.is_dataclass(cls) and cls.__dataclass_params__.frozen


def _instantiate(cls: type) -> Any:
    """Create a default instance of a record type.

    Dataclasses with required fields are built without calling __init__;
    each field gets its default, its default factory's value, or the zero
    value of its type.
    """
    try:
        return cls()
    except TypeError:
        if not dataclasses.is_dataclass(cls):
            raise
        logger.debug(f'{cls.__qualname__} requires arguments, filling field defaults')

    hints = _type_hints(cls)
    instance = cls.__new__(cls)
    for field in dataclasses.fields(cls):
        if field.default is not dataclasses.MISSING:
            value = field.default
        elif field.default_factory is not dataclasses.MISSING:
            value = field.default_factory()
        else:
            value = zero_value(hints.get(field.name, Any))
        object.__setattr__(instance, field.name, value)
    return instance


@cachetools.cached(cache=_field_cache, lock=_field_cache_lock)
def writable_fields(cls: type) -> dict[str, FieldAccessor]:
    """Map field names to the public writable fields of a record type.

    A field is writable when it is:
    - a public annotated attribute that is not a ClassVar or InitVar
    - a public property with a setter
    - a public non-callable attribute set on a default instance, typed by
      its default value (Any when the default is None)

    Frozen dataclasses have no writable fields.
    """
    if _is_frozen(cls):
        return {}

    properties = dict(inspect.getmembers(cls, lambda m: isinstance(m, property)))
    accessors: dict[str, FieldAccessor] = {}

    for name, hint in _type_hints(cls).items():
        if not _is_public(name) or name in properties:
            continue
        if _is_classvar(hint) or isinstance(hint, dataclasses.InitVar):
            continue
        accessors[name] = FieldAccessor(name, hint)

    for name, prop in properties.items():
        if _is_public(name) and prop.fset is not None:
            accessors[name] = FieldAccessor(name, _property_type(prop))

    for name, value in getattr(_instantiate(cls), '__dict__', {}).items():
        if _is_public(name) and name not in accessors and not callable(value):
            accessors[name] = FieldAccessor(name, Any if value is None else type(value))

    logger.debug(f'Writable fields of {cls.__qualname__}: {list(accessors)}')
    return accessors


def clear_field_cache() -> None:
    """Forget every cached field table."""
    with _field_cache_lock:
        _field_cache.clear()


def hydrate(cls: type, cursor: RowCursor) -> Any:
    """Populate a new instance of a record type from the current row.

    Columns are matched to fields by exact name. When names repeat, the
    later column wins. Values that do not convert leave the field at the
    zero value of its type. Optional and Annotated targets hydrate as the
    class they wrap.
    """
    cls, _ = unwrap_type(cls)
    instance = _instantiate(cls)
    fields = writable_fields(cls)
    for i in range(cursor.field_count):
        accessor = fields.get(cursor.get_name(i))
        if accessor is not None:
            accessor.assign(instance, cursor.get_value(i))
    return instance


def hydrate_scalar(tp: Any, cursor: RowCursor) -> Any:
    """Convert the first cell of the current row."""
    return coerce(tp, cursor.get_value(0))


def row_hydrator(tp: Any) -> Callable[[RowCursor], Any]:
    """Pick the hydration path for a target type once per result set."""
    if is_scalar_type(tp):
        return functools.partial(hydrate_scalar, tp)
    cls, _ = unwrap_type(tp)
    return functools.partial(hydrate, cls)
