"""
Type Classifier

Stateless predicates that classify a class or typing annotation as basic,
numeric, boolean, nullable, collection, dictionary, tuple or delegate, and
extract a collection's element type.

No caching happens here: callers cache the aggregate ``TypeFlags`` inside a
member descriptor.
"""

import array
import collections.abc as cabc
import functools
import types
import typing
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any

NONE_TYPE = type(None)

INT_NUMBER_TYPES = frozenset({int})
FLOAT_NUMBER_TYPES = frozenset({float, Decimal})
NUMBER_TYPES = INT_NUMBER_TYPES | FLOAT_NUMBER_TYPES | frozenset({complex, Fraction})
BOOL_TYPES = frozenset({bool})
DATE_TYPES = frozenset({datetime, date, time, timedelta})
TEXT_TYPES = frozenset({str, bytes, bytearray})

# Scalars treated as atomic values rather than traversed further
BASIC_TYPES = NUMBER_TYPES | BOOL_TYPES | DATE_TYPES | TEXT_TYPES | frozenset({uuid.UUID})

# Scalars that never hold ``None`` unless wrapped in Optional
VALUE_TYPES = NUMBER_TYPES | BOOL_TYPES | DATE_TYPES | frozenset({uuid.UUID})

DELEGATE_TYPES = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.LambdaType,
    functools.partial,
)

ZERO_VALUES: dict[type, Any] = {
    int: 0,
    float: 0.0,
    complex: 0j,
    Decimal: Decimal(0),
    Fraction: Fraction(0),
    bool: False,
    datetime: datetime.min,
    date: date.min,
    time: time(),
    timedelta: timedelta(0),
    uuid.UUID: uuid.UUID(int=0),
}


def _is_union(t: Any) -> bool:
    origin = typing.get_origin(t)
    return origin is typing.Union or origin is types.UnionType


def unwrap_annotated(t: Any) -> Any:
    """``Annotated[X, ...]`` -> ``X``."""
    while typing.get_origin(t) is typing.Annotated:
        t = typing.get_args(t)[0]
    return t


def unwrap_optional(t: Any) -> Any:
    """
    ``Optional[X]`` / ``X | None`` -> ``X``.

    Unions of several non-None types are returned unchanged.
    """
    t = unwrap_annotated(t)
    if _is_union(t):
        args = [a for a in typing.get_args(t) if a is not NONE_TYPE]
        if len(args) == 1:
            return unwrap_annotated(args[0])
    return t


def origin_class(t: Any) -> type | None:
    """The runtime class behind a class or generic alias (``list[int]`` -> ``list``)."""
    t = unwrap_optional(t)
    if isinstance(t, type):
        return t
    origin = typing.get_origin(t)
    if isinstance(origin, type):
        return origin
    return None


def _is_subclass(t: type | None, base: type | tuple) -> bool:
    try:
        return t is not None and issubclass(t, base)
    except TypeError:
        return False


def is_enum(t: Any) -> bool:
    return _is_subclass(origin_class(t), Enum)


def is_basic(t: Any) -> bool:
    """Primitive scalar, string, date/time, UUID or enum."""
    if t is None:
        return False
    cls = origin_class(t)
    if cls is None:
        return False
    return _is_subclass(cls, tuple(BASIC_TYPES)) or _is_subclass(cls, Enum)


def is_numeric(t: Any, include_float: bool = True) -> bool:
    cls = origin_class(t)
    if cls is None or _is_subclass(cls, bool) or _is_subclass(cls, Enum):
        return False
    if include_float:
        return _is_subclass(cls, tuple(NUMBER_TYPES))
    return _is_subclass(cls, tuple(INT_NUMBER_TYPES))


def is_float(t: Any) -> bool:
    return _is_subclass(origin_class(t), tuple(FLOAT_NUMBER_TYPES))


def is_boolean(t: Any) -> bool:
    return _is_subclass(origin_class(t), bool)


def is_date(t: Any) -> bool:
    return _is_subclass(origin_class(t), tuple(DATE_TYPES))


def is_value_type(t: Any) -> bool:
    """Scalars that cannot be ``None`` unless declared Optional."""
    t = unwrap_annotated(t)
    if _is_union(t):
        return False
    cls = origin_class(t)
    return cls is not None and (
        _is_subclass(cls, tuple(VALUE_TYPES)) or _is_subclass(cls, Enum)
    )


def is_nullable(t: Any) -> bool:
    """A reference type, ``Any``/``object``, or a value type wrapped as Optional."""
    t = unwrap_annotated(t)
    if t is None or t is NONE_TYPE or t is Any or t is object:
        return True
    if _is_union(t):
        return NONE_TYPE in typing.get_args(t) or not all(is_value_type(a) for a in typing.get_args(t))
    return not is_value_type(t)


def is_dictionary(t: Any) -> bool:
    return _is_subclass(origin_class(t), cabc.Mapping)


def is_tuple(t: Any) -> bool:
    return _is_subclass(origin_class(t), tuple)


def _is_fixed_tuple(t: Any) -> bool:
    """``tuple[int, str]`` or a NamedTuple: positional record, not a sequence."""
    cls = origin_class(t)
    if not _is_subclass(cls, tuple):
        return False
    if hasattr(cls, "_fields"):
        return True
    args = typing.get_args(unwrap_optional(t))
    return bool(args) and not (len(args) == 2 and args[1] is Ellipsis)


def is_collection(t: Any) -> bool:
    """
    Iterable container of elements.

    Strings are not collections, mappings are reported by ``is_dictionary``
    instead, and fixed-shape tuples are records.
    """
    cls = origin_class(t)
    if cls is None or cls in TEXT_TYPES or _is_subclass(cls, tuple(TEXT_TYPES)):
        return False
    if _is_subclass(cls, cabc.Mapping) or _is_fixed_tuple(t):
        return False
    if _is_subclass(cls, array.array):
        return True
    # Iterable alone is too weak: pydantic models iterate over their fields
    return _is_subclass(cls, cabc.Collection) or cls is cabc.Iterable


def is_delegate(t: Any) -> bool:
    t = unwrap_optional(t)
    if typing.get_origin(t) is cabc.Callable or t is typing.Callable or t is cabc.Callable:
        return True
    return _is_subclass(origin_class(t), DELEGATE_TYPES)


def _element_from_args(t: Any, cls: type) -> Any | None:
    args = typing.get_args(t)
    if not args:
        return None
    if _is_subclass(cls, cabc.Mapping):
        return args[1] if len(args) == 2 else object
    if _is_subclass(cls, tuple):
        if len(args) == 2 and args[1] is Ellipsis:
            return args[0]
        return None
    return args[0]


def element_type(t: Any) -> Any | None:
    """
    Declared element type of a collection, value type of a mapping, or
    ``None`` when ``t`` is neither.

    ``list[int]`` -> ``int``; bare ``list`` -> ``object``; a class deriving
    from ``list[str]`` -> ``str``; ``dict[str, int]`` -> ``int``.
    """
    if not (is_collection(t) or is_dictionary(t)):
        return None
    t = unwrap_optional(t)
    cls = origin_class(t)
    found = _element_from_args(t, cls)
    if found is not None:
        return found
    for klass in cls.__mro__:
        for base in getattr(klass, "__orig_bases__", ()):
            base_cls = typing.get_origin(base)
            if isinstance(base_cls, type) and (
                _is_subclass(base_cls, cabc.Iterable) or _is_subclass(base_cls, cabc.Mapping)
            ):
                found = _element_from_args(base, base_cls)
                if found is not None and not isinstance(found, typing.TypeVar):
                    return found
    return object


def default_value(t: Any) -> Any:
    """Zero value of a value type; ``None`` for nullable types."""
    if is_nullable(t):
        return None
    cls = origin_class(t)
    if _is_subclass(cls, Enum):
        members = list(cls)
        if not members:
            return None
        for member in members:
            if member.value == 0:
                return member
        return members[0]
    for base in cls.__mro__:
        if base in ZERO_VALUES:
            return ZERO_VALUES[base]
    return None


def type_name(t: Any) -> str:
    """Readable name of a class or annotation."""
    if isinstance(t, type):
        return t.__name__
    return repr(t).replace("typing.", "")


@dataclass(frozen=True)
class TypeFlags:
    """Aggregate classification of one type, computed once per descriptor."""

    is_basic: bool
    is_numeric: bool
    is_float: bool
    is_boolean: bool
    is_nullable: bool
    is_collection: bool
    is_dictionary: bool
    is_tuple: bool
    is_delegate: bool
    is_enum: bool
    is_object: bool
    element_type: Any
    is_basic_collection: bool


def classify(t: Any) -> TypeFlags:
    """Classify ``t`` in one pass."""
    collection = is_collection(t)
    dictionary = is_dictionary(t)
    element = element_type(t) if collection or dictionary else None
    return TypeFlags(
        is_basic=is_basic(t),
        is_numeric=is_numeric(t),
        is_float=is_float(t),
        is_boolean=is_boolean(t),
        is_nullable=is_nullable(t),
        is_collection=collection,
        is_dictionary=dictionary,
        is_tuple=is_tuple(t),
        is_delegate=is_delegate(t),
        is_enum=is_enum(t),
        is_object=unwrap_annotated(t) is object or unwrap_annotated(t) is Any,
        element_type=element,
        is_basic_collection=collection and element is not None and is_basic(element),
    )
