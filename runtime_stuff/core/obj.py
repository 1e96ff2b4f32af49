"""
Object Facade

User-facing operations built on member descriptors: read and write values
by (multi-segment) name, construct instances, invoke methods, convert values
and copy state between objects.

Paths are dotted or bracketed strings (``"orders[0].customer.name"``) or
sequences of segments. Separators are ``. \\ / [ ] ( )``.
"""

import copy as copy_module
import functools
import inspect
import re
import typing
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable

from runtime_stuff.core.converter import (
    change_type,
    interface_implementation,
    is_missing,
    try_change_type,
)
from runtime_stuff.core.errors import ConstructionError, ConversionError, MemberNotFoundError, NotSupportedError
from runtime_stuff.core.logger import TraceEvent, get_logger
from runtime_stuff.core.members.accessors import get_default_constructor
from runtime_stuff.core.members.classifier import (
    default_value,
    element_type,
    is_basic,
    is_collection,
    is_delegate,
    is_enum,
    is_nullable,
    is_numeric,
    is_value_type,
    origin_class,
    type_name,
    unwrap_annotated,
    unwrap_optional,
)
from runtime_stuff.core.members.descriptor import MemberDescriptor, describe
from runtime_stuff.core.members.models import NameKind
from runtime_stuff.core.members.resolver import is_method, is_property_or_field

PATH_SEPARATORS = re.compile(r"[.\\/\[\]()]")
INDEX_PATTERN = re.compile(r"^-?\d+$")


# -------------------------------------------------------------------------
# Paths
# -------------------------------------------------------------------------

@functools.lru_cache(maxsize=4096)
def _split_text(path: str) -> tuple[str, ...]:
    return tuple(s.strip() for s in PATH_SEPARATORS.split(path) if s.strip())


def split_path(path: str | Iterable[Any]) -> tuple[Any, ...]:
    """``"a.b[0]"`` -> ``("a", "b", "0")``; sequences are returned as tuples."""
    if path is None:
        raise TypeError("A member path is required")
    if isinstance(path, str):
        return _split_text(path)
    return tuple(path)


def _is_type_like(value: Any) -> bool:
    return isinstance(value, type) or typing.get_origin(value) is not None


def _type_of(value: Any) -> Any:
    return value if isinstance(value, type) else type(value)


def _is_index(segment: Any) -> bool:
    if isinstance(segment, bool):
        return False
    return isinstance(segment, int) or (isinstance(segment, str) and bool(INDEX_PATTERN.match(segment)))


def _is_projectable(value: Any) -> bool:
    return not isinstance(value, (str, bytes, bytearray, Mapping)) and is_collection(type(value))


def _find_member(target: Any, segment: str) -> MemberDescriptor | None:
    return describe(_type_of(target)).get_member(str(segment), NameKind.ANY, is_property_or_field)


def _mapping_key(mapping: Mapping, segment: Any) -> Any:
    if segment in mapping:
        return segment
    if _is_index(segment) and int(segment) in mapping:
        return int(segment)
    if isinstance(segment, str):
        lowered = segment.lower()
        for key in mapping:
            if isinstance(key, str) and key.lower() == lowered:
                return key
    raise KeyError(segment)


# -------------------------------------------------------------------------
# Get / Set
# -------------------------------------------------------------------------

def _get_segment(current: Any, segment: Any, path: Any) -> Any:
    if isinstance(current, Mapping):
        try:
            return current[_mapping_key(current, segment)]
        except KeyError:
            raise MemberNotFoundError(type(current), str(segment), str(path)) from None

    if _is_index(segment) and isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        try:
            return current[int(segment)]
        except IndexError:
            raise MemberNotFoundError(type(current), str(segment), str(path)) from None

    member = _find_member(current, segment)
    if member is not None:
        return member.get_value(current)

    if _is_projectable(current):
        return [
            None if item is None else _get_segment(item, segment, path)
            for item in current
        ]

    raise MemberNotFoundError(_type_of(current), str(segment), str(path))


def get_value(instance: Any, path: str | Sequence[Any], convert_to: Any = None) -> Any:
    """
    Read a (possibly nested) member value.

    Args:
        instance: Object to read from (None yields None)
        path: Member name, dotted path or sequence of segments
        convert_to: Optional type the result is converted to

    Returns:
        The value, or None when an intermediate value is None

    Raises:
        MemberNotFoundError: If a segment does not resolve
    """
    if instance is None:
        return None
    segments = split_path(path)
    if not segments:
        raise ValueError("Empty member path")

    current = instance
    for segment in segments:
        if current is None:
            return None
        current = _get_segment(current, segment, path)

    if convert_to is not None:
        return change_type(current, convert_to)
    return current


def _set_segment(target: Any, segment: Any, value: Any, path: Any) -> None:
    if isinstance(target, MutableMapping):
        try:
            key = _mapping_key(target, segment)
        except KeyError:
            key = segment
        target[key] = value
        return

    if _is_index(segment) and isinstance(target, MutableSequence):
        try:
            target[int(segment)] = value
        except IndexError:
            raise MemberNotFoundError(type(target), str(segment), str(path)) from None
        return

    member = _find_member(target, segment)
    if member is not None:
        if not member.can_write:
            raise NotSupportedError(f"Member '{member.name}' of {type_name(_type_of(target))} is read-only")
        member.set_value(target, value)
        return

    if _is_projectable(target):
        for item in target:
            if item is not None:
                _set_segment(item, segment, value, path)
        return

    raise MemberNotFoundError(_type_of(target), str(segment), str(path))


def set_value(
    instance: Any,
    path: str | Sequence[Any],
    value: Any,
    create_missing: bool = False,
) -> bool:
    """
    Write a (possibly nested) member value, converting it to the member's type.

    Args:
        instance: Object to write to
        path: Member name, dotted path or sequence of segments
        value: New value
        create_missing: Instantiate None intermediates with ``new`` instead of
            giving up

    Returns:
        True when the value was written, False when an intermediate was None

    Raises:
        MemberNotFoundError: If a segment does not resolve
        NotSupportedError: If the final member is read-only
    """
    if instance is None:
        return False
    segments = split_path(path)
    if not segments:
        raise ValueError("Empty member path")

    parent = instance
    for segment in segments[:-1]:
        child = _get_segment(parent, segment, path)
        if child is None:
            if not create_missing:
                return False
            member = _find_member(parent, segment)
            if member is None:
                return False
            child = new(member.value_type)
            _set_segment(parent, segment, child, path)
        parent = child

    _set_segment(parent, segments[-1], value, path)
    return True


def get_member(instance_or_type: Any, path: str | Sequence[Any]) -> MemberDescriptor | None:
    """
    Resolve a path at type level, stepping through collection element types.

    ``get_member(Order, "lines[0].product.name")`` resolves ``name`` on the
    type of ``product`` declared by the element type of ``Order.lines``.
    Index segments are accepted after collection members and skipped.
    """
    if instance_or_type is None:
        raise TypeError("An instance or type is required")
    current_type = instance_or_type if _is_type_like(instance_or_type) else type(instance_or_type)
    segments = split_path(path)

    member: MemberDescriptor | None = None
    for segment in segments:
        if member is not None:
            container = member.is_collection or member.is_dictionary
            if _is_index(segment) and container:
                continue
            current_type = member.element_type if container and member.element_type is not None else member.value_type
        elif _is_index(segment):
            type_desc = describe(current_type)
            if not (type_desc.is_collection or type_desc.is_dictionary) or type_desc.element_type is None:
                return None
            current_type = type_desc.element_type
            continue
        member = describe(unwrap_optional(current_type)).get_member(str(segment))
        if member is None:
            return None
    return member


def get_values(instance: Any, *names: str) -> list[Any]:
    """Values of ``names`` (all public properties when none are given)."""
    if instance is None:
        return []
    if not names:
        names = tuple(p.name for p in describe(type(instance)).public_properties)
    return [get_value(instance, name) for name in names]


def get_members_values(
    instance: Any,
    predicate: Callable[[MemberDescriptor], bool] | None = None,
) -> dict[str, Any]:
    """Name -> value for readable properties and fields accepted by ``predicate``."""
    if instance is None:
        return {}
    type_desc = describe(type(instance))
    members = type_desc.properties + type_desc.fields
    if predicate is None:
        predicate = lambda m: m.is_public
    return {
        m.name: m.get_value(instance)
        for m in members
        if m.can_read and predicate(m)
    }


# -------------------------------------------------------------------------
# Construction
# -------------------------------------------------------------------------

def _call_with(cls: type, params: list[inspect.Parameter], values: list[Any]) -> Any:
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    for param, value in zip(params, values):
        if param.kind == param.POSITIONAL_ONLY:
            args.append(value)
        else:
            kwargs[param.name] = value
    return cls(*args, **kwargs)


def _matches(value: Any, annotation: Any) -> bool:
    if annotation is inspect.Parameter.empty or annotation is Any:
        return True
    if isinstance(annotation, str):
        return True
    if value is None:
        return is_nullable(annotation)
    target = origin_class(annotation)
    return target is None or isinstance(value, target)


def _construct(cls: type, args: tuple) -> Any:
    try:
        signature = inspect.signature(cls)
    except (ValueError, TypeError):
        try:
            return cls(*args)
        except (TypeError, ValueError) as e:
            raise ConstructionError(cls, tuple(type(a) for a in args)) from e

    try:
        hints = typing.get_type_hints(cls.__init__) if "__init__" in cls.__dict__ else {}
    except (NameError, TypeError):
        hints = {}
    params = [
        p for p in signature.parameters.values()
        if p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
    ]
    required = [p for p in params if p.default is p.empty]
    variadic = any(p.kind == p.VAR_POSITIONAL for p in signature.parameters.values())

    def annotation(p: inspect.Parameter) -> Any:
        return hints.get(p.name, p.annotation)

    errors: list[Exception] = []

    # Exact arity and matching types
    if len(args) == len(params) and all(_matches(a, annotation(p)) for a, p in zip(args, params)):
        try:
            return _call_with(cls, params, list(args))
        except (TypeError, ValueError) as e:
            errors.append(e)

    # Required parameters supplied, the rest left to the constructor's defaults
    if len(args) == len(required) < len(params):
        try:
            return _call_with(cls, required, list(args))
        except (TypeError, ValueError) as e:
            errors.append(e)

    # Same arity with converted arguments
    if len(required) <= len(args) <= len(params):
        ok = True
        converted: list[Any] = []
        for value, param in zip(args, params):
            hint = annotation(param)
            if hint is inspect.Parameter.empty or isinstance(hint, str):
                converted.append(value)
                continue
            success, result = try_change_type(value, hint)
            if not success:
                ok = False
                break
            converted.append(result)
        if ok:
            try:
                return _call_with(cls, params[:len(converted)], converted)
            except (TypeError, ValueError) as e:
                errors.append(e)

    if variadic:
        try:
            return cls(*args)
        except (TypeError, ValueError) as e:
            errors.append(e)

    error = ConstructionError(cls, tuple(type(a) for a in args))
    if errors:
        raise error from errors[-1]
    raise error


def new(t: Any, *args: Any) -> Any:
    """
    Create an instance of ``t``.

    - no arguments: the zero-argument constructor
    - callables: None
    - abstract collection types: the configured implementation
    - ``list[T]`` with one int: a list of that size filled with T's default
    - enums: the first argument of that enum, else the zero member
    - str: ""
    - otherwise the constructor whose parameters best fit the arguments;
      value types fall back to their zero value

    Raises:
        ConstructionError: If no constructor fits
    """
    if t is None:
        raise TypeError("A type is required")
    base = unwrap_optional(unwrap_annotated(t))
    cls = origin_class(base)

    if not args and cls is not None:
        constructor = get_default_constructor(cls)
        if constructor:
            return constructor()

    if is_delegate(base):
        return None

    if cls is not None and getattr(cls, "__abstractmethods__", None):
        implementation = interface_implementation(cls)
        if implementation is not None:
            type_args = typing.get_args(base)
            return new(implementation[type_args] if type_args else implementation, *args)

    if cls is not None and is_collection(base) and issubclass(cls, (list, tuple)):
        item_type = element_type(base) or object
        if len(args) == 1 and isinstance(args[0], int) and not isinstance(args[0], bool):
            return cls(default_value(item_type) for _ in range(args[0]))
        return change_type(list(args), base)

    if is_enum(base):
        for arg in args:
            if isinstance(arg, cls):
                return arg
        return default_value(base)

    if cls is str and not args:
        return ""

    if cls is not None:
        try:
            return _construct(cls, args)
        except ConstructionError:
            if is_value_type(base):
                return default_value(base)
            get_logger().warning(
                TraceEvent.CONSTRUCTION_FAILED,
                type_name(t),
                ", ".join(type(a).__name__ for a in args),
            )
            raise

    if is_value_type(base):
        return default_value(base)
    get_logger().warning(TraceEvent.CONSTRUCTION_FAILED, type_name(t))
    raise ConstructionError(t, tuple(type(a) for a in args))


# -------------------------------------------------------------------------
# Methods
# -------------------------------------------------------------------------

def call(instance: Any, method: str, *args: Any, **kwargs: Any) -> Any:
    """
    Invoke a method by name (case-insensitive).

    Returns:
        The method's result, or None when ``instance`` is None

    Raises:
        MemberNotFoundError: If the type has no such method
    """
    if instance is None:
        return None
    type_desc = describe(_type_of(instance))
    member = type_desc.get_member(method, NameKind.NAME, is_method)
    if member is None:
        raise MemberNotFoundError(_type_of(instance), method)
    return member.invoke(instance, *args, **kwargs)


# -------------------------------------------------------------------------
# Copy / Merge
# -------------------------------------------------------------------------

def _cast(value: Any, target_type: Any, deep: bool) -> Any:
    if value is None:
        return None
    if deep and not is_basic(type(value)) and not isinstance(value, type):
        if isinstance(value, (list, tuple, set, frozenset, dict)):
            return change_type(copy_module.deepcopy(value), target_type)
        destination_type = target_type if origin_class(target_type) not in (None, object) else type(value)
        try:
            destination = new(destination_type)
        except ConstructionError:
            return copy_module.deepcopy(value)
        copy(value, destination, deep=True)
        return destination
    try:
        return change_type(value, target_type)
    except ConversionError:
        destination = new(target_type)
        copy(value, destination, deep=deep)
        return destination


def copy(
    source: Any,
    target: Any,
    deep: bool = False,
    skip_none: bool = True,
    only_empty: bool = False,
) -> Any:
    """
    Copy matching member values from ``source`` into ``target``.

    Members are matched by name, case-insensitively. Lists are appended to,
    mappings are updated.

    Args:
        source: Object, mapping or list to copy from
        target: Object, mapping or list to copy into
        deep: Create new instances for nested objects instead of sharing them
        skip_none: Do not overwrite target values with None
        only_empty: Only write members whose current target value is empty

    Returns:
        ``target``
    """
    if source is None or target is None:
        return target
    if is_value_type(type(source)) and is_value_type(type(target)):
        return target

    if isinstance(target, MutableSequence) and isinstance(source, Iterable) and not isinstance(source, (str, bytes, Mapping)):
        item_type = element_type(type(target)) or object
        item_class = origin_class(item_type)
        for item in source:
            if deep or (item_class not in (None, object) and not isinstance(item, item_class)):
                item = _cast(item, item_type, deep)
            target.append(item)
        return target

    if isinstance(target, MutableMapping):
        items = source.items() if isinstance(source, Mapping) else get_members_values(source).items()
        for key, value in items:
            if value is None and skip_none:
                continue
            if only_empty and not is_missing(target.get(key)):
                continue
            target[key] = copy_module.deepcopy(value) if deep else value
        return target

    target_desc = describe(type(target))
    targets = {
        m.name.lower(): m
        for m in target_desc.properties + target_desc.fields
        if m.is_public and not m.is_static
    }

    if isinstance(source, Mapping):
        values = {str(k): v for k, v in source.items()}
    else:
        values = get_members_values(source)

    for name, value in values.items():
        member = targets.get(name.lower())
        if member is None or not member.can_write:
            continue
        if is_missing(value) and skip_none:
            continue
        if only_empty and member.can_read and not is_missing(member.get_value(target)):
            continue
        member.set_value(target, _cast(value, member.value_type, deep))
    return target


def merge(source: Any, target: Any) -> Any:
    """Fill the empty members of ``target`` from ``source``."""
    return copy(source, target, deep=False, skip_none=False, only_empty=True)


# -------------------------------------------------------------------------
# Arithmetic
# -------------------------------------------------------------------------

def increase(value: Any, step: int = 1) -> Any:
    """
    ``value + step`` keeping the value's type; enums step to the member whose
    value is ``step`` further on.

    Raises:
        TypeError: If value is None
        NotSupportedError: If the type is not numeric or an enum
    """
    if value is None:
        raise TypeError("Cannot increase None")
    value_type = type(value)

    if isinstance(value, Enum):
        return change_type(change_type(value.value, int) + step, value_type)

    if is_numeric(value_type, include_float=False):
        return value_type(value + step)

    if is_numeric(value_type):
        if isinstance(value, Decimal):
            return value + Decimal(step)
        return value_type(value + step)

    raise NotSupportedError(f"Cannot increase a value of type {value_type.__name__}")
