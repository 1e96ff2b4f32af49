"""
Accessor Compiler

Builds reusable getter, setter and invoker callables for raw members and
caches them per member, so repeated value access skips attribute lookup on
the class and descriptor dispatch decisions.

Compiled callables hold no per-call state and may be called from any
thread. Compilation failures are raised to the caller and never cached.
"""

import functools
import inspect
import operator
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel

from runtime_stuff.core.errors import NotSupportedError
from runtime_stuff.core.logger import TraceEvent, get_logger
from runtime_stuff.core.members.cache import create_cache
from runtime_stuff.core.members.inspector import MemberProvider, get_member_provider
from runtime_stuff.core.members.models import MemberKind, RawMember

Getter = Callable[[Any], Any]
Setter = Callable[[Any, Any], None]
Invoker = Callable[..., Any]


class _NoConstructor:
    """Marker for types without a zero-argument constructor."""

    def __repr__(self) -> str:
        return "NO_CONSTRUCTOR"

    def __bool__(self) -> bool:
        return False


NO_CONSTRUCTOR = _NoConstructor()

_getters = create_cache("getters")
_setters = create_cache("setters")
_invokers = create_cache("invokers")
_constructors = create_cache("constructors")


# -------------------------------------------------------------------------
# Compilation
# -------------------------------------------------------------------------

def _is_frozen(cls: type) -> bool:
    params = getattr(cls, "__dataclass_params__", None)
    if params is not None and params.frozen:
        return True
    if isinstance(cls, type) and issubclass(cls, BaseModel):
        return bool(cls.model_config.get("frozen"))
    return False


def _raw_setattr(name: str, frozen: bool) -> Setter:
    if frozen:
        def set_frozen(instance: Any, value: Any) -> None:
            object.__setattr__(instance, name, value)
        return set_frozen

    def set_attr(instance: Any, value: Any) -> None:
        setattr(instance, name, value)
    return set_attr


def _attribute_getter(member: RawMember) -> Getter:
    provider = get_member_provider()
    if type(provider).read_value is MemberProvider.read_value:
        return operator.attrgetter(member.name)
    return lambda instance: provider.read_value(instance, member)


def _attribute_setter(member: RawMember, frozen: bool) -> Setter:
    provider = get_member_provider()
    if type(provider).write_value is MemberProvider.write_value:
        return _raw_setattr(member.name, frozen)

    def write(instance: Any, value: Any) -> None:
        provider.write_value(instance, member, value)
    return write


def _backing_field(member: RawMember) -> str | None:
    """
    Storage attribute behind a read-only property: ``_name`` or the mangled
    ``_Owner__name``, when the owner declares it or the getter references it.
    """
    prop = member.obj
    fget = getattr(prop, "fget", None)
    candidates = (f"_{member.name}", f"_{member.owner.__name__.lstrip('_')}__{member.name}")

    referenced = set(getattr(getattr(fget, "__code__", None), "co_names", ()))
    declared: set[str] = set()
    for klass in member.owner.__mro__:
        declared.update(klass.__dict__)
        declared.update(inspect.get_annotations(klass))
        slots = klass.__dict__.get("__slots__", ())
        declared.update((slots,) if isinstance(slots, str) else slots)

    for name in candidates:
        if name in referenced or name in declared:
            return name
    return None


def compile_getter(member: RawMember) -> Getter:
    """
    Compile a getter for a property or field.

    Raises:
        NotSupportedError: If the member cannot be read
    """
    if member.kind == MemberKind.PROPERTY:
        obj = member.obj
        if isinstance(obj, property):
            if obj.fget is None:
                raise NotSupportedError(f"Property '{member.qualified_name}' has no getter", member)
            return obj.fget
        if isinstance(obj, functools.cached_property):
            owner = member.owner
            return lambda instance: obj.__get__(instance, owner)
        return _attribute_getter(member)

    if member.kind in (MemberKind.FIELD, MemberKind.EVENT):
        return _attribute_getter(member)

    raise NotSupportedError(f"Cannot read {member.kind.value} '{member.qualified_name}'", member)


def compile_setter(member: RawMember) -> Setter:
    """
    Compile a setter for a property or field.

    Raises:
        NotSupportedError: If the member is read-only with no backing field
    """
    frozen = _is_frozen(member.owner)
    if issubclass(member.owner, tuple) and hasattr(member.owner, "_fields"):
        raise NotSupportedError(f"'{member.qualified_name}' belongs to an immutable NamedTuple", member)

    if member.kind == MemberKind.PROPERTY:
        obj = member.obj
        if isinstance(obj, property):
            if obj.fset is not None:
                return obj.fset
            backing = _backing_field(member)
            if backing is None:
                raise NotSupportedError(f"Property '{member.qualified_name}' is read-only", member)
            return _raw_setattr(backing, frozen)

        if isinstance(obj, functools.cached_property):
            name = obj.attrname or member.name

            def set_cached(instance: Any, value: Any) -> None:
                instance.__dict__[name] = value
            return set_cached

        return _attribute_setter(member, frozen)

    if member.kind == MemberKind.FIELD:
        return _attribute_setter(member, frozen)

    raise NotSupportedError(f"Cannot write {member.kind.value} '{member.qualified_name}'", member)


def compile_invoker(member: RawMember) -> Invoker:
    """
    Compile ``(instance, *args, **kwargs) -> result`` for a method or constructor.

    Static and class methods ignore ``instance``; class methods bind to the
    instance's class (or to ``instance`` itself when it is a class).
    """
    if member.kind == MemberKind.CONSTRUCTOR:
        cls = member.owner
        return lambda _instance, *args, **kwargs: cls(*args, **kwargs)

    if member.kind != MemberKind.METHOD:
        raise NotSupportedError(f"Cannot invoke {member.kind.value} '{member.qualified_name}'", member)

    obj = member.obj
    if isinstance(obj, staticmethod):
        func = obj.__func__
        return lambda _instance, *args, **kwargs: func(*args, **kwargs)

    if isinstance(obj, classmethod):
        func = obj.__func__
        owner = member.owner

        def invoke_classmethod(instance: Any, *args: Any, **kwargs: Any) -> Any:
            if instance is None:
                cls = owner
            elif isinstance(instance, type):
                cls = instance
            else:
                cls = type(instance)
            return func(cls, *args, **kwargs)
        return invoke_classmethod

    return obj


# -------------------------------------------------------------------------
# Cached access
# -------------------------------------------------------------------------

def _compiled(kind: str, compiler: Callable[[RawMember], Any]) -> Callable[[RawMember], Any]:
    def build(member: RawMember) -> Any:
        accessor = compiler(member)
        get_logger().trace(TraceEvent.ACCESSOR_COMPILED, member.qualified_name, kind)
        return accessor
    return build


_build_getter = _compiled("getter", compile_getter)
_build_setter = _compiled("setter", compile_setter)
_build_invoker = _compiled("invoker", compile_invoker)


def get_getter(member: RawMember) -> Getter:
    """Cached getter; raises NotSupportedError if the member cannot be read."""
    return _getters.get_or_add(member, _build_getter)


def get_setter(member: RawMember) -> Setter:
    """Cached setter; raises NotSupportedError if the member cannot be written."""
    return _setters.get_or_add(member, _build_setter)


def get_invoker(member: RawMember) -> Invoker:
    return _invokers.get_or_add(member, _build_invoker)


def try_get_getter(member: RawMember) -> Getter | None:
    try:
        return get_getter(member)
    except NotSupportedError:
        return None


def try_get_setter(member: RawMember) -> Setter | None:
    try:
        return get_setter(member)
    except NotSupportedError:
        return None


# -------------------------------------------------------------------------
# Constructors
# -------------------------------------------------------------------------

def _find_default_constructor(cls: Any) -> Callable[[], Any] | _NoConstructor:
    if not isinstance(cls, type) or inspect.isabstract(cls) or issubclass(cls, Enum):
        return NO_CONSTRUCTOR
    try:
        signature = inspect.signature(cls)
    except (ValueError, TypeError):
        # Builtins without introspectable signatures
        if cls.__module__ != "builtins":
            return NO_CONSTRUCTOR
        try:
            cls()
        except TypeError:
            return NO_CONSTRUCTOR
        return cls

    for param in signature.parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        if param.default is param.empty:
            return NO_CONSTRUCTOR
    return cls


def get_default_constructor(cls: Any) -> Callable[[], Any] | _NoConstructor:
    """Zero-argument factory for ``cls``, or ``NO_CONSTRUCTOR``."""
    return _constructors.get_or_add(cls, _find_default_constructor)


def is_frozen(cls: type) -> bool:
    """True for frozen dataclasses and frozen pydantic models."""
    return _is_frozen(cls)


__all__ = [
    "NO_CONSTRUCTOR",
    "compile_getter",
    "compile_setter",
    "compile_invoker",
    "get_getter",
    "get_setter",
    "get_invoker",
    "try_get_getter",
    "try_get_setter",
    "get_default_constructor",
    "is_frozen",
]
