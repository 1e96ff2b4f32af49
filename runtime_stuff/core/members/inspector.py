"""
Member Inspector

Discovers the members of a Python class through native reflection
(``inspect``, ``typing.get_type_hints``, ``dataclasses`` and pydantic model
fields) and reports them as ``RawMember`` records.

The provider is pluggable: ``set_member_provider`` swaps in another
implementation of ``MemberProvider`` for the whole process.
"""

import dataclasses
import functools
import inspect
import types
import typing
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel

from runtime_stuff.core.members.classifier import origin_class, type_name, unwrap_annotated
from runtime_stuff.core.members.events import Event
from runtime_stuff.core.members.markers import MARKERS_ATTR, own_markers
from runtime_stuff.core.members.models import MemberKind, RawMember


# Modules whose classes contribute no members of their own
FRAMEWORK_MODULES = frozenset({
    "builtins",
    "typing",
    "abc",
    "enum",
    "collections",
    "_collections_abc",
    "dataclasses",
    "pydantic",
    "pydantic_core",
})

# Helpers generated on every NamedTuple class
NAMEDTUPLE_HELPERS = frozenset({
    "_fields",
    "_field_defaults",
    "_make",
    "_asdict",
    "_replace",
    "_source",
})


class MemberProvider(ABC):
    """
    Reflection capability the engine is built on.

    An implementation enumerates the members of a type, reports their
    declared value types and markers, and reads/writes values.
    """

    @abstractmethod
    def get_members(self, cls: type) -> list[RawMember]:
        """All properties, fields, methods and events, most-derived first."""

    @abstractmethod
    def get_constructors(self, cls: type) -> list[RawMember]:
        """Constructors of ``cls`` (empty for abstract or uninstantiable types)."""

    @abstractmethod
    def get_type_member(self, t: Any) -> RawMember:
        """The type itself as a member, carrying its class-level markers."""

    def read_value(self, instance: Any, member: RawMember) -> Any:
        """Read a plain attribute. Properties are read through their own getters."""
        return getattr(instance, member.name)

    def write_value(self, instance: Any, member: RawMember, value: Any) -> None:
        """Write a plain attribute. Compiled setters bypass this for frozen types unless it is overridden."""
        setattr(instance, member.name, value)


class PythonMemberProvider(MemberProvider):
    """
    Default provider backed by Python's own reflection.

    Example:
        >>> provider = PythonMemberProvider()
        >>> [m.name for m in provider.get_members(User)]
        ['user_id', 'name', 'display', 'save']
    """

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def get_members(self, cls: type) -> list[RawMember]:
        cls = origin_class(cls) or cls
        if not isinstance(cls, type):
            raise TypeError(f"Expected a class, got {cls!r}")

        members: list[RawMember] = []
        seen: set[str] = set()
        framework_names = self._framework_names(cls)
        dataclass_fields = self._dataclass_fields(cls)
        model_fields = self._model_fields(cls)

        if issubclass(cls, Enum):
            members.extend(self._enum_members(cls))
            seen.update(m.name for m in members)

        for klass in cls.__mro__:
            if self._is_framework_class(klass):
                continue

            hints = self._type_hints(klass)
            for name in self._own_annotation_names(klass):
                if name in seen or _is_dunder(name):
                    continue
                if isinstance(klass.__dict__.get(name), (property, functools.cached_property)):
                    continue
                seen.add(name)
                members.append(
                    self._annotated_member(
                        cls, klass, name, hints.get(name, object),
                        dataclass_fields.get(name), model_fields.get(name),
                    )
                )

            for name, value in klass.__dict__.items():
                if name in seen or _is_dunder(name):
                    continue
                if name in framework_names or self._is_generated_name(cls, name):
                    continue
                member = self._dict_member(klass, name, value)
                if member is not None:
                    seen.add(name)
                    members.append(member)

        return members

    def get_constructors(self, cls: type) -> list[RawMember]:
        cls = origin_class(cls) or cls
        if not isinstance(cls, type) or inspect.isabstract(cls):
            return []
        try:
            signature = inspect.signature(cls)
        except (ValueError, TypeError):
            signature = None
        return [
            RawMember(
                kind=MemberKind.CONSTRUCTOR,
                name="__init__",
                owner=cls,
                value_type=cls,
                obj=signature,
            )
        ]

    def get_type_member(self, t: Any) -> RawMember:
        if t is None:
            raise TypeError("A type is required")
        cls = origin_class(t) or object
        markers: list[Any] = []
        for klass in getattr(cls, "__mro__", ()):
            markers.extend(own_markers(klass))
        markers.extend(_annotated_metadata(t))
        return RawMember(
            kind=MemberKind.TYPE,
            name=type_name(t).rsplit(".", 1)[-1] if isinstance(t, type) else type_name(t),
            owner=cls,
            value_type=t,
            obj=t,
            markers=tuple(markers),
        )

    # -------------------------------------------------------------------------
    # Internal Methods
    # -------------------------------------------------------------------------

    @staticmethod
    def _is_framework_class(klass: type) -> bool:
        module = getattr(klass, "__module__", "") or ""
        return module.split(".")[0] in FRAMEWORK_MODULES

    def _framework_names(self, cls: type) -> set[str]:
        names: set[str] = set()
        for klass in cls.__mro__:
            if klass is not object and self._is_framework_class(klass):
                names.update(dir(klass))
        return names

    @staticmethod
    def _is_generated_name(cls: type, name: str) -> bool:
        if issubclass(cls, tuple) and hasattr(cls, "_fields"):
            return name in NAMEDTUPLE_HELPERS
        if issubclass(cls, Enum):
            return _is_sunder(name) or name in cls.__members__
        return False

    @staticmethod
    def _own_annotation_names(klass: type) -> list[str]:
        try:
            return list(inspect.get_annotations(klass))
        except (NameError, TypeError):
            return []

    @staticmethod
    def _type_hints(klass: type) -> dict[str, Any]:
        """Resolved annotations, falling back to the raw ones on unresolvable forward refs."""
        try:
            return typing.get_type_hints(klass, include_extras=True)
        except (NameError, TypeError, AttributeError):
            try:
                return dict(inspect.get_annotations(klass))
            except (NameError, TypeError):
                return {}

    @staticmethod
    def _dataclass_fields(cls: type) -> dict[str, dataclasses.Field]:
        if not dataclasses.is_dataclass(cls):
            return {}
        return {f.name: f for f in dataclasses.fields(cls)}

    @staticmethod
    def _model_fields(cls: type) -> dict[str, Any]:
        if isinstance(cls, type) and issubclass(cls, BaseModel):
            return dict(cls.model_fields)
        return {}

    def _enum_members(self, cls: type) -> list[RawMember]:
        return [
            RawMember(
                kind=MemberKind.FIELD,
                name=name,
                owner=cls,
                value_type=cls,
                obj=member,
                default=member,
                is_static=True,
            )
            for name, member in cls.__members__.items()
        ]

    def _annotated_member(
        self,
        cls: type,
        klass: type,
        name: str,
        hint: Any,
        dc_field: dataclasses.Field | None,
        model_field: Any,
    ) -> RawMember:
        markers = list(_annotated_metadata(hint))
        kind = MemberKind.PROPERTY
        is_static = False

        if typing.get_origin(hint) is typing.ClassVar:
            kind = MemberKind.FIELD
            is_static = True
            args = typing.get_args(hint)
            hint = args[0] if args else object
            markers.extend(_annotated_metadata(hint))

        default = klass.__dict__.get(name)
        info = None
        if dc_field is not None:
            info = dc_field
            markers.extend(dc_field.metadata.get("markers", ()))
            if dc_field.default is not dataclasses.MISSING:
                default = dc_field.default
            elif dc_field.default_factory is not dataclasses.MISSING:
                default = None
        elif model_field is not None:
            info = model_field
            markers.extend(m for m in model_field.metadata if m not in markers)
            default = None if model_field.is_required() or model_field.default_factory else model_field.default
        elif issubclass(cls, tuple) and hasattr(cls, "_field_defaults"):
            default = cls._field_defaults.get(name)

        if isinstance(default, (types.MemberDescriptorType, types.GetSetDescriptorType)):
            default = None
        if type(default).__name__ == "_tuplegetter":
            default = None

        return RawMember(
            kind=kind,
            name=name,
            owner=klass,
            value_type=_clean_type(hint),
            obj=klass.__dict__.get(name),
            markers=tuple(markers),
            default=default,
            info=info,
            is_static=is_static,
        )

    def _dict_member(self, klass: type, name: str, value: Any) -> RawMember | None:
        if isinstance(value, property):
            fget = value.fget
            return RawMember(
                kind=MemberKind.PROPERTY,
                name=name,
                owner=klass,
                value_type=_return_type(fget),
                obj=value,
                markers=own_markers(fget) + _annotated_metadata(_raw_return(fget)),
            )

        if isinstance(value, functools.cached_property):
            return RawMember(
                kind=MemberKind.PROPERTY,
                name=name,
                owner=klass,
                value_type=_return_type(value.func),
                obj=value,
                markers=own_markers(value.func) + _annotated_metadata(_raw_return(value.func)),
            )

        if isinstance(value, (staticmethod, classmethod)):
            func = value.__func__
            return RawMember(
                kind=MemberKind.METHOD,
                name=name,
                owner=klass,
                value_type=_return_type(func),
                obj=value,
                markers=own_markers(func),
                is_static=True,
            )

        if isinstance(value, types.FunctionType):
            return RawMember(
                kind=MemberKind.METHOD,
                name=name,
                owner=klass,
                value_type=_return_type(value),
                obj=value,
                markers=own_markers(value),
            )

        if isinstance(value, Event):
            return RawMember(
                kind=MemberKind.EVENT,
                name=name,
                owner=klass,
                value_type=value.resolve_handler_type(),
                obj=value,
            )

        if isinstance(value, types.MemberDescriptorType):
            # __slots__ entry without an annotation
            return RawMember(kind=MemberKind.FIELD, name=name, owner=klass, obj=value)

        if isinstance(value, (type, types.GetSetDescriptorType, types.ModuleType)):
            return None
        if name == MARKERS_ATTR:
            return None

        return RawMember(
            kind=MemberKind.FIELD,
            name=name,
            owner=klass,
            value_type=object if value is None else type(value),
            obj=value,
            default=value,
            is_static=True,
        )


def _is_dunder(name: str) -> bool:
    return len(name) > 4 and name.startswith("__") and name.endswith("__")


def _is_sunder(name: str) -> bool:
    return (
        len(name) > 2
        and name.startswith("_")
        and name.endswith("_")
        and not name.startswith("__")
    )


def _annotated_metadata(hint: Any) -> tuple:
    if typing.get_origin(hint) is typing.Annotated:
        return tuple(getattr(hint, "__metadata__", ()))
    return ()


def _clean_type(hint: Any) -> Any:
    if hint is None:
        return type(None)
    return unwrap_annotated(hint)


def _raw_return(func: Any) -> Any:
    if func is None:
        return None
    try:
        return typing.get_type_hints(func, include_extras=True).get("return")
    except (NameError, TypeError, AttributeError):
        return getattr(func, "__annotations__", {}).get("return")


def _return_type(func: Any) -> Any:
    hint = _raw_return(func)
    if hint is None:
        return object
    return _clean_type(hint)


_provider: MemberProvider = PythonMemberProvider()


def get_member_provider() -> MemberProvider:
    return _provider


def set_member_provider(provider: MemberProvider) -> None:
    """Replace the process-wide provider and drop everything derived from the old one."""
    global _provider
    from runtime_stuff.core.members.cache import registry

    _provider = provider
    registry.invalidate()
