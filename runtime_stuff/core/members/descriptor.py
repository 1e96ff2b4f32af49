"""
Member Descriptor

Immutable wrapper around one member of a type: the type itself, a property,
a field, a method, a constructor or an event. A descriptor carries the
member's classification flags, the metadata read from its markers, the ORM
metadata of a type, and its compiled accessors.

Descriptors are cached process-wide: ``describe(cls)`` for types and
``describe_member(raw)`` for members always return the same instance for the
same key.
"""

import functools
import uuid
from enum import Enum
from typing import Any, Callable

from pydantic.fields import FieldInfo

from runtime_stuff.core.errors import NotSupportedError, UnsupportedMemberKindError
from runtime_stuff.core.logger import TraceEvent, get_logger
from runtime_stuff.core.members import classifier, resolver
from runtime_stuff.core.members.accessors import (
    get_default_constructor,
    get_getter,
    get_invoker,
    try_get_getter,
    try_get_setter,
)
from runtime_stuff.core.members.cache import ConcurrentCache, configured_max_entries, create_cache, registry
from runtime_stuff.core.members.inspector import get_member_provider
from runtime_stuff.core.members.markers import find_marker, marker_name, marker_value
from runtime_stuff.core.members.models import MemberKind, NameKind, RawMember


COLUMN_MARKERS = ("Column", "Key", "ForeignKey")
TABLE_EXCLUDING_MARKERS = ("Column", "NotMapped", "Key")


class DescriptorState(Enum):
    """Construction steps of a descriptor."""
    UNINITIALIZED = "uninitialized"
    CLASSIFY_VALUE_TYPE = "classify_value_type"
    EXTRACT_ATTRIBUTES = "extract_attributes"
    EXTRACT_ORM_METADATA = "extract_orm_metadata"
    BIND_ACCESSORS = "bind_accessors"
    READY = "ready"


class MemberDescriptor:
    """
    Cached, classified view of one member.

    Build descriptors through ``describe`` / ``describe_member`` rather than
    directly; passing an existing descriptor copies it without rescanning
    markers.

    Example:
        >>> user = describe(User)
        >>> user.primary_keys
        (MemberDescriptor(property User.user_id: int),)
        >>> user["UserName"].get_value(instance)
        'alice'
    """

    def __init__(self, source: "MemberDescriptor | RawMember"):
        if source is None:
            raise TypeError("A member or descriptor is required")
        self._state = DescriptorState.UNINITIALIZED
        if isinstance(source, MemberDescriptor):
            self._copy_from(source)
        else:
            self._derive(source)
        self._state = DescriptorState.READY

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_") and getattr(self, "_state", None) == DescriptorState.READY:
            raise AttributeError(f"{type(self).__name__} is immutable; cannot set '{name}'")
        object.__setattr__(self, name, value)

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable; cannot delete '{name}'")

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def _copy_from(self, source: "MemberDescriptor") -> None:
        for name, value in source.__dict__.items():
            if not name.startswith("_"):
                object.__setattr__(self, name, value)
        self._source = source
        self._resolution = source._resolution

    def _derive(self, raw: RawMember) -> None:
        if not isinstance(getattr(raw, "kind", None), MemberKind):
            raise UnsupportedMemberKindError(raw)

        self._source = None
        self._resolution = (
            ConcurrentCache(f"resolution:{raw.name}", max_entries=configured_max_entries)
            if raw.kind == MemberKind.TYPE else None
        )

        self.raw = raw
        self.kind = raw.kind
        self.name = raw.name.rsplit(".", 1)[-1]
        self.owner = raw.owner
        self.value_type = object if raw.value_type is None else raw.value_type
        self.default = raw.default
        self.is_static = raw.is_static

        self._state = DescriptorState.CLASSIFY_VALUE_TYPE
        flags = classifier.classify(self.value_type)
        self.is_basic = flags.is_basic
        self.is_numeric = flags.is_numeric
        self.is_float = flags.is_float
        self.is_boolean = flags.is_boolean
        self.is_nullable = flags.is_nullable
        self.is_collection = flags.is_collection
        self.is_dictionary = flags.is_dictionary
        self.is_tuple = flags.is_tuple
        self.is_delegate = flags.is_delegate
        self.is_enum = flags.is_enum
        self.is_object = flags.is_object
        self.element_type = flags.element_type
        self.is_basic_collection = flags.is_basic_collection

        self._state = DescriptorState.EXTRACT_ATTRIBUTES
        self._extract_attributes(raw)

        self.primary_keys: tuple = ()
        self.foreign_keys: tuple = ()
        self.columns: tuple = ()
        self.default_constructor: Callable[[], Any] | None = None
        if raw.kind == MemberKind.TYPE:
            self._state = DescriptorState.EXTRACT_ORM_METADATA
            self._extract_orm_metadata()

        self.getter = None
        self.setter = None
        if raw.kind in (MemberKind.PROPERTY, MemberKind.FIELD):
            self._state = DescriptorState.BIND_ACCESSORS
            self.getter = try_get_getter(raw)
            self.setter = try_get_setter(raw)
        self.can_read = self.getter is not None
        self.can_write = self.setter is not None

        get_logger().trace(TraceEvent.DESCRIPTOR_CREATED, raw.qualified_name, raw.kind.value)

    def _extract_attributes(self, raw: RawMember) -> None:
        markers = tuple(raw.markers)
        info = raw.info if isinstance(raw.info, FieldInfo) else None
        self.markers = markers

        display_name = find_marker(markers, "DisplayName")
        display = find_marker(markers, "Display")
        self.display_name = (
            marker_value(display_name, "name")
            or getattr(display, "name", None)
            or (info.title if info is not None else None)
        )
        self.group_name = getattr(display, "group_name", None)

        self.description = (
            marker_value(find_marker(markers, "Description"), "description")
            or (info.description if info is not None else None)
            or self._getter_doc(raw)
        )

        json_marker = next((m for m in markers if marker_name(m).lower().startswith("json")), None)
        self.json_name = marker_value(json_marker, "name") or (
            (info.serialization_alias or info.alias) if info is not None else None
        )

        self.xml_element_name = marker_value(find_marker(markers, "XmlElement"), "name")
        self.xml_attribute_name = marker_value(find_marker(markers, "XmlAttribute"), "name")

        key = find_marker(markers, "Key")
        foreign_key = find_marker(markers, "ForeignKey")
        self.is_primary_key = key is not None
        self.is_foreign_key = foreign_key is not None
        self.foreign_key_name = marker_value(foreign_key, "name")
        self.is_not_mapped = find_marker(markers, "NotMapped") is not None

        self.column_name = marker_value(find_marker(markers, "Column"), "name") or self.name

        if raw.kind == MemberKind.TYPE:
            table_markers = markers
            default_table = self.name
        else:
            table_markers = get_member_provider().get_type_member(raw.owner).markers
            default_table = raw.owner.__name__
        table = find_marker(table_markers, "Table")
        self.table_name = marker_value(table, "name") or default_table
        self.schema_name = marker_value(table, "schema")

    @staticmethod
    def _getter_doc(raw: RawMember) -> str | None:
        if raw.kind != MemberKind.PROPERTY:
            return None
        func = getattr(raw.obj, "fget", None) or getattr(raw.obj, "func", None)
        doc = getattr(func, "__doc__", None)
        if not doc or not doc.strip():
            return None
        return doc.strip().splitlines()[0].strip()

    def _extract_orm_metadata(self) -> None:
        properties = self.public_properties
        self.primary_keys = tuple(p for p in properties if p.is_primary_key)
        self.foreign_keys = tuple(p for p in properties if p.is_foreign_key)

        marked = tuple(
            m for m in properties + self.public_fields
            if m.has_any_marker(*COLUMN_MARKERS) and not m.is_not_mapped
        )
        self.columns = marked or tuple(
            p for p in properties
            if p.is_basic and not p.is_collection and not p.is_not_mapped
        )

        constructor = get_default_constructor(classifier.origin_class(self.value_type))
        self.default_constructor = constructor or None

    # -------------------------------------------------------------------------
    # Kind helpers
    # -------------------------------------------------------------------------

    @property
    def state(self) -> DescriptorState:
        return self._state

    @property
    def is_type(self) -> bool:
        return self.kind == MemberKind.TYPE

    @property
    def is_property(self) -> bool:
        return self.kind == MemberKind.PROPERTY

    @property
    def is_field(self) -> bool:
        return self.kind == MemberKind.FIELD

    @property
    def is_method(self) -> bool:
        return self.kind == MemberKind.METHOD

    @property
    def is_constructor(self) -> bool:
        return self.kind == MemberKind.CONSTRUCTOR

    @property
    def is_event(self) -> bool:
        return self.kind == MemberKind.EVENT

    @property
    def is_public(self) -> bool:
        return not self.name.startswith("_")

    @property
    def is_identity(self) -> bool:
        """Primary key generated by storage: an integer or UUID key."""
        return self.is_primary_key and (
            classifier.is_numeric(self.value_type, include_float=False)
            or classifier.origin_class(self.value_type) is uuid.UUID
        )

    @property
    def declaring_type(self) -> "MemberDescriptor":
        return describe(self.owner)

    # -------------------------------------------------------------------------
    # Lazily computed collections (shared with copies)
    # -------------------------------------------------------------------------

    def _shared(self, name: str) -> Any:
        return getattr(self._source, name) if self._source is not None else None

    def _of_kind(self, kind: MemberKind) -> tuple:
        return tuple(m for m in self.members if m.kind == kind)

    @functools.cached_property
    def members(self) -> tuple:
        """Properties, fields, methods and events, most-derived first."""
        if self._source is not None:
            return self._source.members
        if self.kind != MemberKind.TYPE:
            return ()
        cls = classifier.origin_class(self.value_type)
        if cls is None:
            return ()
        return tuple(describe_member(raw) for raw in get_member_provider().get_members(cls))

    @functools.cached_property
    def properties(self) -> tuple:
        return self._shared("properties") or self._of_kind(MemberKind.PROPERTY)

    @functools.cached_property
    def fields(self) -> tuple:
        return self._shared("fields") or self._of_kind(MemberKind.FIELD)

    @functools.cached_property
    def methods(self) -> tuple:
        return self._shared("methods") or self._of_kind(MemberKind.METHOD)

    @functools.cached_property
    def events(self) -> tuple:
        return self._shared("events") or self._of_kind(MemberKind.EVENT)

    @functools.cached_property
    def constructors(self) -> tuple:
        if self._source is not None:
            return self._source.constructors
        cls = classifier.origin_class(self.value_type)
        if self.kind != MemberKind.TYPE or cls is None:
            return ()
        return tuple(describe_member(raw) for raw in get_member_provider().get_constructors(cls))

    @functools.cached_property
    def public_properties(self) -> tuple:
        return self._shared("public_properties") or tuple(p for p in self.properties if p.is_public)

    @functools.cached_property
    def public_fields(self) -> tuple:
        return self._shared("public_fields") or tuple(f for f in self.fields if f.is_public)

    @functools.cached_property
    def public_basic_properties(self) -> tuple:
        return self._shared("public_basic_properties") or tuple(
            p for p in self.public_properties if p.is_basic
        )

    @functools.cached_property
    def public_collection_properties(self) -> tuple:
        return self._shared("public_collection_properties") or tuple(
            p for p in self.public_properties if p.is_collection
        )

    @functools.cached_property
    def public_basic_collection_properties(self) -> tuple:
        return self._shared("public_basic_collection_properties") or tuple(
            p for p in self.public_properties if p.is_basic_collection
        )

    @functools.cached_property
    def tables(self) -> tuple:
        """Navigation properties: public, non-basic (or non-basic collections), not marked as columns."""
        return self._shared("tables") or tuple(
            p for p in self.public_properties
            if ((p.is_collection and not p.is_basic_collection) or not p.is_basic)
            and not p.has_any_marker(*TABLE_EXCLUDING_MARKERS)
        )

    @functools.cached_property
    def base_types(self) -> tuple:
        if self._source is not None:
            return self._source.base_types
        cls = classifier.origin_class(self.value_type)
        if self.kind != MemberKind.TYPE or cls is None:
            return ()
        return tuple(k for k in cls.__mro__[1:] if k is not object)

    # -------------------------------------------------------------------------
    # Markers
    # -------------------------------------------------------------------------

    def get_marker(self, name: str) -> Any | None:
        """Marker matched by class name (``Key``, ``KeyAttribute`` and ``key`` all match ``Key``)."""
        return find_marker(self.markers, name)

    def has_marker(self, name: str) -> bool:
        return self.get_marker(name) is not None

    def has_any_marker(self, *names: str) -> bool:
        return any(self.get_marker(n) is not None for n in names)

    def has_all_markers(self, *names: str) -> bool:
        return all(self.get_marker(n) is not None for n in names)

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def aliases(self, kind: NameKind) -> tuple:
        """Names this member answers to for one alias kind."""
        if kind == NameKind.NAME:
            values = (self.name,)
        elif kind == NameKind.DISPLAY_NAME:
            values = (self.display_name,)
        elif kind == NameKind.JSON_NAME:
            values = (self.json_name,)
        elif kind == NameKind.XML_NAME:
            values = (self.xml_element_name, self.xml_attribute_name)
        elif kind == NameKind.COLUMN_NAME:
            values = (self.column_name,)
        elif kind == NameKind.TABLE_NAME:
            values = (self.table_name,)
        elif kind == NameKind.SCHEMA_NAME:
            values = (self.schema_name,)
        else:
            values = ()
        return tuple(v for v in values if v)

    def get_member(
        self,
        name: str,
        name_kinds: NameKind = NameKind.ANY,
        member_filter: Callable[["MemberDescriptor"], bool] | None = None,
    ) -> "MemberDescriptor | None":
        """
        Resolve ``name`` against this type's members; ``None`` when nothing
        matches. On a member descriptor the search runs on its value type.
        """
        if self.kind != MemberKind.TYPE:
            return describe(self.value_type).get_member(name, name_kinds, member_filter)
        return resolver.resolve(self, name, name_kinds, member_filter)

    def get_property(self, name: str) -> "MemberDescriptor | None":
        return self.get_member(name, member_filter=resolver.is_property)

    def get_field(self, name: str) -> "MemberDescriptor | None":
        return self.get_member(name, member_filter=resolver.is_field)

    def get_method(self, name: str) -> "MemberDescriptor | None":
        return self.get_member(name, NameKind.NAME, member_filter=resolver.is_method)

    def get_event(self, name: str) -> "MemberDescriptor | None":
        return self.get_member(name, NameKind.NAME, member_filter=resolver.is_event)

    def __getitem__(self, name: str) -> "MemberDescriptor":
        found = self.get_member(name)
        if found is None:
            raise KeyError(name)
        return found

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get_member(name) is not None

    # -------------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------------

    def get_value(self, instance: Any) -> Any:
        """
        Read this member from ``instance``.

        Raises:
            NotSupportedError: If the member cannot be read
        """
        getter = self.getter if self.getter is not None else get_getter(self.raw)
        return getter(instance)

    def set_value(
        self,
        instance: Any,
        value: Any,
        converter: Callable[[Any], Any] | None = None,
    ) -> None:
        """
        Write ``value`` to this member on ``instance``.

        The value is passed through ``converter`` when given, otherwise
        coerced to the member's declared type with ``change_type``.

        Raises:
            NotSupportedError: If the member is read-only
            ConversionError: If the value cannot be coerced
        """
        if self.setter is None:
            raise NotSupportedError(f"'{self.raw.qualified_name}' is read-only", self.raw)
        if converter is not None:
            value = converter(value)
        else:
            from runtime_stuff.core.converter import change_type

            value = change_type(value, self.value_type)
        self.setter(instance, value)

    def invoke(self, instance: Any, *args: Any, **kwargs: Any) -> Any:
        """Call a method (or constructor) member."""
        return get_invoker(self.raw)(instance, *args, **kwargs)

    def to_dictionary(self, instance: Any, *names: str) -> dict[str, Any]:
        """Public basic property values of ``instance``, optionally restricted to ``names``."""
        props = self.public_basic_properties
        if names:
            props = tuple(p for p in props if p.name in names)
        return {p.name: p.get_value(instance) for p in props if p.can_read}

    # -------------------------------------------------------------------------
    # ORM names
    # -------------------------------------------------------------------------

    def full_table_name(
        self,
        prefix: str = "[",
        suffix: str = "]",
        default_schema: str | None = None,
    ) -> str:
        """``[schema].[table]``, or ``[table]`` when there is no schema."""
        schema = self.schema_name if self.schema_name and self.schema_name.strip() else default_schema
        full = f"{prefix}{self.table_name}{suffix}"
        if schema and schema.strip():
            full = f"{prefix}{schema}{suffix}.{full}"
        return full

    def full_column_name(
        self,
        prefix: str = "[",
        suffix: str = "]",
        default_schema: str | None = None,
    ) -> str:
        return f"{self.full_table_name(prefix, suffix, default_schema)}.{prefix}{self.column_name}{suffix}"

    def get_foreign_key(self, child_type: Any) -> "MemberDescriptor | None":
        """
        Foreign key on ``child_type`` that points to this type: a key whose
        navigation member is declared with this type.
        """
        child = describe(child_type)
        target = classifier.origin_class(self.value_type)
        for fk in child.foreign_keys:
            if not fk.foreign_key_name:
                continue
            nav = child.get_member(fk.foreign_key_name, NameKind.NAME, resolver.is_property)
            if nav is not None and classifier.origin_class(nav.value_type) is target:
                return fk
        return None

    def __repr__(self) -> str:
        if self.kind == MemberKind.TYPE:
            return f"MemberDescriptor(type {classifier.type_name(self.value_type)})"
        return (
            f"MemberDescriptor({self.kind.value} {self.owner.__qualname__}.{self.name}: "
            f"{classifier.type_name(self.value_type)})"
        )


# -------------------------------------------------------------------------
# Process-wide descriptor caches
# -------------------------------------------------------------------------

_types = create_cache("types")
_members = create_cache("members")


def _build_type(t: Any) -> MemberDescriptor:
    return MemberDescriptor(get_member_provider().get_type_member(t))


def describe(t: Any) -> MemberDescriptor:
    """
    Type descriptor of a class or annotation.

    Raises:
        TypeError: If ``t`` is None
    """
    if t is None:
        raise TypeError("A type is required")
    if isinstance(t, MemberDescriptor):
        return t if t.is_type else describe(t.value_type)
    return _types.get_or_add(t, _build_type)


def describe_member(raw: RawMember) -> MemberDescriptor:
    """Descriptor of one raw member."""
    if raw is None:
        raise TypeError("A member is required")
    if raw.kind == MemberKind.TYPE:
        return describe(raw.value_type)
    return _members.get_or_add(raw, MemberDescriptor)


def clear_caches() -> None:
    """Drop every cached descriptor, accessor and constructor."""
    registry.invalidate()
    get_logger().trace(TraceEvent.CACHE_CLEARED, "*")
