"""
Member Introspection Module

Discovery, classification and name resolution of type members, with cached
compiled accessors.
"""

from runtime_stuff.core.members.models import MemberKind, NameKind, RawMember
from runtime_stuff.core.members.markers import (
    Column,
    Description,
    Display,
    DisplayName,
    ForeignKey,
    JsonProperty,
    Key,
    Marker,
    NotMapped,
    Table,
    XmlAttribute,
    XmlElement,
    mark,
)
from runtime_stuff.core.members.events import Event, EventHandlers
from runtime_stuff.core.members.classifier import classify, default_value, element_type
from runtime_stuff.core.members.cache import CacheRegistry, CacheStats, ConcurrentCache, registry
from runtime_stuff.core.members.inspector import (
    MemberProvider,
    PythonMemberProvider,
    get_member_provider,
    set_member_provider,
)
from runtime_stuff.core.members.accessors import NO_CONSTRUCTOR, get_default_constructor
from runtime_stuff.core.members.resolver import (
    is_event,
    is_field,
    is_method,
    is_property,
    is_property_or_field,
    resolve,
)
from runtime_stuff.core.members.descriptor import (
    DescriptorState,
    MemberDescriptor,
    clear_caches,
    describe,
    describe_member,
)

__all__ = [
    "MemberKind",
    "NameKind",
    "RawMember",
    "Column",
    "Description",
    "Display",
    "DisplayName",
    "ForeignKey",
    "JsonProperty",
    "Key",
    "Marker",
    "NotMapped",
    "Table",
    "XmlAttribute",
    "XmlElement",
    "mark",
    "Event",
    "EventHandlers",
    "classify",
    "default_value",
    "element_type",
    "CacheRegistry",
    "CacheStats",
    "ConcurrentCache",
    "registry",
    "MemberProvider",
    "PythonMemberProvider",
    "get_member_provider",
    "set_member_provider",
    "NO_CONSTRUCTOR",
    "get_default_constructor",
    "is_event",
    "is_field",
    "is_method",
    "is_property",
    "is_property_or_field",
    "resolve",
    "DescriptorState",
    "MemberDescriptor",
    "clear_caches",
    "describe",
    "describe_member",
]
