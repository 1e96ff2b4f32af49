"""
Core runtime modules.
"""

from runtime_stuff.core.errors import (
    ConfigError,
    ConstructionError,
    ConversionError,
    MemberNotFoundError,
    NotSupportedError,
    RuntimeStuffError,
    UnsupportedMemberKindError,
)
from runtime_stuff.core.logger import EngineLogger, LogLevel, TraceEntry, TraceEvent, get_logger
from runtime_stuff.core.members import MemberDescriptor, MemberKind, NameKind, describe
from runtime_stuff.core.converter import (
    TypeConverter,
    add_custom_type_converter,
    change_type,
    remove_custom_type_converter,
    try_change_type,
)
from runtime_stuff.core import obj


__all__ = [
    "ConfigError",
    "ConstructionError",
    "ConversionError",
    "MemberNotFoundError",
    "NotSupportedError",
    "RuntimeStuffError",
    "UnsupportedMemberKindError",
    "EngineLogger",
    "LogLevel",
    "TraceEntry",
    "TraceEvent",
    "get_logger",
    "MemberDescriptor",
    "MemberKind",
    "NameKind",
    "describe",
    "TypeConverter",
    "add_custom_type_converter",
    "change_type",
    "remove_custom_type_converter",
    "try_change_type",
    "obj",
]
