"""
Member Data Models

Typed records for raw members discovered on a type, and the enums used to
classify members and select the names they are looked up by.
"""

from dataclasses import dataclass, field
from enum import Enum, Flag
from typing import Any


class MemberKind(Enum):
    """Kinds of members the engine models."""

    TYPE = "type"
    PROPERTY = "property"
    FIELD = "field"
    METHOD = "method"
    CONSTRUCTOR = "constructor"
    EVENT = "event"

    @classmethod
    def from_string(cls, kind_str: str) -> "MemberKind":
        """Convert a kind name ("property", "Field", ...) to the enum."""
        try:
            return cls(kind_str.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown member kind: {kind_str}") from None


class NameKind(Flag):
    """Names a member can be resolved by. ``ANY`` searches all of them."""

    ANY = 0
    NAME = 1
    DISPLAY_NAME = 2
    JSON_NAME = 4
    XML_NAME = 8
    COLUMN_NAME = 16
    TABLE_NAME = 32
    SCHEMA_NAME = 64

    def includes(self, other: "NameKind") -> bool:
        """True when this mask permits searching by ``other``."""
        return self == NameKind.ANY or bool(self & other)

    @classmethod
    def from_strings(cls, names: list[str]) -> "NameKind":
        """Build a mask from names like ``["display", "json_name"]``."""
        mask = cls.ANY
        for raw in names:
            key = raw.strip().upper().replace("-", "_")
            if key == "ANY":
                return cls.ANY
            if not key.endswith("NAME"):
                key = f"{key}_NAME"
            try:
                mask |= cls[key]
            except KeyError:
                raise ValueError(f"Unknown name kind: {raw}") from None
        return mask


@dataclass(frozen=True)
class RawMember:
    """
    A member as reported by a member provider, before it is wrapped.

    Identity is ``(kind, owner, name)``; everything else is payload that a
    given provider always reports the same way for the same member.
    """

    kind: MemberKind
    name: str                                             # Attribute name on the owner
    owner: type                                           # Declaring class
    value_type: Any = field(default=object, compare=False)  # Declared type / return type
    obj: Any = field(default=None, compare=False)         # property, function, Field, Event...
    markers: tuple = field(default=(), compare=False)     # Marker instances
    default: Any = field(default=None, compare=False)     # Declared default value
    info: Any = field(default=None, compare=False)        # pydantic FieldInfo / dataclass Field
    is_static: bool = field(default=False, compare=False)

    @property
    def is_public(self) -> bool:
        return not self.name.startswith("_")

    @property
    def qualified_name(self) -> str:
        return f"{self.owner.__qualname__}.{self.name}"

    def __repr__(self) -> str:
        return f"RawMember({self.kind.value} {self.qualified_name})"
