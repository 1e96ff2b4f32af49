"""
Declarative Markers

Marker objects attached to types and members. The engine never checks marker
identity: it matches markers by class name, so any class named ``Key``,
``KeyAttribute`` or ``KeyMarker`` works as a primary-key marker.

Markers are attached with ``typing.Annotated``::

    user_id: Annotated[int, Key(), Column("user_id")]

with dataclass field metadata::

    name: str = field(default="", metadata={"markers": [DisplayName("Name")]})

or with the ``mark`` decorator on a class or a property getter::

    @mark(Table("users", schema="auth"))
    class User: ...
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, TypeVar

T = TypeVar("T")

MARKERS_ATTR = "__markers__"
MARKER_SUFFIXES = ("Attribute", "Marker")


@dataclass(frozen=True)
class Marker:
    """Base class for the built-in markers."""


@dataclass(frozen=True)
class Key(Marker):
    """Primary key column."""


@dataclass(frozen=True)
class ForeignKey(Marker):
    """Foreign key column; ``name`` is the navigation member it points to."""

    name: str = ""


@dataclass(frozen=True)
class Column(Marker):
    """Storage column with an optional explicit column name."""

    name: str | None = None


@dataclass(frozen=True)
class Table(Marker):
    """Storage table of a type."""

    name: str | None = None
    schema: str | None = None


@dataclass(frozen=True)
class NotMapped(Marker):
    """Excluded from column discovery."""


@dataclass(frozen=True)
class DisplayName(Marker):
    display_name: str


@dataclass(frozen=True)
class Display(Marker):
    name: str | None = None
    group_name: str | None = None


@dataclass(frozen=True)
class Description(Marker):
    description: str


@dataclass(frozen=True)
class JsonProperty(Marker):
    """Serialization name."""

    name: str


@dataclass(frozen=True)
class XmlElement(Marker):
    element_name: str


@dataclass(frozen=True)
class XmlAttribute(Marker):
    attribute_name: str


def normalize_marker_name(name: str) -> str:
    """Strip a trailing ``Attribute``/``Marker`` suffix from a marker name."""
    for suffix in MARKER_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return name


def marker_name(marker: Any) -> str:
    return normalize_marker_name(type(marker).__name__)


def find_marker(markers: Iterable[Any], name: str) -> Any | None:
    """
    Find a marker by class name.

    Exact match (after suffix normalization) wins over a case-insensitive one.
    """
    if not name or not name.strip():
        return None
    wanted = normalize_marker_name(name.strip())
    markers = tuple(markers)
    for m in markers:
        if marker_name(m) == wanted:
            return m
    lowered = wanted.lower()
    for m in markers:
        if marker_name(m).lower() == lowered:
            return m
    return None


def marker_value(marker: Any, *suffixes: str) -> str | None:
    """
    Read the first non-empty string attribute whose name ends with one of
    ``suffixes`` (``"name"`` matches ``name``, ``display_name``,
    ``element_name``...).
    """
    if marker is None:
        return None
    attrs = getattr(marker, "__dataclass_fields__", None) or getattr(marker, "__dict__", {})
    for attr in attrs:
        if attr.startswith("_"):
            continue
        if any(attr.lower().endswith(s) for s in suffixes):
            value = getattr(marker, attr, None)
            if value:
                return str(value)
    return None


def mark(*markers: Any) -> Callable[[T], T]:
    """
    Attach markers to a class or function.

    Markers accumulate: stacking ``mark`` decorators keeps all of them.
    """
    def decorator(target: T) -> T:
        owned = target.__dict__.get(MARKERS_ATTR, ()) if isinstance(target, type) else getattr(target, MARKERS_ATTR, ())
        setattr(target, MARKERS_ATTR, tuple(owned) + tuple(markers))
        return target

    return decorator


def own_markers(target: Any) -> tuple:
    """Markers attached directly to ``target`` (not inherited)."""
    if isinstance(target, type):
        return tuple(target.__dict__.get(MARKERS_ATTR, ()))
    return tuple(getattr(target, MARKERS_ATTR, ()))
