"""
Name Resolver

Resolves a human-supplied name against the members of a type descriptor.

Search order:
    1. Structural name of a property, field, method or event (exact case
       preferred, then case-insensitive), when the mask includes NAME.
    2. Alias search in a fixed order: structural name (fuzzy only), display
       name, JSON name, XML element/attribute name, column name, table name,
       schema name. Each alias kind is tried exactly (case-insensitive) and
       then fuzzily, ignoring spaces, hyphens, underscores and periods.

Every query is memoized on the type descriptor, misses included. Resolution
never raises: an unknown name yields ``None``.
"""

from typing import Any, Callable

from runtime_stuff.core.logger import TraceEvent, get_logger
from runtime_stuff.core.members.models import MemberKind, NameKind

STRUCTURAL_KINDS = (
    MemberKind.PROPERTY,
    MemberKind.FIELD,
    MemberKind.METHOD,
    MemberKind.EVENT,
)

ALIAS_ORDER = (
    NameKind.NAME,
    NameKind.DISPLAY_NAME,
    NameKind.JSON_NAME,
    NameKind.XML_NAME,
    NameKind.COLUMN_NAME,
    NameKind.TABLE_NAME,
    NameKind.SCHEMA_NAME,
)

MemberFilter = Callable[[Any], bool]

_ABSENT = object()


# Stable filters, so queries using them share memo entries
def is_property(member: Any) -> bool:
    return member.kind == MemberKind.PROPERTY


def is_field(member: Any) -> bool:
    return member.kind == MemberKind.FIELD


def is_property_or_field(member: Any) -> bool:
    return member.kind in (MemberKind.PROPERTY, MemberKind.FIELD)


def is_method(member: Any) -> bool:
    return member.kind == MemberKind.METHOD


def is_event(member: Any) -> bool:
    return member.kind == MemberKind.EVENT


def _settings():
    from runtime_stuff.config import get_config

    return get_config().resolution


def _ignore_chars() -> str:
    return _settings().ignore_chars


def fuzzy_key(name: str, ignore_chars: str | None = None) -> str:
    """Lower-cased ``name`` without separator characters (``"User.Id"`` -> ``"userid"``)."""
    chars = _ignore_chars() if ignore_chars is None else ignore_chars
    return name.translate(str.maketrans("", "", chars)).lower()


def _accepts(member: Any, member_filter: MemberFilter | None) -> bool:
    return member_filter is None or bool(member_filter(member))


def _structural_match(type_desc: Any, name: str, member_filter: MemberFilter | None) -> Any | None:
    lowered = name.lower()
    prefer_exact = _settings().prefer_exact_case
    for kind in STRUCTURAL_KINDS:
        candidates = [m for m in type_desc.members if m.kind == kind]
        hit = next((m for m in candidates if m.name == name), None) if prefer_exact else None
        if hit is None:
            hit = next((m for m in candidates if m.name.lower() == lowered), None)
        if hit is not None and _accepts(hit, member_filter):
            return hit
    return None


def _alias_match(
    type_desc: Any,
    name: str,
    name_kinds: NameKind,
    member_filter: MemberFilter | None,
) -> Any | None:
    candidates = [
        m for m in type_desc.members
        if m.kind in STRUCTURAL_KINDS and _accepts(m, member_filter)
    ]
    if not candidates:
        return None

    lowered = name.lower()
    ignore_chars = _ignore_chars()
    fuzzy = fuzzy_key(name, ignore_chars)

    for kind in ALIAS_ORDER:
        if not name_kinds.includes(kind):
            continue
        if kind != NameKind.NAME:
            for member in candidates:
                if any(alias.lower() == lowered for alias in member.aliases(kind)):
                    return member
        if not fuzzy:
            continue
        for member in candidates:
            if any(fuzzy_key(alias, ignore_chars) == fuzzy for alias in member.aliases(kind)):
                return member
    return None


def _search(type_desc: Any, name: str, name_kinds: NameKind, member_filter: MemberFilter | None) -> Any:
    if name_kinds.includes(NameKind.NAME):
        found = _structural_match(type_desc, name, member_filter)
        if found is not None:
            return found
    found = _alias_match(type_desc, name, name_kinds, member_filter)
    if found is None:
        get_logger().trace(
            TraceEvent.RESOLUTION_MISS,
            f"{type_desc.name}.{name}",
            f"kinds={name_kinds}",
        )
        return _ABSENT
    return found


def resolve(
    type_desc: Any,
    name: str,
    name_kinds: NameKind = NameKind.ANY,
    member_filter: MemberFilter | None = None,
) -> Any | None:
    """
    Resolve ``name`` on a type descriptor.

    Args:
        type_desc: Descriptor of the type to search
        name: Structural name or alias
        name_kinds: Which names may match (``NameKind.ANY`` for all)
        member_filter: Optional predicate a match must satisfy. The memo is
            keyed on the filter object, so pass a stable callable; each new
            lambda adds an entry, bounded only by ``cache.max_entries``

    Returns:
        The matching member descriptor, or None
    """
    if name is None or not isinstance(name, str) or not name.strip():
        return None
    if type_desc is None:
        raise TypeError("A type descriptor is required")

    key = (name, name_kinds, member_filter)
    result = type_desc._resolution.get_or_add(
        key,
        lambda _key: _search(type_desc, name, name_kinds, member_filter),
    )
    return None if result is _ABSENT else result
