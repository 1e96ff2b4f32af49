"""
Engine Errors

Exception hierarchy raised by the object facade, the accessor compiler and
the configuration loader. Resolution itself never raises: a name that does
not resolve is reported as ``None``.
"""

from typing import Any


def _type_name(t: Any) -> str:
    if isinstance(t, type):
        return t.__name__
    return repr(t).replace("typing.", "")


class RuntimeStuffError(Exception):
    """Base class for all engine errors."""
    pass


class MemberNotFoundError(RuntimeStuffError, AttributeError):
    """Raised when a path segment does not resolve to a member."""

    def __init__(self, owner: Any, segment: str, path: str | None = None):
        self.owner = owner
        self.segment = segment
        self.path = path
        message = f"Member '{segment}' not found on {_type_name(owner)}"
        if path and path != segment:
            message += f" (path '{path}')"
        super().__init__(message)


class ConversionError(RuntimeStuffError, ValueError):
    """Raised when a value cannot be converted to the requested type."""

    def __init__(self, value: Any, target: Any, reason: str | None = None):
        self.value = value
        self.target = target
        self.reason = reason
        message = f"Cannot convert {value!r} ({type(value).__name__}) to {_type_name(target)}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ConstructionError(RuntimeStuffError, TypeError):
    """Raised when no constructor of a type accepts the given arguments."""

    def __init__(self, target: Any, arg_types: tuple = ()):
        self.target = target
        self.arg_types = tuple(arg_types)
        names = ", ".join(_type_name(t) for t in self.arg_types)
        super().__init__(f"Cannot construct {_type_name(target)} from ({names})")


class UnsupportedMemberKindError(RuntimeStuffError):
    """Raised when a raw member has a kind the engine cannot wrap."""

    def __init__(self, member: Any):
        self.member = member
        super().__init__(f"Unsupported member kind for {member!r}")


class NotSupportedError(RuntimeStuffError):
    """Raised when an operation is not available for a member (e.g. writing a read-only property)."""

    def __init__(self, message: str, member: Any = None):
        super().__init__(message)
        self.member = member


class ConfigError(RuntimeStuffError, ValueError):
    """Raised when a configuration file cannot be loaded or validated."""
    pass
