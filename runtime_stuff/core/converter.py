"""
Type Converter

Coerces values between types: strings, numbers, booleans, dates, UUIDs,
enums, collections, tuples and records. User-supplied converters registered
for an exact (source type, target type) pair take precedence over the
built-in rules.
"""

import dataclasses
import importlib
import re
import typing
import uuid
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from fractions import Fraction
from typing import Any, Callable, Iterable

import pandas as pd
from pydantic import BaseModel

from runtime_stuff.core.errors import ConversionError, RuntimeStuffError
from runtime_stuff.core.logger import TraceEvent, get_logger
from runtime_stuff.core.members.classifier import (
    _is_fixed_tuple,
    _is_subclass,
    _is_union,
    default_value,
    element_type,
    is_collection,
    is_dictionary,
    is_nullable,
    is_numeric,
    origin_class,
    type_name,
    unwrap_annotated,
    unwrap_optional,
)

NUMERIC_PATTERN = re.compile(r"^[-+]?[\d\s.,']+$")

_custom_converters: dict[tuple[type, Any], Callable[[Any], Any]] = {}


# -------------------------------------------------------------------------
# Custom converters
# -------------------------------------------------------------------------

def add_custom_type_converter(source: type, target: Any, func: Callable[[Any], Any]) -> None:
    """
    Register ``func`` for converting exact ``source`` instances to ``target``.

    Args:
        source: Runtime type of the values handled (matched exactly)
        target: Target type passed to ``change_type``
        func: ``value -> converted value``
    """
    if source is None or target is None:
        raise TypeError("Source and target types are required")
    if not callable(func):
        raise TypeError("Converter must be callable")
    _custom_converters[(source, target)] = func


def get_custom_type_converter(source: type, target: Any) -> Callable[[Any], Any] | None:
    return _custom_converters.get((source, target))


def remove_custom_type_converter(source: type, target: Any) -> None:
    _custom_converters.pop((source, target), None)


# -------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------

def is_missing(value: Any) -> bool:
    """None, NaN, NaT or pd.NA."""
    if value is None:
        return True
    if not pd.api.types.is_scalar(value) or isinstance(value, (str, bytes, Enum)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def import_type(path: str) -> type:
    """Resolve a dotted path like ``collections.abc.Sequence``."""
    module_name, _, attr = path.strip().rpartition(".")
    if not module_name:
        raise ValueError(f"Expected a dotted type path, got '{path}'")
    return getattr(importlib.import_module(module_name), attr)


def interface_implementation(cls: type) -> type | None:
    """Concrete type configured for an abstract type, or None."""
    from runtime_stuff.config import get_config

    for abstract_path, concrete_path in get_config().construction.interface_map.items():
        try:
            abstract = import_type(abstract_path)
        except (ImportError, AttributeError, ValueError):
            continue
        if abstract is cls:
            return import_type(concrete_path)
    return None


def _settings():
    from runtime_stuff.config import get_config

    return get_config().conversion


class TypeConverter:
    """
    Built-in conversion rules.

    Example:
        >>> converter = TypeConverter()
        >>> converter.convert("1,234.5", float)
        1234.5
        >>> converter.convert("yes", bool)
        True
    """

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def convert(self, value: Any, target: Any) -> Any:
        """
        Convert ``value`` to ``target``.

        Raises:
            ConversionError: If no rule applies or the rule fails
            TypeError: If ``target`` is None
        """
        if target is None:
            raise TypeError("A target type is required")
        target = unwrap_annotated(target)
        if target is Any or target is object:
            return value

        base = unwrap_optional(target)
        cls = None if _is_union(base) else origin_class(base)
        if cls is not None and self._is_assignable(value, base, cls):
            return value

        if is_missing(value):
            if is_nullable(target):
                return None
            raise ConversionError(value, target, "missing value for a non-nullable type")

        if _is_union(base):
            return self._convert_union(value, base)

        custom = _custom_converters.get((type(value), target)) or _custom_converters.get((type(value), base))
        if custom is not None:
            try:
                return custom(value)
            except ConversionError:
                raise
            except Exception as e:
                raise ConversionError(value, target, f"custom converter failed: {e}") from e

        if cls is None:
            raise ConversionError(value, target, "unsupported target")

        if isinstance(value, bool) and cls is not bool and is_numeric(cls):
            value = int(value)

        if isinstance(value, str) and not value.strip() and not _is_subclass(cls, (str, bytes)):
            return default_value(target)

        try:
            return self._convert_builtin(value, base, cls)
        except ConversionError:
            raise
        except Exception as e:
            raise ConversionError(value, target, str(e)) from e

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    @staticmethod
    def _is_assignable(value: Any, base: Any, cls: type) -> bool:
        if not isinstance(value, cls):
            return False
        if isinstance(value, bool) and cls is not bool and not _is_subclass(cls, Enum):
            return cls is object
        if cls is date and isinstance(value, datetime):
            return False
        # Parameterized containers still need their elements converted
        return not typing.get_args(base)

    def _convert_union(self, value: Any, union: Any) -> Any:
        args = [a for a in typing.get_args(union) if a is not type(None)]
        for arg in args:
            cls = origin_class(arg)
            if cls is not None and isinstance(value, cls) and not typing.get_args(arg):
                return value
        for arg in args:
            try:
                return self.convert(value, arg)
            except ConversionError:
                continue
        raise ConversionError(value, union, "no union member accepts the value")

    def _convert_builtin(self, value: Any, base: Any, cls: type) -> Any:
        if _is_subclass(cls, Enum):
            return self.to_enum(value, cls)
        if cls is bool:
            return self.to_bool(value)
        if _is_subclass(cls, str):
            return cls(self.to_str(value))
        if _is_subclass(cls, (bytes, bytearray)):
            return cls(value.encode("utf-8") if isinstance(value, str) else value)
        if is_numeric(cls):
            return self.to_number(value, cls)
        if _is_subclass(cls, (datetime, date, time, timedelta)):
            return self.to_temporal(value, cls)
        if cls is uuid.UUID:
            return self.to_uuid(value)
        if is_dictionary(base):
            return self.to_dict(value, base, cls)
        if _is_fixed_tuple(base):
            return self.to_record(value, base, cls)
        if is_collection(base):
            return self.to_collection(value, base, cls)
        if _is_subclass(cls, BaseModel):
            if isinstance(value, BaseModel):
                value = value.model_dump()
            return cls.model_validate(value)
        if dataclasses.is_dataclass(cls) and isinstance(value, Mapping):
            return self.to_dataclass(value, cls)
        return cls(value)

    def to_str(self, value: Any) -> str:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8")
        if isinstance(value, Enum):
            return value.name
        if isinstance(value, (datetime, date, time)):
            return value.isoformat()
        return str(value)

    def to_bool(self, value: Any) -> bool:
        """
        Convert various boolean representations to Python bool.

        Handles: yes/no, true/false, 1/0, y/n, etc.
        """
        if isinstance(value, (int, float, Decimal)):
            return bool(value)

        str_value = str(value).strip().lower()
        settings = _settings()
        if str_value in settings.true_values:
            return True
        if str_value in settings.false_values:
            return False
        raise ConversionError(value, bool, "unrecognized boolean text")

    def to_number(self, value: Any, cls: type) -> Any:
        if isinstance(value, Enum):
            value = value.value
        if isinstance(value, timedelta):
            value = value.total_seconds()
        if isinstance(value, str):
            return self._parse_number(value.strip(), cls)
        if _is_subclass(cls, int):
            if isinstance(value, (float, Decimal, Fraction)):
                return cls(round(value))
            return cls(value)
        if _is_subclass(cls, Decimal) and isinstance(value, float):
            return cls(str(value))
        return cls(value)

    def _parse_number(self, text: str, cls: type) -> Any:
        try:
            return self._parse_plain_number(text, cls)
        except (ValueError, InvalidOperation):
            pass
        normalized = self.normalize_numeric(text)
        if normalized is None:
            raise ConversionError(text, cls, "not a number")
        return self._parse_plain_number(normalized, cls)

    @staticmethod
    def _parse_plain_number(text: str, cls: type) -> Any:
        if _is_subclass(cls, int):
            try:
                return cls(text)
            except ValueError:
                number = Decimal(text)
                if number != number.to_integral_value():
                    raise ConversionError(text, cls, "not an integral number")
                return cls(int(number))
        if _is_subclass(cls, Decimal):
            return cls(text)
        return cls(text)

    @staticmethod
    def normalize_numeric(text: str) -> str | None:
        """
        Strip grouping separators from a numeric string.

        - Handles thousand separators (comma, space or apostrophe)
        - Handles both comma and period as decimal separator
        """
        if not NUMERIC_PATTERN.match(text):
            return None
        num_str = re.sub(r"[\s']", "", text)

        # If both . and , exist, the last one is decimal
        last_comma = num_str.rfind(",")
        last_period = num_str.rfind(".")

        if last_comma > last_period:
            # European format: 1.234,56
            num_str = num_str.replace(".", "").replace(",", ".")
        else:
            # American format: 1,234.56
            num_str = num_str.replace(",", "")

        if not num_str or num_str in ("-", "+"):
            return None
        return num_str

    def to_temporal(self, value: Any, cls: type) -> Any:
        if _is_subclass(cls, timedelta):
            if isinstance(value, (int, float, Decimal)):
                return cls(seconds=float(value))
            return pd.to_timedelta(str(value).strip()).to_pytimedelta()

        if _is_subclass(cls, time) and not _is_subclass(cls, datetime):
            if isinstance(value, datetime):
                return value.time()
            return cls.fromisoformat(str(value).strip())

        if isinstance(value, str):
            parsed = self.parse_datetime(value)
        elif isinstance(value, datetime):
            parsed = value
        elif isinstance(value, date):
            parsed = datetime.combine(value, time())
        elif isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(value)
        else:
            raise ConversionError(value, cls, "not a date")

        if _is_subclass(cls, datetime):
            return parsed
        return parsed.date()

    def parse_datetime(self, text: str) -> datetime:
        """
        Parse a date/time string.

        Tries ISO format, then each configured format, then the pandas parser.
        """
        date_str = text.strip()
        try:
            return datetime.fromisoformat(date_str)
        except ValueError:
            pass

        settings = _settings()
        for fmt in settings.date_formats:
            try:
                return datetime.strptime(date_str, fmt)
            except ValueError:
                continue

        if settings.use_pandas_fallback:
            try:
                parsed = pd.to_datetime(date_str, dayfirst=True)
            except (ValueError, TypeError, OverflowError) as e:
                raise ConversionError(text, datetime, str(e)) from e
            if pd.notna(parsed):
                return parsed.to_pydatetime()

        raise ConversionError(text, datetime, "unrecognized date format")

    def to_uuid(self, value: Any) -> uuid.UUID:
        if isinstance(value, (bytes, bytearray)):
            return uuid.UUID(bytes=bytes(value))
        if isinstance(value, int):
            return uuid.UUID(int=value)
        return uuid.UUID(str(value).strip())

    def to_enum(self, value: Any, cls: type[Enum]) -> Enum:
        """Enum member by name (case-insensitive fallback) or by value."""
        if isinstance(value, Enum):
            value = value.value
        if isinstance(value, bool):
            value = int(value)
        if isinstance(value, str):
            text = value.strip()
            if text in cls.__members__:
                return cls.__members__[text]
            lowered = text.lower()
            for name, member in cls.__members__.items():
                if name.lower() == lowered:
                    return member
            for member in cls:
                if isinstance(member.value, str) and member.value.lower() == lowered:
                    return member
            try:
                value = int(text)
            except ValueError:
                raise ConversionError(value, cls, "no member with that name") from None
        try:
            return cls(value)
        except ValueError as e:
            raise ConversionError(value, cls, "no member with that value") from e

    def to_collection(self, value: Any, base: Any, cls: type) -> Any:
        item_type = element_type(base) or object
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            items = [value]
        elif isinstance(value, Mapping):
            items = list(value.values())
        else:
            items = list(value)
        converted = [self.convert(item, item_type) for item in items]
        concrete = self._concrete(cls)
        return concrete(converted)

    def to_dict(self, value: Any, base: Any, cls: type) -> Any:
        args = typing.get_args(base)
        key_type = args[0] if len(args) == 2 else object
        value_type = args[1] if len(args) == 2 else object
        if isinstance(value, BaseModel):
            value = value.model_dump()
        elif dataclasses.is_dataclass(value) and not isinstance(value, type):
            value = dataclasses.asdict(value)
        if not isinstance(value, Mapping):
            raise ConversionError(value, base, "not a mapping")
        converted = {
            self.convert(k, key_type): self.convert(v, value_type)
            for k, v in value.items()
        }
        concrete = self._concrete(cls)
        return converted if concrete is dict else concrete(converted)

    def to_record(self, value: Any, base: Any, cls: type) -> Any:
        """Fixed-shape tuple or NamedTuple."""
        if hasattr(cls, "_fields"):
            hints = typing.get_type_hints(cls)
            if isinstance(value, Mapping):
                return cls(**{
                    name: self.convert(value[name], hints.get(name, object))
                    for name in cls._fields
                    if name in value
                })
            items = list(value)
            return cls(*(
                self.convert(item, hints.get(name, object))
                for name, item in zip(cls._fields, items)
            ))

        args = typing.get_args(base)
        items = list(value)
        if len(items) != len(args):
            raise ConversionError(value, base, f"expected {len(args)} items, got {len(items)}")
        return tuple(self.convert(item, arg) for item, arg in zip(items, args))

    def to_dataclass(self, value: Mapping, cls: type) -> Any:
        hints = typing.get_type_hints(cls)
        kwargs = {
            f.name: self.convert(value[f.name], hints.get(f.name, object))
            for f in dataclasses.fields(cls)
            if f.init and f.name in value
        }
        return cls(**kwargs)

    @staticmethod
    def _concrete(cls: type) -> type:
        implementation = interface_implementation(cls)
        if implementation is not None:
            return implementation
        if getattr(cls, "__abstractmethods__", None):
            raise ConversionError(None, cls, "abstract collection type without implementation")
        return cls


_converter = TypeConverter()


def change_type(value: Any, target: Any) -> Any:
    """
    Convert ``value`` to ``target``.

    Returns ``value`` unchanged when it already has the target type. ``None``
    (and NaN/NaT/pd.NA) converts to ``None`` for nullable targets.

    Raises:
        ConversionError: If the value cannot be converted
    """
    try:
        return _converter.convert(value, target)
    except ConversionError as e:
        get_logger().trace(TraceEvent.CONVERSION_FAILED, type_name(target), str(e))
        raise


def try_change_type(value: Any, target: Any) -> tuple[bool, Any]:
    """
    Convert without raising.

    Args:
        value: Value to convert
        target: Target type, or a sequence of target types tried in order

    Returns:
        ``(True, converted)`` or ``(False, default value of the first target)``
    """
    targets = list(target) if isinstance(target, (list, tuple)) else [target]
    if not targets:
        return False, None
    for candidate in targets:
        try:
            return True, change_type(value, candidate)
        except (RuntimeStuffError, TypeError, ValueError, ArithmeticError):
            continue
    return False, default_value(targets[0])
