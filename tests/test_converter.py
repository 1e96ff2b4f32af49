"""
Tests for the Type Converter module.
"""

import math
import uuid
from collections.abc import Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

import pandas as pd
import pytest

from runtime_stuff.core.converter import (
    TypeConverter,
    add_custom_type_converter,
    change_type,
    get_custom_type_converter,
    is_missing,
    remove_custom_type_converter,
    try_change_type,
)
from runtime_stuff.core.errors import ConversionError
from runtime_stuff.core.logger import TraceEvent, get_logger

from sample_types import Color, Customer, OrderLine, Pair


class Celsius:
    def __init__(self, degrees: float):
        self.degrees = degrees


class Shouter:
    def __init__(self, text: str):
        self.text = text.upper()


class TestScalars:
    """Tests for scalar conversion."""

    def test_string_to_int(self):
        assert change_type("123", int) == 123

    def test_identity_when_assignable(self):
        value = [1, 2]
        assert change_type(value, list) is value

    def test_float_to_int_rounds(self):
        assert change_type(2.6, int) == 3

    def test_integral_text_to_int(self):
        assert change_type("4.0", int) == 4

    @pytest.mark.parametrize("text", ["1.5", "1,5"])
    def test_fractional_text_to_int_fails(self, text):
        with pytest.raises(ConversionError):
            change_type(text, int)
        assert try_change_type(text, int) == (False, 0)

    def test_formatted_numbers(self):
        assert change_type("1,234.5", float) == 1234.5
        assert change_type("1.234,5", float) == 1234.5
        assert change_type("12.5", Decimal) == Decimal("12.5")

    def test_bool_to_number(self):
        assert change_type(True, int) == 1
        assert type(change_type(True, int)) is int

    @pytest.mark.parametrize("text,expected", [
        ("yes", True),
        ("Y", True),
        ("1", True),
        ("off", False),
        ("no", False),
    ])
    def test_bool_text(self, text, expected):
        assert change_type(text, bool) is expected

    def test_unrecognized_bool(self):
        with pytest.raises(ConversionError):
            change_type("maybe", bool)

    def test_to_str(self):
        assert change_type(12, str) == "12"
        assert change_type(Color.GREEN, str) == "GREEN"
        assert change_type(b"abc", str) == "abc"

    def test_uuid(self):
        value = uuid.uuid4()
        assert change_type(str(value), uuid.UUID) == value

    def test_blank_string_gives_default(self):
        assert change_type("  ", int) == 0
        assert change_type("", Optional[int]) is None


class TestMissingValues:
    """Tests for None and pandas missing values."""

    def test_none_to_nullable(self):
        assert change_type(None, Optional[int]) is None
        assert change_type(None, str) is None

    def test_none_to_value_type_raises(self):
        with pytest.raises(ConversionError):
            change_type(None, int)

    def test_pandas_missing_values(self):
        assert is_missing(float("nan"))
        assert is_missing(pd.NaT)
        assert is_missing(pd.NA)
        assert not is_missing("")
        assert not is_missing([None])

    def test_nan_kept_for_float_targets(self):
        assert math.isnan(change_type(float("nan"), float))
        assert math.isnan(change_type(float("nan"), Optional[float]))

    def test_nan_to_int_raises(self):
        with pytest.raises(ConversionError):
            change_type(float("nan"), int)
        assert change_type(pd.NA, Optional[float]) is None

    def test_failure_is_traced(self):
        with pytest.raises(ConversionError):
            change_type("abc", int)
        assert get_logger().count(TraceEvent.CONVERSION_FAILED) == 1


class TestDates:
    """Tests for date and time conversion."""

    def test_iso(self):
        assert change_type("2024-12-25", date) == date(2024, 12, 25)
        assert change_type("2024-12-25T10:30:00", datetime) == datetime(2024, 12, 25, 10, 30)

    def test_configured_formats(self):
        assert change_type("25/12/2024", date) == date(2024, 12, 25)
        assert change_type("25.12.2024", date) == date(2024, 12, 25)

    def test_datetime_to_date(self):
        assert change_type(datetime(2024, 1, 2, 3, 4), date) == date(2024, 1, 2)

    def test_timedelta(self):
        assert change_type(90, timedelta) == timedelta(seconds=90)
        assert change_type("1 days 02:00:00", timedelta) == timedelta(days=1, hours=2)

    def test_invalid_date(self):
        with pytest.raises(ConversionError):
            change_type("not a date", date)


class TestEnums:
    """Tests for enum conversion."""

    def test_by_name(self):
        assert change_type("GREEN", Color) is Color.GREEN
        assert change_type("green", Color) is Color.GREEN

    def test_by_value(self):
        assert change_type(3, Color) is Color.BLUE
        assert change_type("3", Color) is Color.BLUE

    def test_unknown(self):
        with pytest.raises(ConversionError):
            change_type("purple", Color)


class TestCollections:
    """Tests for collection, mapping and record conversion."""

    def test_elements_are_converted(self):
        assert change_type(["1", "2"], list[int]) == [1, 2]
        assert change_type(("a", "a"), set[str]) == {"a"}

    def test_abstract_target_uses_implementation(self):
        result = change_type(("1", "2"), Sequence[int])
        assert result == [1, 2]
        assert isinstance(result, list)

    def test_scalar_wrapped(self):
        assert change_type("7", list[int]) == [7]

    def test_mapping(self):
        assert change_type({"1": "2"}, dict[int, int]) == {1: 2}

    def test_fixed_tuple(self):
        assert change_type(["1", "x"], tuple[int, str]) == (1, "x")
        with pytest.raises(ConversionError):
            change_type([1], tuple[int, str])

    def test_namedtuple(self):
        assert change_type(["1", "2"], Pair) == Pair(1, 2)
        assert change_type({"left": "5"}, Pair) == Pair(5, 0)

    def test_dataclass_from_mapping(self):
        line = change_type({"amount": "4"}, OrderLine)
        assert line.amount == 4

    def test_pydantic_model(self):
        customer = change_type({"customer_id": "3", "fullName": "Ann"}, Customer)
        assert customer.customer_id == 3
        assert customer.full_name == "Ann"


class TestCustomConverters:
    """Tests for user-registered converters."""

    def test_custom_converter_wins(self):
        add_custom_type_converter(float, Celsius, lambda v: Celsius(v))
        try:
            assert get_custom_type_converter(float, Celsius) is not None
            assert change_type(21.5, Celsius).degrees == 21.5
        finally:
            remove_custom_type_converter(float, Celsius)
        assert get_custom_type_converter(float, Celsius) is None

    def test_source_type_matched_exactly(self):
        add_custom_type_converter(int, str, lambda v: f"#{v}")
        try:
            assert change_type(5, str) == "#5"
            assert change_type(True, str) == "True"
        finally:
            remove_custom_type_converter(int, str)

    def test_assignable_value_skips_converter(self):
        add_custom_type_converter(int, int, lambda v: v * 100)
        try:
            assert change_type(5, int) == 5
        finally:
            remove_custom_type_converter(int, int)

    def test_failing_converter_raises_conversion_error(self):
        def lookup(value):
            return {"a": 1}[value]

        add_custom_type_converter(str, int, lookup)
        try:
            with pytest.raises(ConversionError):
                change_type("x", int)
            assert try_change_type("x", int) == (False, 0)
        finally:
            remove_custom_type_converter(str, int)

    def test_invalid_registration(self):
        with pytest.raises(TypeError):
            add_custom_type_converter(int, None, str)
        with pytest.raises(TypeError):
            add_custom_type_converter(int, str, "not callable")


class TestTryChangeType:
    """Tests for non-raising conversion."""

    def test_failure_returns_default(self):
        assert try_change_type("abc", int) == (False, 0)

    def test_success(self):
        assert try_change_type("12", int) == (True, 12)

    def test_several_targets(self):
        assert try_change_type("abc", [int, Color, str]) == (True, "abc")
        assert try_change_type("GREEN", (int, Color)) == (True, Color.GREEN)

    def test_none_to_value_type(self):
        assert try_change_type(None, int) == (False, 0)

    def test_failing_constructor_fallback(self):
        assert try_change_type(5, Shouter) == (False, None)


class TestNormalizeNumeric:
    """Tests for numeric text normalization."""

    def test_separators(self):
        assert TypeConverter.normalize_numeric("1 234,5") == "1234.5"
        assert TypeConverter.normalize_numeric("1'000") == "1000"
        assert TypeConverter.normalize_numeric("abc") is None
