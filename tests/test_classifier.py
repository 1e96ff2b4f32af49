"""
Tests for the Type Classifier module.
"""

import uuid
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Optional

import pytest

from runtime_stuff.core.members.classifier import (
    classify,
    default_value,
    element_type,
    is_basic,
    is_collection,
    is_delegate,
    is_dictionary,
    is_nullable,
    is_numeric,
    is_value_type,
    origin_class,
    unwrap_optional,
)

from sample_types import Color, Pair, Product


class Tags(list[str]):
    pass


class Record(Sequence, Mapping):
    """Both a sequence and a mapping."""

    def __init__(self):
        self._data = {"a": 1}

    def __getitem__(self, key):
        return self._data[key]

    def __len__(self):
        return len(self._data)

    def __iter__(self):
        return iter(self._data)


class TestBasicTypes:
    """Tests for scalar classification."""

    @pytest.mark.parametrize("t", [int, float, str, bool, Decimal, datetime, date, uuid.UUID, Color])
    def test_is_basic(self, t):
        assert is_basic(t) is True

    @pytest.mark.parametrize("t", [list, dict, Product, object])
    def test_not_basic(self, t):
        assert is_basic(t) is False

    def test_numeric_excludes_bool_and_enum(self):
        assert is_numeric(int)
        assert is_numeric(Decimal)
        assert not is_numeric(bool)
        assert not is_numeric(Color)
        assert not is_numeric(float, include_float=False)

    def test_optional_is_unwrapped(self):
        assert unwrap_optional(Optional[int]) is int
        assert unwrap_optional(int | None) is int
        assert origin_class(Annotated[Optional[int], "meta"]) is int
        assert is_basic(Optional[datetime])


class TestNullability:
    """Tests for value types vs. nullable types."""

    def test_value_types_are_not_nullable(self):
        assert is_value_type(int)
        assert not is_nullable(int)
        assert not is_nullable(datetime)

    def test_optional_value_type_is_nullable(self):
        assert is_nullable(Optional[int])
        assert not is_value_type(Optional[int])

    def test_reference_types_are_nullable(self):
        assert is_nullable(str)
        assert is_nullable(Product)
        assert is_nullable(Any)

    def test_default_value(self):
        assert default_value(int) == 0
        assert default_value(bool) is False
        assert default_value(Decimal) == Decimal(0)
        assert default_value(Optional[int]) is None
        assert default_value(str) is None
        assert default_value(Color) is Color.RED


class TestCollections:
    """Tests for collection, dictionary and element type detection."""

    def test_list_is_collection(self):
        assert is_collection(list[int])
        assert element_type(list[int]) is int

    def test_bare_list_element_is_object(self):
        assert element_type(list) is object

    def test_string_is_not_collection(self):
        assert not is_collection(str)
        assert not is_collection(bytes)
        assert element_type(str) is None

    def test_element_type_from_base_class(self):
        assert is_collection(Tags)
        assert element_type(Tags) is str

    def test_dictionary(self):
        assert is_dictionary(dict[str, int])
        assert not is_collection(dict[str, int])
        assert element_type(dict[str, int]) is int

    def test_sequence_and_mapping_is_dictionary(self):
        assert is_dictionary(Record)
        assert not is_collection(Record)

    def test_fixed_tuple_is_record(self):
        assert not is_collection(tuple[int, str])
        assert is_collection(tuple[int, ...])
        assert not is_collection(Pair)

    def test_delegates(self):
        assert is_delegate(Callable[[int], str])
        assert not is_delegate(int)


class TestClassify:
    """Tests for the aggregate classification."""

    def test_basic_collection(self):
        flags = classify(list[str])
        assert flags.is_collection
        assert flags.element_type is str
        assert flags.is_basic_collection
        assert not flags.is_basic

    def test_object(self):
        flags = classify(object)
        assert flags.is_object
        assert flags.is_nullable
        assert not flags.is_collection

    def test_enum(self):
        flags = classify(Color)
        assert flags.is_enum
        assert flags.is_basic
        assert not flags.is_nullable
