"""
Tests for the Name Resolver module.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Annotated

import pytest

from runtime_stuff.config import configure
from runtime_stuff.core.logger import TraceEvent, get_logger
from runtime_stuff.core.members import (
    DisplayName,
    JsonProperty,
    NameKind,
    describe,
    is_field,
    is_method,
    is_property,
    resolve,
)
from runtime_stuff.core.members.resolver import fuzzy_key

from sample_types import Customer, Order, User


@dataclass
class Twins:
    value: int = 1
    Value: int = 2


class TestStructuralNames:
    """Tests for resolution by structural name."""

    def test_exact_name(self):
        member = resolve(describe(User), "name")
        assert member.name == "name"
        assert member.value_type is str

    def test_repeated_calls_return_same_descriptor(self):
        user = describe(User)
        assert resolve(user, "email") is resolve(user, "email")

    def test_case_insensitive(self):
        assert resolve(describe(User), "EMAIL").name == "email"

    def test_exact_case_preferred(self):
        assert resolve(describe(Twins), "Value").name == "Value"

    def test_exact_case_preference_disabled(self):
        configure({"resolution": {"prefer_exact_case": False}})
        assert resolve(describe(Twins), "Value").name == "value"

    def test_blank_names(self):
        user = describe(User)
        assert resolve(user, None) is None
        assert resolve(user, "") is None
        assert resolve(user, "   ") is None

    def test_unknown_name(self):
        assert resolve(describe(User), "nickname") is None

    def test_miss_is_traced(self):
        resolve(describe(User), "nickname")
        assert get_logger().count(TraceEvent.RESOLUTION_MISS) == 1

    def test_miss_is_memoized(self):
        user = describe(User)
        resolve(user, "nickname")
        resolve(user, "nickname")
        assert get_logger().count(TraceEvent.RESOLUTION_MISS) == 1


class TestAliases:
    """Tests for alias and fuzzy resolution."""

    def test_fuzzy_spellings_converge(self):
        user = describe(User)
        member = resolve(user, "user_id")
        assert resolve(user, "UserId") is member
        assert resolve(user, "User.Id") is member
        assert resolve(user, "user-id") is member

    def test_display_name(self):
        assert resolve(describe(User), "Full Name").name == "name"
        assert resolve(describe(User), "fullname").name == "name"

    def test_column_name(self):
        assert resolve(describe(User), "user_name").name == "name"

    def test_json_alias_on_pydantic_model(self):
        assert resolve(describe(Customer), "fullName").name == "full_name"

    def test_xml_name(self):
        assert resolve(describe(Order), "ref").name == "reference"

    def test_name_kind_mask(self):
        user = describe(User)
        assert resolve(user, "Full Name", NameKind.JSON_NAME) is None
        assert resolve(user, "Full Name", NameKind.DISPLAY_NAME).name == "name"
        assert resolve(user, "UserId", NameKind.NAME | NameKind.JSON_NAME).name == "user_id"

    def test_structural_name_outside_mask(self):
        assert resolve(describe(User), "email", NameKind.DISPLAY_NAME) is None

    def test_configured_ignore_chars(self):
        configure({"resolution": {"ignore_chars": "_"}})
        assert fuzzy_key("User.Id") == "user.id"
        assert resolve(describe(User), "User.Id") is None

    def test_name_kind_from_strings(self):
        assert NameKind.from_strings(["display", "json"]) == NameKind.DISPLAY_NAME | NameKind.JSON_NAME
        assert NameKind.from_strings(["any"]) == NameKind.ANY
        with pytest.raises(ValueError):
            NameKind.from_strings(["nope"])


class TestFilters:
    """Tests for member filters."""

    def test_filter_restricts_kind(self):
        user = describe(User)
        assert resolve(user, "greet", member_filter=is_method).name == "greet"
        assert resolve(user, "greet", member_filter=is_property) is None
        assert resolve(user, "kind", member_filter=is_field).name == "kind"

    def test_filter_is_part_of_memo_key(self):
        user = describe(User)
        assert resolve(user, "greet", member_filter=is_property) is None
        assert resolve(user, "greet") is not None

    def test_descriptor_helpers(self):
        user = describe(User)
        assert user.get_property("name").name == "name"
        assert user.get_method("GREET").name == "greet"
        assert user.get_field("name") is None
        assert "Full Name" in user
        with pytest.raises(KeyError):
            user["missing"]


class TestConcurrency:
    """Tests for concurrent first-time resolution."""

    def test_threads_converge_on_one_descriptor(self):
        @dataclass
        class Account:
            account_id: Annotated[int, JsonProperty("AccountId")] = 0
            owner: Annotated[str, DisplayName("Account Owner")] = ""

        def work(_):
            return resolve(describe(Account), "Account Owner")

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(work, range(64)))

        assert all(r is results[0] for r in results)
        assert results[0].name == "owner"
        assert all(describe(Account) is describe(Account) for _ in range(4))


class TestMemoBounds:
    """Tests for the per-type resolution memo."""

    def test_memo_follows_configured_bound(self):
        configure({"cache": {"max_entries": 2}})
        user = describe(User)
        for name in ("name", "email", "tags", "favorite"):
            resolve(user, name, member_filter=lambda m: True)
        assert len(user._resolution) <= 2
