"""
Tests for the Member Descriptor module.
"""

import pytest

from runtime_stuff.core.errors import NotSupportedError, UnsupportedMemberKindError
from runtime_stuff.core.members import DescriptorState, MemberDescriptor, describe, describe_member
from runtime_stuff.core.members.inspector import PythonMemberProvider

from sample_types import Button, Customer, Money, Order, Product, User


class TestTypeDescriptor:
    """Tests for type-level descriptors."""

    def test_describe_is_cached(self):
        assert describe(User) is describe(User)

    def test_none_rejected(self):
        with pytest.raises(TypeError):
            describe(None)

    def test_member_groups(self):
        user = describe(User)
        assert {p.name for p in user.properties} >= {"user_id", "name", "email", "tags"}
        assert {m.name for m in user.methods} == {"greet", "normalize", "anonymous"}
        assert [f.name for f in user.fields] == ["kind"]

    def test_collection_member(self):
        tags = describe(User)["tags"]
        assert tags.is_collection
        assert tags.element_type is str
        assert tags.is_basic_collection

    def test_dictionary_member(self):
        notes = describe(Order)["notes"]
        assert notes.is_dictionary
        assert not notes.is_collection

    def test_events(self):
        assert [e.name for e in describe(Button).events] == ["clicked"]

    def test_default_constructor(self):
        assert describe(User).default_constructor is User
        assert describe(Money).default_constructor is None

    def test_state_is_ready(self):
        assert describe(User).state == DescriptorState.READY


class TestAttributes:
    """Tests for alias and marker extraction."""

    def test_marker_aliases(self):
        user = describe(User)
        assert user["name"].display_name == "Full Name"
        assert user["name"].column_name == "user_name"
        assert user["user_id"].json_name == "UserId"
        assert user["email"].column_name == "email"

    def test_pydantic_field_info(self):
        full_name = describe(Customer)["full_name"]
        assert full_name.display_name == "Customer Name"
        assert full_name.json_name == "fullName"
        assert full_name.description == "Legal name"

    def test_xml_and_description_markers(self):
        reference = describe(Order)["reference"]
        assert reference.xml_element_name == "ref"
        assert reference.description == "External reference"

    def test_property_docstring_is_description(self):
        assert describe(Product)["total"].description == "Price times quantity."

    def test_markers_lookup(self):
        user_id = describe(User)["user_id"]
        assert user_id.has_marker("Key")
        assert user_id.has_marker("KeyAttribute")
        assert user_id.has_any_marker("Column", "Key")
        assert not user_id.has_all_markers("Column", "Key")


class TestOrmMetadata:
    """Tests for table, key and column discovery."""

    def test_table_and_schema(self):
        user = describe(User)
        assert user.table_name == "users"
        assert user.schema_name == "auth"
        assert user.full_table_name() == "[auth].[users]"
        assert user["name"].full_column_name() == "[auth].[users].[user_name]"

    def test_table_defaults_to_type_name(self):
        product = describe(Product)
        assert product.table_name == "Product"
        assert product.full_table_name('"', '"', default_schema="dbo") == '"dbo"."Product"'

    def test_primary_keys(self):
        user = describe(User)
        assert [k.name for k in user.primary_keys] == ["user_id"]
        assert user["user_id"].is_identity

    def test_marked_columns(self):
        assert [c.name for c in describe(User).columns] == ["user_id", "name"]

    def test_columns_without_markers(self):
        names = {c.name for c in describe(Product).columns}
        assert names
        assert {"sku", "price", "quantity"} <= names
        assert "components" not in names

    def test_navigation_tables(self):
        names = {t.name for t in describe(Order).tables}
        assert {"customer", "lines"} <= names
        assert "order_id" not in names

    def test_foreign_key(self):
        fk = describe(User).get_foreign_key(Order)
        assert fk is not None
        assert fk.name == "customer_id"
        assert describe(Product).get_foreign_key(Order) is None


class TestValues:
    """Tests for value access through descriptors."""

    def test_get_and_set_with_conversion(self):
        user = User()
        member = describe(User)["user_id"]
        member.set_value(user, "42")
        assert user.user_id == 42
        assert member.get_value(user) == 42

    def test_set_with_custom_converter(self):
        user = User()
        describe(User)["name"].set_value(user, "  ann ", converter=str.strip)
        assert user.name == "ann"

    def test_read_only_member(self):
        total = describe(Product)["total"]
        assert total.can_read
        assert not total.can_write
        with pytest.raises(NotSupportedError):
            total.set_value(Product(), 1.0)

    def test_invoke(self):
        assert describe(User)["greet"].invoke(User(name="Bo")) == "Hello, Bo"

    def test_to_dictionary(self):
        user = User(user_id=7, name="Ann")
        values = describe(User).to_dictionary(user, "user_id", "name")
        assert values == {"user_id": 7, "name": "Ann"}


class TestImmutability:
    """Tests for copy construction and immutability."""

    def test_cannot_set_public_attributes(self):
        user = describe(User)
        with pytest.raises(AttributeError):
            user.name = "Other"
        with pytest.raises(AttributeError):
            del user.name

    def test_copy_does_not_rescan(self, monkeypatch):
        original = describe(User)["tags"]
        calls = []
        extract = MemberDescriptor._extract_attributes

        def spy(self, raw):
            calls.append(raw)
            return extract(self, raw)

        monkeypatch.setattr(MemberDescriptor, "_extract_attributes", spy)
        copy = MemberDescriptor(original)

        assert calls == []
        assert copy is not original
        assert copy.name == original.name
        assert copy.is_collection == original.is_collection
        assert copy.element_type is original.element_type
        assert copy.markers == original.markers

    def test_copy_shares_collections(self):
        original = describe(User)
        copy = MemberDescriptor(original)
        assert copy.members is original.members
        assert copy.columns == original.columns

    def test_unsupported_kind(self):
        with pytest.raises(UnsupportedMemberKindError):
            MemberDescriptor(object())

    def test_describe_member(self):
        raw = next(m for m in PythonMemberProvider().get_members(User) if m.name == "email")
        assert describe_member(raw) is describe_member(raw)
        assert describe_member(raw).is_nullable
