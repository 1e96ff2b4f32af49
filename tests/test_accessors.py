"""
Tests for the Accessor Compiler module.
"""

from collections.abc import Sequence

import pytest

from runtime_stuff.core import obj
from runtime_stuff.core.errors import NotSupportedError
from runtime_stuff.core.members import NO_CONSTRUCTOR, MemberKind, get_default_constructor, set_member_provider
from runtime_stuff.core.members.accessors import (
    compile_getter,
    compile_invoker,
    compile_setter,
    get_getter,
    is_frozen,
)
from runtime_stuff.core.members.inspector import PythonMemberProvider

from sample_types import Color, Customer, Money, Pair, Point, Product, User


def raw(cls, name):
    return next(m for m in PythonMemberProvider().get_members(cls) if m.name == name)


class TestGetters:
    """Tests for compiled getters."""

    def test_attribute_getter(self):
        getter = compile_getter(raw(User, "name"))
        assert getter(User(name="alice")) == "alice"

    def test_property_getter(self):
        getter = compile_getter(raw(Product, "total"))
        assert getter(Product("a", 2.5, 4)) == 10.0

    def test_cached_property_getter(self):
        getter = compile_getter(raw(Product, "label"))
        assert getter(Product("a", 1.0, 3)) == "a x3"

    def test_methods_cannot_be_read(self):
        with pytest.raises(NotSupportedError):
            compile_getter(raw(User, "greet"))

    def test_getter_is_cached(self):
        member = raw(User, "name")
        assert get_getter(member) is get_getter(member)


class TestSetters:
    """Tests for compiled setters."""

    def test_attribute_setter(self):
        user = User()
        compile_setter(raw(User, "name"))(user, "bob")
        assert user.name == "bob"

    def test_read_only_property_uses_backing_field(self):
        product = Product("abc")
        compile_setter(raw(Product, "code"))(product, "XYZ")
        assert product.code == "XYZ"

    def test_read_only_property_without_backing_field(self):
        with pytest.raises(NotSupportedError):
            compile_setter(raw(Product, "total"))

    def test_cached_property_setter(self):
        product = Product("a", 1.0, 1)
        compile_setter(raw(Product, "label"))(product, "custom")
        assert product.label == "custom"

    def test_frozen_dataclass(self):
        point = Point(1, 2)
        compile_setter(raw(Point, "x"))(point, 10)
        assert point.x == 10
        assert is_frozen(Point)

    def test_pydantic_model(self):
        customer = Customer()
        compile_setter(raw(Customer, "active"))(customer, False)
        assert customer.active is False

    def test_namedtuple_is_immutable(self):
        with pytest.raises(NotSupportedError):
            compile_setter(raw(Pair, "left"))


class TestInvokers:
    """Tests for compiled invokers."""

    def test_instance_method(self):
        invoke = compile_invoker(raw(User, "greet"))
        assert invoke(User(name="Ann"), "Hi") == "Hi, Ann"

    def test_static_method_ignores_instance(self):
        invoke = compile_invoker(raw(User, "normalize"))
        assert invoke(None, "  jane doe ") == "Jane Doe"

    def test_class_method_binds_class(self):
        invoke = compile_invoker(raw(User, "anonymous"))
        assert invoke(None).name == "anonymous"
        assert isinstance(invoke(User()), User)

    def test_fields_cannot_be_invoked(self):
        with pytest.raises(NotSupportedError):
            compile_invoker(raw(User, "name"))


class TestDefaultConstructor:
    """Tests for zero-argument constructor discovery."""

    def test_class_with_defaults(self):
        assert get_default_constructor(User) is User
        assert get_default_constructor(Product) is Product

    def test_required_parameters(self):
        assert get_default_constructor(Money) is NO_CONSTRUCTOR
        assert not get_default_constructor(Money)

    def test_builtins(self):
        assert get_default_constructor(int)() == 0
        assert get_default_constructor(list)() == []

    def test_abstract_and_enum(self):
        assert get_default_constructor(Sequence) is NO_CONSTRUCTOR
        assert get_default_constructor(Color) is NO_CONSTRUCTOR

    def test_member_kind_of_constructor(self):
        ctor = PythonMemberProvider().get_constructors(User)[0]
        assert ctor.kind == MemberKind.CONSTRUCTOR
        assert compile_invoker(ctor)(None, name="x").name == "x"


class RecordingProvider(PythonMemberProvider):
    def __init__(self):
        self.reads = []
        self.writes = []

    def read_value(self, instance, member):
        self.reads.append(member.name)
        return super().read_value(instance, member)

    def write_value(self, instance, member, value):
        self.writes.append((member.name, value))
        super().write_value(instance, member, value)


class TestProviderValueAccess:
    """Tests for value access through the installed member provider."""

    @pytest.fixture
    def provider(self):
        provider = RecordingProvider()
        set_member_provider(provider)
        yield provider
        set_member_provider(PythonMemberProvider())

    def test_reads_go_through_provider(self, provider):
        assert obj.get_value(User(name="alice"), "name") == "alice"
        assert provider.reads == ["name"]

    def test_writes_go_through_provider(self, provider):
        user = User()
        obj.set_value(user, "email", "a@b.c")
        assert user.email == "a@b.c"
        assert provider.writes == [("email", "a@b.c")]

    def test_properties_use_their_own_accessors(self, provider):
        assert obj.get_value(Product("a", 2.5, 4), "total") == 10.0
        assert provider.reads == []
