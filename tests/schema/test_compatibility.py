"""Tests for structural backward-compatibility checking."""

import pytest

from content_spine.schema import (
    ObjectBuilder,
    PrimitiveKind,
    Schema,
    SchemaBuilder,
    SchemaIdentity,
    check_compatibility,
    is_compatible,
)


def user(**overrides):
    """User descriptor; keyword args replace the default builder steps."""
    steps = {
        "id": lambda b: b.string("id"),
        "name": lambda b: b.string("name"),
        "age": lambda b: b.number("age", required=False),
    }
    steps.update(overrides)
    builder = SchemaBuilder("User")
    for step in steps.values():
        if step is not None:
            step(builder)
    return builder.build()


class TestCompatibleChanges:
    def test_identical(self):
        assert is_compatible(user(), user())

    def test_add_optional_property(self):
        new = user(email=lambda b: b.string("email", required=False))
        assert check_compatibility(new, user()) == []

    def test_remove_optional_property(self):
        assert is_compatible(user(age=None), user())

    def test_records_keeping_a_removed_optional_property_no_longer_validate(self):
        identity = SchemaIdentity("example", "User", "V1")
        old, new = Schema(identity, user()), Schema(identity, user(age=None))
        record = {"id": "1", "name": "Ada", "age": 36}

        assert is_compatible(new.descriptor, old.descriptor)
        assert old.validate(record).is_ok()
        errors = new.validate(record).error.errors
        assert [(e.field, e.message) for e in errors] == [("", "must NOT have additional properties")]

    def test_required_to_optional(self):
        assert is_compatible(user(name=lambda b: b.string("name", required=False)), user())

    def test_drop_non_empty(self):
        old = user(id=lambda b: b.string("id", non_empty=True))
        assert is_compatible(user(), old)

    def test_renamed_definition_with_same_shape(self):
        old = SchemaBuilder("User").object("address", ObjectBuilder("Address").string("city")).build()
        new = SchemaBuilder("User").object("address", ObjectBuilder("Location").string("city")).build()
        assert is_compatible(new, old)

    def test_recursive_shapes_terminate(self):
        node = ObjectBuilder("Node").string("label").array_of("children", "Node", required=False)
        old = SchemaBuilder("Tree").object("root", "Node").define(node).build()
        node2 = (
            ObjectBuilder("Node")
            .string("label")
            .array_of("children", "Node", required=False)
            .number("weight", required=False)
        )
        new = SchemaBuilder("Tree").object("root", "Node").define(node2).build()
        assert is_compatible(new, old)


class TestBreakingChanges:
    def test_remove_required_property(self):
        assert check_compatibility(user(name=None), user()) == [
            "User.name: required property was removed"
        ]

    def test_add_required_property(self):
        new = user(email=lambda b: b.string("email"))
        assert check_compatibility(new, user()) == ["User.email: new property must be optional"]

    def test_optional_to_required(self):
        new = user(age=lambda b: b.number("age"))
        assert check_compatibility(new, user()) == ["User.age: optional property became required"]

    def test_type_change(self):
        new = user(age=lambda b: b.string("age", required=False))
        assert check_compatibility(new, user()) == ["User.age: type changed from number to string"]

    def test_array_item_change(self):
        old = SchemaBuilder("User").array("tags", PrimitiveKind.STRING).build()
        new = SchemaBuilder("User").array("tags", PrimitiveKind.NUMBER).build()
        assert check_compatibility(new, old) == [
            "User.tags: type changed from array<string> to array<number>"
        ]

    def test_add_non_empty(self):
        new = user(id=lambda b: b.string("id", non_empty=True))
        assert check_compatibility(new, user()) == ["User.id: string property became non-empty"]

    @pytest.mark.parametrize("nested", ["object", "array_of"])
    def test_breaking_nested_definition(self, nested):
        old_addr = ObjectBuilder("Address").string("city").string("zip")
        new_addr = ObjectBuilder("Address").string("city")
        old = getattr(SchemaBuilder("User"), nested)("address", old_addr).build()
        new = getattr(SchemaBuilder("User"), nested)("address", new_addr).build()
        assert check_compatibility(new, old) == ["User.address.zip: required property was removed"]

    def test_object_to_array_of_objects(self):
        addr = ObjectBuilder("Address").string("city")
        old = SchemaBuilder("User").object("address", addr).build()
        new = SchemaBuilder("User").array_of("address", addr).build()
        assert check_compatibility(new, old) == [
            "User.address: type changed from object<Address> to array<Address>"
        ]
