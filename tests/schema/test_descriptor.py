"""Tests for SchemaIdentity and the descriptor builders."""

import pytest

from content_spine.core.errors import InvalidDescriptorError
from content_spine.schema import (
    ArrayOf,
    ArrayRef,
    ObjectBuilder,
    ObjectRef,
    Primitive,
    PrimitiveKind,
    SchemaBuilder,
    SchemaIdentity,
)


class TestSchemaIdentity:
    def test_key_and_parse(self):
        ident = SchemaIdentity("example", "User", "V1")
        assert ident.key == "example.User.V1"
        assert str(ident) == "example.User.V1"
        assert SchemaIdentity.parse("example.User.V1") == ident

    @pytest.mark.parametrize("parts", [("", "User", "V1"), ("ex.ample", "User", "V1"), ("a", "b", "")])
    def test_rejects_empty_or_dotted_components(self, parts):
        with pytest.raises(InvalidDescriptorError):
            SchemaIdentity(*parts)

    @pytest.mark.parametrize("key", ["example.User", "a.b.c.d", ""])
    def test_parse_rejects_wrong_arity(self, key):
        with pytest.raises(InvalidDescriptorError):
            SchemaIdentity.parse(key)


class TestSchemaBuilder:
    def test_builds_properties_and_collects_nested_definitions(self):
        comment = ObjectBuilder("Comment").string("text")
        post = ObjectBuilder("Post").string("title").array_of("comments", comment, required=False)
        descriptor = (
            SchemaBuilder("User")
            .string("id", non_empty=True)
            .number("age", required=False)
            .boolean("active")
            .array("tags", PrimitiveKind.STRING)
            .array_of("posts", post)
            .build()
        )

        props = descriptor.properties
        assert props["id"].type == Primitive(PrimitiveKind.STRING)
        assert props["id"].non_empty is True
        assert props["age"].required is False
        assert props["tags"].type == ArrayOf(PrimitiveKind.STRING)
        assert props["posts"].type == ArrayRef("Post")
        assert sorted(descriptor.definitions) == ["Comment", "Post"]
        assert descriptor.definitions["Post"].properties["comments"].type == ArrayRef("Comment")

    def test_recursive_shape_by_name(self):
        node = ObjectBuilder("Node").string("label").array_of("children", "Node", required=False)
        descriptor = SchemaBuilder("Tree").object("root", "Node").define(node).build()
        assert descriptor.properties["root"].type == ObjectRef("Node")
        assert descriptor.resolve("Node").properties["children"].type == ArrayRef("Node")

    def test_dangling_ref_is_rejected(self):
        with pytest.raises(InvalidDescriptorError, match="unknown definition 'Missing'"):
            SchemaBuilder("User").object("address", "Missing").build()

    def test_reserved_property_name(self):
        with pytest.raises(InvalidDescriptorError, match="reserved"):
            SchemaBuilder("User").string("_id")

    def test_duplicate_property(self):
        with pytest.raises(InvalidDescriptorError, match="defined twice"):
            SchemaBuilder("User").string("id").number("id")

    def test_conflicting_definitions(self):
        first = ObjectBuilder("Address").string("city")
        second = ObjectBuilder("Address").number("zip")
        with pytest.raises(InvalidDescriptorError, match="Conflicting"):
            SchemaBuilder("User").object("home", first).object("work", second).build()

    def test_same_definition_twice_is_fine(self):
        address = ObjectBuilder("Address").string("city")
        descriptor = SchemaBuilder("User").object("home", address).object("work", address).build()
        assert list(descriptor.definitions) == ["Address"]

    def test_unknown_array_item_kind(self):
        with pytest.raises(ValueError):
            SchemaBuilder("User").array("tags", "date")
