"""Tests for the JSON Schema codec."""

import pytest

from content_spine.core.errors import InvalidDescriptorError
from content_spine.schema import Schema, from_json_schema, to_json_schema
from tests._support import USER_ID, user_schema


class TestEncoding:
    def test_user_document(self):
        document = to_json_schema(user_schema().descriptor)
        assert document["title"] == "User"
        assert document["type"] == "object"
        assert document["additionalProperties"] is False
        assert document["required"] == ["id", "name"]
        assert document["properties"]["id"] == {"type": "string", "minLength": 1}
        assert document["properties"]["tags"] == {"type": "array", "items": {"type": "string"}}
        assert document["properties"]["address"] == {"$ref": "#/definitions/Address"}
        assert document["definitions"]["Address"]["required"] == ["city"]

    def test_decodes_back_to_the_same_descriptor(self):
        schema = user_schema()
        assert Schema.from_json_schema(USER_ID, schema.to_json_schema()) == schema

    def test_to_dict(self):
        d = user_schema().to_dict()
        assert d["info"] == {"namespace": "example", "name": "User", "version": "V1"}
        assert d["jsonSchema"]["title"] == "User"


class TestDecodingErrors:
    def test_not_an_object(self):
        with pytest.raises(InvalidDescriptorError):
            from_json_schema({"type": "array"})

    def test_unsupported_type(self):
        with pytest.raises(InvalidDescriptorError, match="unsupported type 'integer'"):
            from_json_schema({"type": "object", "properties": {"n": {"type": "integer"}}})

    def test_unsupported_ref(self):
        with pytest.raises(InvalidDescriptorError, match="unsupported \\$ref"):
            from_json_schema({"type": "object", "properties": {"a": {"$ref": "http://x/y"}}})

    def test_required_names_unknown_property(self):
        with pytest.raises(InvalidDescriptorError, match="unknown properties"):
            from_json_schema({"type": "object", "properties": {}, "required": ["ghost"]})

    def test_dangling_ref(self):
        with pytest.raises(InvalidDescriptorError, match="unknown definition"):
            from_json_schema(
                {"type": "object", "properties": {"a": {"$ref": "#/definitions/Missing"}}}
            )
