"""JSON Schema encoding of schema descriptors.

The JSON Schema document is both the storage form of a registered schema
and the form producers send over the wire.  Only the subset produced by
:func:`to_json_schema` is accepted back by :func:`from_json_schema`::

    {
      "title": "User",
      "type": "object",
      "additionalProperties": false,
      "properties": {
        "id":      {"type": "string", "minLength": 1},
        "tags":    {"type": "array", "items": {"type": "string"}},
        "address": {"$ref": "#/definitions/Address"},
        "posts":   {"type": "array", "items": {"$ref": "#/definitions/Post"}}
      },
      "required": ["id", "address"],
      "definitions": {
        "Address": {"title": "Address", "type": "object", "properties": {...}, "required": [...]}
      }
    }
"""

from __future__ import annotations

from typing import Any

from content_spine.core.errors import InvalidDescriptorError
from content_spine.schema.descriptor import (
    ArrayOf,
    ArrayRef,
    ObjectDescriptor,
    ObjectRef,
    Primitive,
    PrimitiveKind,
    Property,
    PropertyType,
    SchemaDescriptor,
)

_REF_PREFIX = "#/definitions/"


# ── Encoding ─────────────────────────────────────────────────────────────


def to_json_schema(descriptor: SchemaDescriptor) -> dict[str, Any]:
    document = _encode_object(descriptor.root)
    document["additionalProperties"] = False
    document["definitions"] = {
        name: _encode_object(definition)
        for name, definition in descriptor.definitions.items()
    }
    return document


def _encode_object(obj: ObjectDescriptor) -> dict[str, Any]:
    return {
        "title": obj.name,
        "type": "object",
        "properties": {name: _encode_property(prop) for name, prop in obj.properties.items()},
        "required": [name for name, prop in obj.properties.items() if prop.required],
    }


def _encode_property(prop: Property) -> dict[str, Any]:
    match prop.type:
        case Primitive(kind):
            encoded: dict[str, Any] = {"type": kind.value}
            if prop.non_empty:
                encoded["minLength"] = 1
            return encoded
        case ArrayOf(item):
            return {"type": "array", "items": {"type": item.value}}
        case ObjectRef(ref):
            return {"$ref": f"{_REF_PREFIX}{ref}"}
        case ArrayRef(ref):
            return {"type": "array", "items": {"$ref": f"{_REF_PREFIX}{ref}"}}
    raise InvalidDescriptorError(f"Unsupported property type: {prop.type!r}")


# ── Decoding ─────────────────────────────────────────────────────────────


def from_json_schema(document: dict[str, Any]) -> SchemaDescriptor:
    """Decode a JSON Schema document produced by :func:`to_json_schema`.

    Raises:
        InvalidDescriptorError: If the document uses unsupported constructs.
    """
    if not isinstance(document, dict):
        raise InvalidDescriptorError("JSON schema must be an object")
    root = _decode_object(document, fallback_name="Root")
    definitions = {
        name: _decode_object(definition, fallback_name=name)
        for name, definition in (document.get("definitions") or {}).items()
    }
    descriptor = SchemaDescriptor(root.name, root.properties, definitions)
    descriptor.check_refs()
    return descriptor


def _decode_object(document: dict[str, Any], *, fallback_name: str) -> ObjectDescriptor:
    if document.get("type") != "object":
        raise InvalidDescriptorError(f"{fallback_name}: expected type 'object'")
    name = document.get("title") or fallback_name
    required = set(document.get("required") or [])
    properties: dict[str, Property] = {}
    for prop_name, prop_doc in (document.get("properties") or {}).items():
        prop_type, non_empty = _decode_type(prop_doc, f"{name}.{prop_name}")
        properties[prop_name] = Property(prop_name, prop_type, prop_name in required, non_empty)
    unknown = required - properties.keys()
    if unknown:
        raise InvalidDescriptorError(f"{name}: required lists unknown properties {sorted(unknown)}")
    return ObjectDescriptor(name, properties)


def _decode_type(prop_doc: dict[str, Any], where: str) -> tuple[PropertyType, bool]:
    if "$ref" in prop_doc:
        return ObjectRef(_ref_name(prop_doc["$ref"], where)), False
    kind = prop_doc.get("type")
    if kind == "array":
        items = prop_doc.get("items") or {}
        if "$ref" in items:
            return ArrayRef(_ref_name(items["$ref"], where)), False
        return ArrayOf(_primitive(items.get("type"), where)), False
    return Primitive(_primitive(kind, where)), prop_doc.get("minLength", 0) >= 1


def _primitive(kind: Any, where: str) -> PrimitiveKind:
    try:
        return PrimitiveKind(kind)
    except ValueError:
        raise InvalidDescriptorError(f"{where}: unsupported type {kind!r}") from None


def _ref_name(ref: str, where: str) -> str:
    if not isinstance(ref, str) or not ref.startswith(_REF_PREFIX):
        raise InvalidDescriptorError(f"{where}: unsupported $ref {ref!r}")
    return ref[len(_REF_PREFIX):]


__all__ = ["to_json_schema", "from_json_schema"]
