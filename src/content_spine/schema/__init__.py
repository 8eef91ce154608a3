"""
Schemas: identities, descriptors, validation and compatibility.

Usage::

    from content_spine.schema import Schema, SchemaBuilder, SchemaIdentity

    user = Schema(
        SchemaIdentity("example", "User", "V1"),
        SchemaBuilder("User").string("id").string("name").build(),
    )
    user.validate({"id": "1", "name": "Ada"})   # Ok({...})
"""

from content_spine.schema.compatibility import check_compatibility, is_compatible
from content_spine.schema.descriptor import (
    ArrayOf,
    ArrayRef,
    ObjectBuilder,
    ObjectDescriptor,
    ObjectRef,
    Primitive,
    PrimitiveKind,
    Property,
    SchemaBuilder,
    SchemaDescriptor,
)
from content_spine.schema.identity import SchemaIdentity
from content_spine.schema.json_schema import from_json_schema, to_json_schema
from content_spine.schema.schema import Schema
from content_spine.schema.validation import validate_record

__all__ = [
    "ArrayOf",
    "ArrayRef",
    "ObjectBuilder",
    "ObjectDescriptor",
    "ObjectRef",
    "Primitive",
    "PrimitiveKind",
    "Property",
    "Schema",
    "SchemaBuilder",
    "SchemaDescriptor",
    "SchemaIdentity",
    "check_compatibility",
    "from_json_schema",
    "is_compatible",
    "to_json_schema",
    "validate_record",
]
