"""The ``Schema`` value: an identity bound to a descriptor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from content_spine.core.errors import SchemaValidationError
from content_spine.core.result import Err, Ok, Result
from content_spine.schema.compatibility import check_compatibility
from content_spine.schema.descriptor import SchemaDescriptor
from content_spine.schema.identity import SchemaIdentity
from content_spine.schema.json_schema import from_json_schema, to_json_schema
from content_spine.schema.validation import validate_record


@dataclass(frozen=True)
class Schema:
    """A registered (or to-be-registered) schema.

    Instances are immutable; the registry replaces them wholesale.

    Example:
        >>> schema = Schema(
        ...     SchemaIdentity("example", "User", "V1"),
        ...     SchemaBuilder("User").string("id").string("name").build(),
        ... )
        >>> schema.validate({"id": "1"})
        Err(SchemaValidationError('Schema validation for payload failed', category=VALIDATION))
    """

    identity: SchemaIdentity
    descriptor: SchemaDescriptor

    @property
    def key(self) -> str:
        return self.identity.key

    def validate(self, record: Any) -> Result[dict[str, Any]]:
        """``Ok(record)`` if it conforms, else ``Err(SchemaValidationError)``."""
        errors = validate_record(self.descriptor, record)
        if errors:
            return Err(SchemaValidationError(errors).with_context(schema_key=self.key))
        return Ok(record)

    def is_backward_compatible_with(self, older: Schema) -> bool:
        return not check_compatibility(self.descriptor, older.descriptor)

    def compatibility_violations(self, older: Schema) -> list[str]:
        return check_compatibility(self.descriptor, older.descriptor)

    # -- serialization -----------------------------------------------------

    def to_json_schema(self) -> dict[str, Any]:
        return to_json_schema(self.descriptor)

    @classmethod
    def from_json_schema(cls, identity: SchemaIdentity, document: dict[str, Any]) -> Schema:
        return cls(identity, from_json_schema(document))

    def to_dict(self) -> dict[str, Any]:
        return {"info": self.identity.to_dict(), "jsonSchema": self.to_json_schema()}
