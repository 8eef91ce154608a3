"""Structural validation of records against a schema descriptor.

Reports every failure (not just the first) as a
:class:`~content_spine.core.errors.FieldError` whose ``field`` is a JSON
pointer and whose message follows the JSON Schema validator wording
consumers already match on::

    FieldError(field="", message="must have required property 'name'")
    FieldError(field="/id", message="must be string")

Rules:
    - the root object rejects unknown properties; nested objects do not
      (so after an optional root property is removed, old records that
      still carry it fail validation)
    - a missing required key is reported on the enclosing object
    - ``None`` counts as absent for optional properties
    - booleans are not numbers
"""

from __future__ import annotations

from typing import Any

from content_spine.core.errors import FieldError
from content_spine.schema.descriptor import (
    ArrayOf,
    ArrayRef,
    ObjectDescriptor,
    ObjectRef,
    Primitive,
    PrimitiveKind,
    Property,
    SchemaDescriptor,
)


def validate_record(descriptor: SchemaDescriptor, record: Any) -> list[FieldError]:
    """Validate ``record`` and return all errors (empty when valid)."""
    errors: list[FieldError] = []
    if not isinstance(record, dict):
        errors.append(FieldError("", "must be object"))
        return errors
    _validate_object(descriptor, descriptor.root, record, "", errors, closed=True)
    return errors


def _pointer(path: str, segment: str | int) -> str:
    token = str(segment).replace("~", "~0").replace("/", "~1")
    return f"{path}/{token}"


def _validate_object(
    descriptor: SchemaDescriptor,
    obj: ObjectDescriptor,
    value: dict[str, Any],
    path: str,
    errors: list[FieldError],
    *,
    closed: bool,
) -> None:
    if closed:
        for key in value:
            if key not in obj.properties:
                errors.append(FieldError(path, "must NOT have additional properties"))

    for prop in obj.properties.values():
        if prop.required and prop.name not in value:
            errors.append(FieldError(path, f"must have required property '{prop.name}'"))

    for prop in obj.properties.values():
        if prop.name not in value:
            continue
        item = value[prop.name]
        if item is None and not prop.required:
            continue
        _validate_property(descriptor, prop, item, _pointer(path, prop.name), errors)


def _validate_property(
    descriptor: SchemaDescriptor,
    prop: Property,
    value: Any,
    path: str,
    errors: list[FieldError],
) -> None:
    match prop.type:
        case Primitive(kind):
            if _check_primitive(kind, value, path, errors) and prop.non_empty and value == "":
                errors.append(FieldError(path, "must NOT have fewer than 1 characters"))
        case ArrayOf(item):
            if not isinstance(value, list):
                errors.append(FieldError(path, "must be array"))
                return
            for i, element in enumerate(value):
                _check_primitive(item, element, _pointer(path, i), errors)
        case ObjectRef(ref):
            if not isinstance(value, dict):
                errors.append(FieldError(path, "must be object"))
                return
            _validate_object(descriptor, descriptor.resolve(ref), value, path, errors, closed=False)
        case ArrayRef(ref):
            if not isinstance(value, list):
                errors.append(FieldError(path, "must be array"))
                return
            target = descriptor.resolve(ref)
            for i, element in enumerate(value):
                element_path = _pointer(path, i)
                if not isinstance(element, dict):
                    errors.append(FieldError(element_path, "must be object"))
                    continue
                _validate_object(descriptor, target, element, element_path, errors, closed=False)


def _check_primitive(kind: PrimitiveKind, value: Any, path: str, errors: list[FieldError]) -> bool:
    if kind == PrimitiveKind.STRING:
        ok = isinstance(value, str)
    elif kind == PrimitiveKind.NUMBER:
        ok = isinstance(value, int | float) and not isinstance(value, bool)
    else:
        ok = isinstance(value, bool)
    if not ok:
        errors.append(FieldError(path, f"must be {kind.value}"))
    return ok


__all__ = ["validate_record"]
