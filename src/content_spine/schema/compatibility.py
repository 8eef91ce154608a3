"""
Structural backward-compatibility checking between schema descriptors.

A new descriptor is backward compatible with an old one when every
property the old one requires survives with the same shape and nothing
new is required.  The comparison is structural: nested definitions are
compared by shape, so renaming a definition is not a breaking change but
altering its properties can be.

Limitation: removing an optional property is rated compatible even
though the root object is closed (see :mod:`content_spine.schema.validation`).
Stored records that still carry the removed key stay readable, but they
no longer pass ``validate`` under the new descriptor, and a producer that
still sends the key is rejected.

Rules (applied to the root and, recursively, to every ref target):

    ┌──────────────────────────────────────┬──────────────┐
    │ change                               │ verdict      │
    ├──────────────────────────────────────┼──────────────┤
    │ remove a required property           │ breaking     │
    │ remove an optional property          │ compatible   │
    │ change a property's type             │ breaking     │
    │ required → optional                  │ compatible   │
    │ optional → required                  │ breaking     │
    │ add non_empty to a string            │ breaking     │
    │ add an optional property             │ compatible   │
    │ add a required property              │ breaking     │
    │ break a nested ref target            │ breaking     │
    └──────────────────────────────────────┴──────────────┘

Examples:
    >>> old = SchemaBuilder("User").string("id").string("name").build()
    >>> new = SchemaBuilder("User").string("id").build()
    >>> check_compatibility(new, old)
    ['User.name: required property was removed']
    >>> is_compatible(old, old)
    True

Tags:
    schema, compatibility, evolution, content-spine
"""

from __future__ import annotations

from content_spine.schema.descriptor import (
    ArrayOf,
    ArrayRef,
    ObjectDescriptor,
    ObjectRef,
    Primitive,
    Property,
    SchemaDescriptor,
)


def is_compatible(new: SchemaDescriptor, old: SchemaDescriptor) -> bool:
    """True if ``new`` accepts all data that ``old`` accepted."""
    return not check_compatibility(new, old)


def check_compatibility(new: SchemaDescriptor, old: SchemaDescriptor) -> list[str]:
    """Return every breaking change from ``old`` to ``new`` (empty if none)."""
    checker = _Checker(new, old)
    checker.compare_objects(new.root, old.root, new.name)
    return checker.violations


class _Checker:
    def __init__(self, new: SchemaDescriptor, old: SchemaDescriptor) -> None:
        self.new = new
        self.old = old
        self.violations: list[str] = []
        # (new definition, old definition) pairs already compared; recursive
        # shapes are assumed compatible on re-entry.
        self._seen: set[tuple[str, str]] = set()

    def compare_objects(self, new: ObjectDescriptor, old: ObjectDescriptor, path: str) -> None:
        for name, old_prop in old.properties.items():
            new_prop = new.properties.get(name)
            where = f"{path}.{name}"
            if new_prop is None:
                if old_prop.required:
                    self.violations.append(f"{where}: required property was removed")
                continue
            self.compare_properties(new_prop, old_prop, where)

        for name, new_prop in new.properties.items():
            if name not in old.properties and new_prop.required:
                self.violations.append(f"{path}.{name}: new property must be optional")

    def compare_properties(self, new: Property, old: Property, where: str) -> None:
        if new.required and not old.required:
            self.violations.append(f"{where}: optional property became required")
        if new.non_empty and not old.non_empty:
            self.violations.append(f"{where}: string property became non-empty")

        match (new.type, old.type):
            case (Primitive(new_kind), Primitive(old_kind)) if new_kind == old_kind:
                return
            case (ArrayOf(new_item), ArrayOf(old_item)) if new_item == old_item:
                return
            case (ObjectRef(new_ref), ObjectRef(old_ref)) | (ArrayRef(new_ref), ArrayRef(old_ref)):
                self.compare_refs(new_ref, old_ref, where)
            case _:
                self.violations.append(
                    f"{where}: type changed from {old.type.describe()} to {new.type.describe()}"
                )

    def compare_refs(self, new_ref: str, old_ref: str, where: str) -> None:
        if (new_ref, old_ref) in self._seen:
            return
        self._seen.add((new_ref, old_ref))
        self.compare_objects(self.new.resolve(new_ref), self.old.resolve(old_ref), where)


__all__ = ["is_compatible", "check_compatibility"]
