"""
Schema descriptors and the builder API that produces them.

A descriptor is a tree of named properties.  Each property has a tagged
type (one of four variants) and flags.  Nested objects are not inlined:
an ``ObjectRef``/``ArrayRef`` names a definition held in the descriptor's
flat ``definitions`` map, which is also how recursive shapes are written.

Architecture:
    ::

        SchemaDescriptor("User")
        ├── properties
        │   ├── id        Primitive(STRING)      required
        │   ├── tags      ArrayOf(STRING)        optional
        │   ├── address   ObjectRef("Address")   required
        │   └── comments  ArrayRef("Comment")    optional
        └── definitions
            ├── Address   ObjectDescriptor(street, city)
            └── Comment   ObjectDescriptor(text)

Examples:
    >>> address = ObjectBuilder("Address").string("street").string("city")
    >>> descriptor = (
    ...     SchemaBuilder("User")
    ...     .string("id", non_empty=True)
    ...     .string("name")
    ...     .array("tags", PrimitiveKind.STRING, required=False)
    ...     .object("address", address)
    ...     .build()
    ... )
    >>> sorted(descriptor.definitions)
    ['Address']

Tags:
    schema, descriptor, builder, content-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Self

from content_spine.core.errors import InvalidDescriptorError

RESERVED_PROPERTY_NAMES = frozenset({"_id"})


class PrimitiveKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


# =============================================================================
# PROPERTY TYPES (tagged variants)
# =============================================================================


@dataclass(frozen=True)
class Primitive:
    kind: PrimitiveKind

    def describe(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class ArrayOf:
    """Array of primitive values."""

    item: PrimitiveKind

    def describe(self) -> str:
        return f"array<{self.item.value}>"


@dataclass(frozen=True)
class ObjectRef:
    """Nested object described by the definition named ``ref``."""

    ref: str

    def describe(self) -> str:
        return f"object<{self.ref}>"


@dataclass(frozen=True)
class ArrayRef:
    """Array of nested objects described by the definition named ``ref``."""

    ref: str

    def describe(self) -> str:
        return f"array<{self.ref}>"


PropertyType = Primitive | ArrayOf | ObjectRef | ArrayRef


@dataclass(frozen=True)
class Property:
    """A named, typed property.

    ``non_empty`` only applies to string primitives and rejects ``""``.
    """

    name: str
    type: PropertyType
    required: bool = True
    non_empty: bool = False


# =============================================================================
# DESCRIPTORS
# =============================================================================


@dataclass(frozen=True)
class ObjectDescriptor:
    name: str
    properties: dict[str, Property] = field(default_factory=dict)


@dataclass(frozen=True)
class SchemaDescriptor:
    """Root descriptor plus every nested definition reachable from it."""

    name: str
    properties: dict[str, Property] = field(default_factory=dict)
    definitions: dict[str, ObjectDescriptor] = field(default_factory=dict)

    @property
    def root(self) -> ObjectDescriptor:
        return ObjectDescriptor(self.name, self.properties)

    def resolve(self, ref: str) -> ObjectDescriptor:
        """Look up the definition named ``ref``."""
        try:
            return self.definitions[ref]
        except KeyError:
            raise InvalidDescriptorError(
                f"Descriptor {self.name} has no definition named {ref!r}"
            ) from None

    def check_refs(self) -> None:
        """Raise ``InvalidDescriptorError`` if any ref is dangling."""
        for owner in [self.root, *self.definitions.values()]:
            for prop in owner.properties.values():
                if isinstance(prop.type, ObjectRef | ArrayRef) and prop.type.ref not in self.definitions:
                    raise InvalidDescriptorError(
                        f"Property {owner.name}.{prop.name} references unknown "
                        f"definition {prop.type.ref!r}"
                    )


# =============================================================================
# BUILDERS
# =============================================================================


class ObjectBuilder:
    """Fluent builder for one object shape.

    Passing another ``ObjectBuilder`` to :meth:`object` or
    :meth:`array_of` records it as a nested definition, so a whole tree
    can be declared bottom-up without naming definitions twice.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._properties: dict[str, Property] = {}
        self._nested: dict[str, ObjectBuilder] = {}

    # -- primitives --------------------------------------------------------

    def string(self, name: str, *, required: bool = True, non_empty: bool = False) -> Self:
        return self.property(Property(name, Primitive(PrimitiveKind.STRING), required, non_empty))

    def number(self, name: str, *, required: bool = True) -> Self:
        return self.property(Property(name, Primitive(PrimitiveKind.NUMBER), required))

    def boolean(self, name: str, *, required: bool = True) -> Self:
        return self.property(Property(name, Primitive(PrimitiveKind.BOOLEAN), required))

    def array(self, name: str, item: PrimitiveKind | str, *, required: bool = True) -> Self:
        return self.property(Property(name, ArrayOf(PrimitiveKind(item)), required))

    # -- references --------------------------------------------------------

    def object(self, name: str, target: ObjectBuilder | str, *, required: bool = True) -> Self:
        return self.property(Property(name, ObjectRef(self._target_name(target)), required))

    def array_of(self, name: str, target: ObjectBuilder | str, *, required: bool = True) -> Self:
        return self.property(Property(name, ArrayRef(self._target_name(target)), required))

    # -- generic -----------------------------------------------------------

    def property(self, prop: Property) -> Self:
        if prop.name in RESERVED_PROPERTY_NAMES:
            raise InvalidDescriptorError(f"Property name {prop.name!r} is reserved")
        if prop.name in self._properties:
            raise InvalidDescriptorError(f"Property {self.name}.{prop.name} is defined twice")
        if prop.non_empty and prop.type != Primitive(PrimitiveKind.STRING):
            raise InvalidDescriptorError(
                f"Property {self.name}.{prop.name}: non_empty only applies to strings"
            )
        self._properties[prop.name] = prop
        return self

    def build_object(self) -> ObjectDescriptor:
        return ObjectDescriptor(self.name, dict(self._properties))

    def _target_name(self, target: ObjectBuilder | str) -> str:
        if isinstance(target, ObjectBuilder):
            self._add_nested(target)
            return target.name
        return target

    def _add_nested(self, builder: ObjectBuilder) -> None:
        existing = self._nested.get(builder.name)
        if existing is not None and existing is not builder:
            if existing.build_object() != builder.build_object():
                raise InvalidDescriptorError(f"Conflicting definitions for {builder.name!r}")
        self._nested[builder.name] = builder

    def _collect(self, into: dict[str, ObjectDescriptor]) -> None:
        for name, builder in self._nested.items():
            built = builder.build_object()
            existing = into.get(name)
            if existing is not None:
                if existing != built:
                    raise InvalidDescriptorError(f"Conflicting definitions for {name!r}")
                continue
            into[name] = built
            builder._collect(into)


class SchemaBuilder(ObjectBuilder):
    """Builder for a complete :class:`SchemaDescriptor`."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._definitions: dict[str, ObjectDescriptor] = {}

    def define(self, definition: ObjectBuilder | ObjectDescriptor) -> Self:
        """Add a definition explicitly (needed for refs given by name)."""
        if isinstance(definition, ObjectBuilder):
            self._add_nested(definition)
        else:
            existing = self._definitions.get(definition.name)
            if existing is not None and existing != definition:
                raise InvalidDescriptorError(f"Conflicting definitions for {definition.name!r}")
            self._definitions[definition.name] = definition
        return self

    def build(self) -> SchemaDescriptor:
        definitions = dict(self._definitions)
        self._collect(definitions)
        descriptor = SchemaDescriptor(self.name, dict(self._properties), definitions)
        descriptor.check_refs()
        return descriptor


__all__ = [
    "RESERVED_PROPERTY_NAMES",
    "PrimitiveKind",
    "Primitive",
    "ArrayOf",
    "ObjectRef",
    "ArrayRef",
    "PropertyType",
    "Property",
    "ObjectDescriptor",
    "SchemaDescriptor",
    "ObjectBuilder",
    "SchemaBuilder",
]
