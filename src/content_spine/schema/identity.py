"""Schema identity — the ``(namespace, name, version)`` key of a schema slot."""

from __future__ import annotations

from dataclasses import dataclass

from content_spine.core.errors import InvalidDescriptorError


@dataclass(frozen=True, order=True)
class SchemaIdentity:
    """Immutable, globally unique key into the registry.

    The canonical string form is ``namespace.name.version``, which is why
    no component may contain a dot.

    Example:
        >>> ident = SchemaIdentity("example", "User", "V1")
        >>> ident.key
        'example.User.V1'
        >>> SchemaIdentity.parse("example.User.V1") == ident
        True
    """

    namespace: str
    name: str
    version: str

    def __post_init__(self) -> None:
        for label, value in (
            ("namespace", self.namespace),
            ("name", self.name),
            ("version", self.version),
        ):
            if not value:
                raise InvalidDescriptorError(f"Schema {label} must not be empty")
            if "." in value:
                raise InvalidDescriptorError(
                    f"Schema {label} must not contain '.': {value!r}"
                )

    @property
    def key(self) -> str:
        return f"{self.namespace}.{self.name}.{self.version}"

    @classmethod
    def parse(cls, key: str) -> SchemaIdentity:
        """Parse the canonical ``namespace.name.version`` form."""
        parts = key.split(".")
        if len(parts) != 3:
            raise InvalidDescriptorError(
                f"Schema key must be 'namespace.name.version', got {key!r}"
            )
        return cls(*parts)

    def to_dict(self) -> dict[str, str]:
        return {"namespace": self.namespace, "name": self.name, "version": self.version}

    def __str__(self) -> str:
        return self.key
