"""Data ingestion models: entries, pages and query filters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from content_spine.core.errors import ValidationError
from content_spine.core.timestamps import to_iso8601
from content_spine.schema import SchemaIdentity

Scalar = str | int | float | bool | None


@dataclass(frozen=True)
class Entry:
    """A stored record.

    ``id`` is assigned by the store, increases monotonically and is never
    reused; it orders pagination.  ``(identity, upstream_id)`` is unique.
    """

    id: int
    identity: SchemaIdentity
    upstream_id: str
    record: dict[str, Any]
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "schema": self.identity.key,
            "upstream_id": self.upstream_id,
            "record": self.record,
            "created_at": to_iso8601(self.created_at),
            "updated_at": to_iso8601(self.updated_at),
        }


@dataclass(frozen=True)
class EntryPage:
    """One page of entries; pass ``cursor`` back to get the next one."""

    entries: list[Entry] = field(default_factory=list)
    cursor: int | None = None

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def of(cls, entries: list[Entry]) -> EntryPage:
        return cls(entries, entries[-1].id if entries else None)


class FilterOperator(str, Enum):
    EQUALS = "equals"
    NOT = "not"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"

    @property
    def is_string_match(self) -> bool:
        return self in (FilterOperator.CONTAINS, FilterOperator.STARTS_WITH, FilterOperator.ENDS_WITH)

    @property
    def is_comparison(self) -> bool:
        return self in (FilterOperator.LT, FilterOperator.LTE, FilterOperator.GT, FilterOperator.GTE)


@dataclass(frozen=True)
class Filter:
    """A predicate on one (dotted) field of the record.

    Example:
        >>> Filter("address.city", "starts_with", "Ber")
        Filter(field_path='address.city', operator=<FilterOperator.STARTS_WITH: 'starts_with'>, value='Ber')
    """

    field_path: str
    operator: FilterOperator
    value: Scalar

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "operator", FilterOperator(self.operator))
        except ValueError:
            raise ValidationError(f"Unknown filter operator: {self.operator!r}") from None

        if not self.field_path or any(not part for part in self.field_path.split(".")):
            raise ValidationError(f"Invalid field path: {self.field_path!r}")
        if not isinstance(self.value, str | int | float | bool | None):
            raise ValidationError(f"Filter value for {self.field_path} must be a scalar")
        if self.operator.is_string_match and not isinstance(self.value, str):
            raise ValidationError(f"{self.operator.value} on {self.field_path} needs a string value")
        if self.operator.is_comparison and (
            self.value is None or isinstance(self.value, bool)
        ):
            raise ValidationError(
                f"{self.operator.value} on {self.field_path} needs a number or string value"
            )

    @property
    def path(self) -> list[str]:
        return self.field_path.split(".")

    @classmethod
    def parse(cls, raw: dict[str, Any]) -> Filter:
        """Build from ``{"field_path"|"fieldPath", "operator", "value"}``."""
        if not isinstance(raw, dict):
            raise ValidationError("Filter must be an object")
        path = raw.get("field_path", raw.get("fieldPath"))
        if not isinstance(path, str):
            raise ValidationError("Filter needs a field_path")
        return cls(path, raw.get("operator"), raw.get("value"))


__all__ = ["Entry", "EntryPage", "Filter", "FilterOperator", "Scalar"]
