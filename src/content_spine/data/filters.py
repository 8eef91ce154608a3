"""Evaluating filters against in-memory records.

Mirrors the SQL translation in :mod:`content_spine.data.store`: a
missing field behaves like JSON ``null``, string matches only apply to
string fields, and ordering comparisons only apply between two numbers
or two strings.
"""

from __future__ import annotations

from typing import Any

from content_spine.data.models import Filter, FilterOperator

_MISSING = object()


def resolve_path(record: dict[str, Any], path: list[str]) -> Any:
    """Walk ``path`` through nested dicts; ``_MISSING`` if it breaks off."""
    current: Any = record
    for segment in path:
        if not isinstance(current, dict) or segment not in current:
            return _MISSING
        current = current[segment]
    return current


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _comparable(left: Any, right: Any) -> bool:
    return (_is_number(left) and _is_number(right)) or (
        isinstance(left, str) and isinstance(right, str)
    )


def matches_filter(record: dict[str, Any], flt: Filter) -> bool:
    value = resolve_path(record, flt.path)
    present = value is not _MISSING and value is not None
    target = flt.value

    match flt.operator:
        case FilterOperator.EQUALS:
            if target is None:
                return not present
            return present and _scalar_equals(value, target)
        case FilterOperator.NOT:
            if target is None:
                return present
            return not (present and _scalar_equals(value, target))
        case FilterOperator.CONTAINS:
            return isinstance(value, str) and target in value
        case FilterOperator.STARTS_WITH:
            return isinstance(value, str) and value.startswith(target)
        case FilterOperator.ENDS_WITH:
            return isinstance(value, str) and value.endswith(target)

    if not present or not _comparable(value, target):
        return False
    match flt.operator:
        case FilterOperator.LT:
            return value < target
        case FilterOperator.LTE:
            return value <= target
        case FilterOperator.GT:
            return value > target
        case FilterOperator.GTE:
            return value >= target
    raise AssertionError(f"unhandled operator {flt.operator}")


def _scalar_equals(value: Any, target: Any) -> bool:
    # Containers never equal a scalar filter value.
    if isinstance(value, dict | list):
        return False
    if isinstance(value, str) != isinstance(target, str):
        return False
    return value == target


def matches_all(record: dict[str, Any], filters: list[Filter]) -> bool:
    return all(matches_filter(record, flt) for flt in filters)


__all__ = ["matches_all", "matches_filter", "resolve_path"]
