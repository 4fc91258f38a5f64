"""
Record filtering for entity list views.

All active conditions of a ``FilterSpec`` are AND-ed; the search term matches
when any of the kind's search fields contains it. Filtering never raises on
malformed records: a missing or malformed value simply fails the condition
that looks at it.
"""

from __future__ import annotations

from typing import Any, Iterable

from pipeline.schema import EntitySchema, get_schema
from pipeline.specs import FilterSpec, is_unconstrained
from utils.strings import is_iso_date


def _same_value(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    if isinstance(expected, bool):
        return isinstance(actual, (bool, int)) and bool(actual) is expected
    return str(actual) == str(expected)


def _in_date_range(value: Any, date_from: str | None, date_to: str | None) -> bool:
    if not is_iso_date(value):
        return False
    if date_from and value < date_from:
        return False
    if date_to and value > date_to:
        return False
    return True


def _contains(value: Any, needle: str) -> bool:
    if value is None:
        return False
    return needle in str(value).lower()


def matches(record: dict[str, Any], spec: FilterSpec | None,
            kind: str | EntitySchema) -> bool:
    """True when *record* meets every active condition of *spec*."""
    if spec is None:
        return True
    schema = get_schema(kind)

    if schema.owned_by_farm and not is_unconstrained(spec.farm_id):
        if str(record.get("farm_id")) != str(spec.farm_id):
            return False

    for field, expected in spec.active_equals.items():
        if not _same_value(record.get(field), expected):
            return False

    if schema.date_field and spec.has_date_bounds:
        if not _in_date_range(record.get(schema.date_field),
                              spec.date_from, spec.date_to):
            return False

    term = spec.search_term
    if term:
        needle = term.lower()
        if not any(_contains(record.get(f), needle) for f in schema.search_fields):
            return False

    return True


def apply_filters(records: Iterable[dict[str, Any]], spec: FilterSpec | None,
                  kind: str | EntitySchema) -> list[dict[str, Any]]:
    """Return the records that match *spec*, in input order.

    Args:
        records: Records of one kind (canonical field names)
        spec: Conditions to apply; None keeps everything
        kind: Entity kind ("farms", "crops", "tasks", "expenses")

    Returns:
        New list; the input is not modified
    """
    schema = get_schema(kind)
    return [r for r in records if matches(r, spec, schema)]


def partition(records: Iterable[dict[str, Any]], spec: FilterSpec | None,
              kind: str | EntitySchema) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Split *records* into ``(included, excluded)``, each in input order.

    Every record lands in exactly one of the two lists.
    """
    schema = get_schema(kind)
    included: list[dict[str, Any]] = []
    excluded: list[dict[str, Any]] = []
    for record in records:
        (included if matches(record, spec, schema) else excluded).append(record)
    return included, excluded
