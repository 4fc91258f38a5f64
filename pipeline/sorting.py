"""
Record sorting for entity list views.

Comparison follows the field's policy (see ``EntitySchema.comparison``):

    numeric  amounts and ids, ordered as numbers
    date     ISO ``YYYY-MM-DD`` strings, ordered as strings
    text     ``str(value)``, case-sensitive

The sort is stable in both directions. Records whose value cannot be compared
under the policy (non-numeric amount, missing or malformed date, missing text)
follow all comparable records, in input order, whichever the direction.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

from pipeline.schema import EntitySchema, get_schema
from pipeline.specs import SortSpec
from utils.strings import is_iso_date, parse_amount

_MISSING = object()


def _numeric_key(value: Any) -> Any:
    number = parse_amount(value)
    return _MISSING if number is None else number


def _date_key(value: Any) -> Any:
    return value if is_iso_date(value) else _MISSING


def _text_key(value: Any) -> Any:
    return _MISSING if value is None else str(value)


_KEY_FUNCS: dict[str, Callable[[Any], Any]] = {
    "numeric": _numeric_key,
    "date": _date_key,
    "text": _text_key,
}


def resolve_sort(spec: SortSpec | None, kind: str | EntitySchema) -> SortSpec | None:
    """Return the sort that will actually be applied.

    A missing spec, a spec without a key, or a key the kind does not sort by
    all fall back to the kind's default, which may be None (input order).
    """
    schema = get_schema(kind)
    if spec is None or not spec.key or spec.key not in schema.sort_keys:
        return schema.default_sort
    return spec


def sort_records(records: Iterable[dict[str, Any]], spec: SortSpec | None,
                 kind: str | EntitySchema) -> list[dict[str, Any]]:
    """Return *records* ordered by *spec* (or the kind's default).

    Args:
        records: Records of one kind
        spec: Sort key and direction; None uses the default
        kind: Entity kind

    Returns:
        New list; the input is not modified
    """
    schema = get_schema(kind)
    effective = resolve_sort(spec, schema)
    items = list(records)
    if effective is None:
        return items

    key_func = _KEY_FUNCS[schema.comparison(effective.key)]
    comparable: list[tuple[Any, dict[str, Any]]] = []
    trailing: list[dict[str, Any]] = []
    for record in items:
        k = key_func(record.get(effective.key))
        if k is _MISSING:
            trailing.append(record)
        else:
            comparable.append((k, record))

    # sorted() keeps equal keys in input order even with reverse=True
    comparable.sort(key=lambda pair: pair[0], reverse=effective.descending)
    return [record for _, record in comparable] + trailing
